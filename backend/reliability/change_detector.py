"""
State hashing for change-aware writes.

Only kickoff, status and score feed the hash. Confidence, source breakdown and
last_verified_at change every cycle and must not trigger a rewrite.
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Optional

from shared.models.domain import ResolvedFixture, Score
from shared.models.enums import FixtureStatus


def format_kickoff(kickoff: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    if kickoff.tzinfo is None:
        kickoff = kickoff.replace(tzinfo=timezone.utc)
    utc = kickoff.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _side(value: Optional[int]) -> str:
    return "null" if value is None else str(value)


def compute_state_hash(kickoff: datetime, status: FixtureStatus, score: Score) -> str:
    payload = f"{format_kickoff(kickoff)}|{status.value}|{_side(score.home)}-{_side(score.away)}"
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def hash_resolved(resolved: ResolvedFixture) -> str:
    return compute_state_hash(resolved.kickoff, resolved.status, resolved.score)


def has_changed(stored_hash: Optional[str], new_hash: str) -> bool:
    return stored_hash is None or stored_hash != new_hash
