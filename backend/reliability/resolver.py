"""
Conflict resolution: one reconciled view from all reports of one identity group.

Each source carries a static trust weight (SourceIdentity.weight):
  kickoff   : weighted mean of the claimed instants
  status    : weighted majority vote; first-encountered status wins a tie
  score     : verbatim from the highest-weight report carrying both sides
  confidence: total weight normalized against CONFIDENCE_FULL_WEIGHT, capped at 100
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from shared.models.domain import ResolvedFixture, Score, SourceReport, utcnow
from shared.models.enums import FixtureStatus

CONFIDENCE_FULL_WEIGHT = 20

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _to_micros(value: datetime) -> int:
    return (value - _EPOCH) // timedelta(microseconds=1)


def weighted_kickoff(reports: Sequence[SourceReport]) -> datetime:
    total = sum(r.source.weight for r in reports)
    weighted = sum(r.source.weight * _to_micros(r.kickoff) for r in reports)
    # Integer arithmetic keeps microsecond precision; round half up.
    mean = (weighted + total // 2) // total
    return _EPOCH + timedelta(microseconds=mean)


def weighted_status(reports: Sequence[SourceReport]) -> FixtureStatus:
    votes: dict[FixtureStatus, int] = {}
    for r in reports:
        votes[r.status] = votes.get(r.status, 0) + r.source.weight

    winner: Optional[FixtureStatus] = None
    best = -1
    for status, weight in votes.items():
        if weight > best:
            winner, best = status, weight
    return winner or FixtureStatus.UNKNOWN


def most_trusted_score(reports: Sequence[SourceReport]) -> Score:
    chosen: Optional[SourceReport] = None
    for r in reports:
        if not r.has_score:
            continue
        if chosen is None or r.source.weight > chosen.source.weight:
            chosen = r
    if chosen is None:
        return Score()
    return Score(home=chosen.score_home, away=chosen.score_away)


def confidence_of(reports: Sequence[SourceReport]) -> float:
    total = sum(r.source.weight for r in reports)
    return min(100.0, total / CONFIDENCE_FULL_WEIGHT * 100)


def resolve(
    reports: Sequence[SourceReport],
    verified_at: Optional[datetime] = None,
) -> Optional[ResolvedFixture]:
    """Reconcile one identity group. Returns None for an empty group."""
    if not reports:
        return None
    return ResolvedFixture(
        kickoff=weighted_kickoff(reports),
        status=weighted_status(reports),
        score=most_trusted_score(reports),
        confidence=confidence_of(reports),
        last_verified_at=verified_at or utcnow(),
    )
