"""
Unit tests for the fixture state hash.

Run: pytest backend/tests/test_change_detector.py -v
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

from reliability.change_detector import compute_state_hash, format_kickoff, has_changed
from shared.models.domain import Score
from shared.models.enums import FixtureStatus

KICKOFF = datetime(2024, 5, 11, 14, 0, 0, 123456, tzinfo=timezone.utc)


def test_kickoff_format_is_millisecond_utc_with_z() -> None:
    assert format_kickoff(KICKOFF) == "2024-05-11T14:00:00.123Z"
    assert format_kickoff(KICKOFF.astimezone(timezone(timedelta(hours=3)))) == "2024-05-11T14:00:00.123Z"


def test_hash_matches_documented_payload() -> None:
    expected = hashlib.md5(b"2024-05-11T14:00:00.123Z|finished|2-1").hexdigest()
    assert compute_state_hash(KICKOFF, FixtureStatus.FINISHED, Score(home=2, away=1)) == expected


def test_absent_score_sides_hash_as_null() -> None:
    expected = hashlib.md5(b"2024-05-11T14:00:00.123Z|not_started|null-null").hexdigest()
    assert compute_state_hash(KICKOFF, FixtureStatus.NOT_STARTED, Score()) == expected


def test_hash_changes_with_each_hashed_field() -> None:
    base = compute_state_hash(KICKOFF, FixtureStatus.LIVE, Score(home=0, away=0))
    assert compute_state_hash(KICKOFF + timedelta(minutes=1), FixtureStatus.LIVE, Score(home=0, away=0)) != base
    assert compute_state_hash(KICKOFF, FixtureStatus.HALFTIME, Score(home=0, away=0)) != base
    assert compute_state_hash(KICKOFF, FixtureStatus.LIVE, Score(home=1, away=0)) != base


def test_sub_millisecond_drift_does_not_change_hash() -> None:
    a = compute_state_hash(KICKOFF, FixtureStatus.LIVE, Score())
    b = compute_state_hash(KICKOFF + timedelta(microseconds=400), FixtureStatus.LIVE, Score())
    assert a == b


def test_has_changed() -> None:
    assert has_changed(None, "abc")
    assert has_changed("abc", "abd")
    assert not has_changed("abc", "abc")
