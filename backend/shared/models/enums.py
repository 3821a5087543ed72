"""Domain enumerations for the FixtureWatch platform."""
from __future__ import annotations

from enum import Enum


class SourceIdentity(str, Enum):
    """Independent origins of fixture data. The set is closed; see SOURCE_WEIGHTS."""
    BASELINE_API = "baseline_api"  # football-data.org
    BESOCCER = "besoccer"
    FLASHSCORE = "flashscore"
    BBC_SPORT = "bbc_sport"

    @property
    def weight(self) -> int:
        return SOURCE_WEIGHTS[self]


SOURCE_WEIGHTS: dict[SourceIdentity, int] = {
    SourceIdentity.BBC_SPORT: 10,
    SourceIdentity.FLASHSCORE: 8,
    SourceIdentity.BESOCCER: 5,
    SourceIdentity.BASELINE_API: 1,
}


class FixtureStatus(str, Enum):
    NOT_STARTED = "not_started"
    LIVE = "live"
    HALFTIME = "halftime"
    FINISHED = "finished"
    POSTPONED = "postponed"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: str | None) -> "FixtureStatus":
        """
        Map a common short status token onto the shared vocabulary.

        Adapters apply their own mapper first; this covers the tokens most
        sources share (NS, FT, PST, LIVE, HT, 1H, ...) and enum values themselves.
        """
        t = (token or "").strip().lower()
        if not t:
            return cls.UNKNOWN
        for member in cls:
            if member.value == t:
                return member
        return _STATUS_TOKENS.get(t, cls.UNKNOWN)


_STATUS_TOKENS: dict[str, FixtureStatus] = {
    "ns": FixtureStatus.NOT_STARTED,
    "tbd": FixtureStatus.NOT_STARTED,
    "scheduled": FixtureStatus.NOT_STARTED,
    "timed": FixtureStatus.NOT_STARTED,
    "live": FixtureStatus.LIVE,
    "in_play": FixtureStatus.LIVE,
    "1h": FixtureStatus.LIVE,
    "2h": FixtureStatus.LIVE,
    "et": FixtureStatus.LIVE,
    "bt": FixtureStatus.LIVE,
    "p": FixtureStatus.LIVE,
    "ht": FixtureStatus.HALFTIME,
    "paused": FixtureStatus.HALFTIME,
    "ft": FixtureStatus.FINISHED,
    "aet": FixtureStatus.FINISHED,
    "pen": FixtureStatus.FINISHED,
    "pst": FixtureStatus.POSTPONED,
    "postponed": FixtureStatus.POSTPONED,
    "canc": FixtureStatus.POSTPONED,
    "cancelled": FixtureStatus.POSTPONED,
    "susp": FixtureStatus.POSTPONED,
    "suspended": FixtureStatus.POSTPONED,
    "abd": FixtureStatus.POSTPONED,
}


class RequestPriority(str, Enum):
    """Admission tier for origin API calls against the daily budget."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CacheTier(str, Enum):
    """Where a layered-cache lookup was answered from (metrics label)."""
    FAST = "fast"
    DURABLE = "durable"
    ORIGIN = "origin"
    DENIED = "denied"
    MISS = "miss"
