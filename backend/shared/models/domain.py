"""
Pydantic v2 domain models shared across FixtureWatch services.
These are the canonical wire/internal representations, NOT ORM models.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.models.enums import FixtureStatus, SourceIdentity


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ── Source reports ──────────────────────────────────────────────────────
class SourceReport(DomainModel):
    """One source's claim about one match at one point in time."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)

    source: SourceIdentity
    timestamp: datetime = Field(default_factory=utcnow)
    home_team: str
    away_team: str
    kickoff: datetime
    status: FixtureStatus = FixtureStatus.UNKNOWN
    score_home: Optional[int] = None
    score_away: Optional[int] = None
    competition: Optional[str] = None
    raw_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if isinstance(value, FixtureStatus):
            return value
        if isinstance(value, str):
            return FixtureStatus.from_token(value)
        return value

    @field_validator("kickoff", "timestamp")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def has_score(self) -> bool:
        return self.score_home is not None and self.score_away is not None

    def summary(self) -> str:
        """Human-readable '<status> <home>-<away>' line for the source breakdown."""
        home = "" if self.score_home is None else str(self.score_home)
        away = "" if self.score_away is None else str(self.score_away)
        return f"{self.status.value} {home}-{away}"


# ── Reconciled fixtures ─────────────────────────────────────────────────
class Score(DomainModel):
    home: Optional[int] = None
    away: Optional[int] = None


class ResolvedFixture(DomainModel):
    """Output of the conflict resolver for one identity group."""
    kickoff: datetime
    status: FixtureStatus
    score: Score = Field(default_factory=Score)
    confidence: float = 0.0
    last_verified_at: datetime = Field(default_factory=utcnow)


class UnifiedFixture(DomainModel):
    """The reconciled, persisted record; one per real-world match per Nairobi day."""
    id: str
    nairobi_date_key: str
    kickoff: datetime
    status: FixtureStatus
    score: Score = Field(default_factory=Score)
    home_team: str
    away_team: str
    competition: Optional[str] = None
    confidence: float = 0.0
    state_hash: str
    source_breakdown: dict[str, str] = Field(default_factory=dict)
    last_verified_at: datetime = Field(default_factory=utcnow)

    @field_validator("kickoff", "last_verified_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class IngestSummary(DomainModel):
    """Aggregate outcome of one ingest() call; failures are reported, not raised."""
    groups: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


# ── Team statistics ─────────────────────────────────────────────────────
class VenueSplit(DomainModel):
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0


class FormMatch(DomainModel):
    date: str = ""
    opponent: str = ""
    home_away: Literal["H", "A"] = "H"
    result: Literal["W", "D", "L"]
    goals_for: int = 0
    goals_against: int = 0


class TeamStatistics(DomainModel):
    team_id: int
    team_name: str = ""
    league_id: int
    season: int
    last_updated: datetime = Field(default_factory=utcnow)

    matches_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0

    home: VenueSplit = Field(default_factory=VenueSplit)
    away: VenueSplit = Field(default_factory=VenueSplit)

    form: str = ""
    last5_matches: list[FormMatch] = Field(default_factory=list)

    avg_goals_scored: float = 0.0
    avg_goals_conceded: float = 0.0
    clean_sheets: int = 0
    failed_to_score: int = 0


# ── Head to head ────────────────────────────────────────────────────────
class H2HMeeting(DomainModel):
    date: str = ""
    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    home_score: int = 0
    away_score: int = 0
    winner: Optional[int] = None


class HeadToHead(DomainModel):
    id: str
    team1_id: int
    team2_id: int
    team1_name: str = ""
    team2_name: str = ""
    last_updated: datetime = Field(default_factory=utcnow)

    total_meetings: int = 0
    team1_wins: int = 0
    draws: int = 0
    team2_wins: int = 0

    last5_meetings: list[H2HMeeting] = Field(default_factory=list)
    avg_goals_per_game: float = 0.0


class StatsFixtureRef(DomainModel):
    """A fixture as the stats layer knows it: origin team and league ids."""
    fixture_id: str
    home_team_id: int
    away_team_id: int
    league_id: int
    season: Optional[int] = None


class FixtureEnrichment(DomainModel):
    home_stats: Optional[TeamStatistics] = None
    away_stats: Optional[TeamStatistics] = None
    h2h: Optional[HeadToHead] = None

    @property
    def has_complete_data(self) -> bool:
        return self.home_stats is not None and self.away_stats is not None and self.h2h is not None


# ── Request budget ──────────────────────────────────────────────────────
class BudgetStatus(DomainModel):
    used: int
    limit: int
    remaining: int
    percentage_used: int
