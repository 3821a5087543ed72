"""
Football-Data.org v4 adapter (baseline_api).
Paid structured API: exact kickoff instants, lowest trust weight.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from shared.config import get_settings
from shared.models.domain import SourceReport
from shared.models.enums import FixtureStatus, SourceIdentity
from shared.utils.logging import get_logger

from reliability.config import ReliabilitySettings
from reliability.sources.base import SourceAdapter, parse_int

logger = get_logger(__name__)


def map_status(status: str) -> FixtureStatus:
    """Map football-data.org match status to FixtureStatus."""
    s = (status or "").strip().upper()
    if s in ("SCHEDULED", "TIMED"):
        return FixtureStatus.NOT_STARTED
    if s in ("LIVE", "IN_PLAY"):
        return FixtureStatus.LIVE
    if s == "PAUSED":
        return FixtureStatus.HALFTIME
    if s in ("FINISHED", "AWARDED"):
        return FixtureStatus.FINISHED
    if s in ("POSTPONED", "SUSPENDED", "CANCELLED"):
        return FixtureStatus.POSTPONED
    return FixtureStatus.UNKNOWN


def _team_name(team: dict[str, Any]) -> str:
    return (team.get("name") or team.get("shortName") or "").strip()


def parse_matches(payload: dict[str, Any]) -> list[SourceReport]:
    """Build reports from a /matches response; malformed entries are skipped."""
    reports: list[SourceReport] = []
    for match in payload.get("matches") or []:
        home = _team_name(match.get("homeTeam") or {})
        away = _team_name(match.get("awayTeam") or {})
        utc_str = match.get("utcDate") or ""
        if not home or not away or not utc_str:
            continue
        try:
            kickoff = datetime.fromisoformat(utc_str.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("football_data_bad_date", match_id=match.get("id"), utc_date=utc_str)
            continue
        full_time = (match.get("score") or {}).get("fullTime") or {}
        reports.append(
            SourceReport(
                source=SourceIdentity.BASELINE_API,
                home_team=home,
                away_team=away,
                kickoff=kickoff,
                status=map_status(match.get("status", "")),
                score_home=parse_int(full_time.get("home")),
                score_away=parse_int(full_time.get("away")),
                competition=(match.get("competition") or {}).get("name"),
                raw_id=str(match["id"]) if match.get("id") is not None else None,
            )
        )
    return reports


class FootballDataAdapter(SourceAdapter):
    """Football-Data.org /matches for one UTC day."""

    source = SourceIdentity.BASELINE_API

    def __init__(self, settings: Optional[ReliabilitySettings] = None, api_key: Optional[str] = None) -> None:
        super().__init__(settings)
        self._api_key = api_key if api_key is not None else get_settings().football_data_api_key
        headers = {"X-Auth-Token": self._api_key} if self._api_key else {}
        self._http = self._make_client(self._settings.football_data_base_url, headers)

    async def _fetch(self, day: date) -> list[SourceReport]:
        if not self._api_key:
            logger.warning("football_data_api_key_missing")
            return []
        resp = await self._http.get(
            "/matches",
            params={"dateFrom": day.isoformat(), "dateTo": day.isoformat()},
        )
        return parse_matches(resp.json())
