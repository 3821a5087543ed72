"""BeSoccer livescore page adapter (besoccer)."""
from __future__ import annotations

from datetime import date
from typing import Optional

from bs4 import BeautifulSoup

from shared.models.domain import SourceReport
from shared.models.enums import FixtureStatus, SourceIdentity
from shared.utils.logging import get_logger

from reliability.config import ReliabilitySettings
from reliability.sources.base import SourceAdapter, day_start_utc, parse_int

logger = get_logger(__name__)


def map_status(label: str) -> FixtureStatus:
    s = (label or "").strip().lower()
    if "final" in s or "ft" in s:
        return FixtureStatus.FINISHED
    if "postp" in s or "pst" in s:
        return FixtureStatus.POSTPONED
    if "live" in s or "'" in s:
        return FixtureStatus.LIVE
    return FixtureStatus.NOT_STARTED


def parse_marker(text: str) -> tuple[Optional[int], Optional[int]]:
    """'2-1' -> (2, 1); a kickoff time or empty marker has no score."""
    parts = (text or "").split("-")
    if len(parts) != 2:
        return None, None
    home, away = parse_int(parts[0]), parse_int(parts[1])
    if home is None or away is None:
        return None, None
    return home, away


def parse_livescore_page(html: str, day: date) -> list[SourceReport]:
    soup = BeautifulSoup(html, "html.parser")
    kickoff = day_start_utc(day)
    reports: list[SourceReport] = []
    for link in soup.select(".match-link"):
        names = link.select(".team-name")
        if not names:
            continue
        home = names[0].get_text(strip=True)
        away = names[-1].get_text(strip=True)
        if not home or not away:
            continue
        marker = link.select_one(".marker")
        status = link.select_one(".status")
        score_home, score_away = parse_marker(marker.get_text(strip=True) if marker else "")
        reports.append(
            SourceReport(
                source=SourceIdentity.BESOCCER,
                home_team=home,
                away_team=away,
                kickoff=kickoff,
                status=map_status((status.get_text(strip=True) if status else "") or "NS"),
                score_home=score_home,
                score_away=score_away,
            )
        )
    return reports


class BesoccerAdapter(SourceAdapter):
    source = SourceIdentity.BESOCCER

    def __init__(self, settings: Optional[ReliabilitySettings] = None) -> None:
        super().__init__(settings)
        self._http = self._make_client(self._settings.besoccer_base_url)

    async def _fetch(self, day: date) -> list[SourceReport]:
        resp = await self._http.get(f"/livescore/{day.isoformat()}")
        reports = parse_livescore_page(resp.text, day)
        if not reports:
            # Markup changes show up as an empty page rather than an error.
            logger.warning("besoccer_no_matches_parsed", day=day.isoformat(), bytes=len(resp.content))
        return reports
