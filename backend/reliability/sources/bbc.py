"""
BBC Sport scores-fixtures page adapter (bbc_sport, highest trust weight).

The page lists every fixture for one date. Upcoming fixtures show a UK-local
kickoff time where finished or live ones show a status label, so only
not-started fixtures carry an exact kickoff; the rest use the date.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time as dt_time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from shared.models.domain import SourceReport
from shared.models.enums import FixtureStatus, SourceIdentity
from shared.utils.logging import get_logger

from reliability.config import ReliabilitySettings
from reliability.sources.base import SourceAdapter, day_start_utc, parse_int

logger = get_logger(__name__)

LONDON_TZ = ZoneInfo("Europe/London")

_KICKOFF_RE = re.compile(r"(\d{1,2}):(\d{2})")

FIXTURE_SELECTOR = ".qa-match-block .sp-c-fixture"
HOME_NAME_SELECTOR = ".sp-c-fixture__team-name--home .sp-c-fixture__team-name-trunc"
AWAY_NAME_SELECTOR = ".sp-c-fixture__team-name--away .sp-c-fixture__team-name-trunc"
STATUS_SELECTOR = ".sp-c-fixture__status"
HOME_SCORE_SELECTOR = ".sp-c-fixture__number--home"
AWAY_SCORE_SELECTOR = ".sp-c-fixture__number--away"


def map_status(label: str) -> FixtureStatus:
    """Map the BBC status cell to FixtureStatus. Any other label means in play."""
    text = (label or "").strip()
    if not text:
        return FixtureStatus.UNKNOWN
    if "FT" in text:
        return FixtureStatus.FINISHED
    if "PST" in text:
        return FixtureStatus.POSTPONED
    if text == "HT":
        return FixtureStatus.HALFTIME
    if _KICKOFF_RE.search(text):
        return FixtureStatus.NOT_STARTED
    return FixtureStatus.LIVE


def _kickoff(day: date, label: str) -> datetime:
    match = _KICKOFF_RE.search(label or "")
    if not match:
        return day_start_utc(day)
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return day_start_utc(day)
    local = datetime.combine(day, dt_time(hour, minute), tzinfo=LONDON_TZ)
    return local.astimezone(timezone.utc)


def _text(node, selector: str) -> str:
    found = node.select_one(selector)
    return found.get_text(strip=True) if found else ""


def parse_fixtures_page(html: str, day: date) -> list[SourceReport]:
    soup = BeautifulSoup(html, "html.parser")
    reports: list[SourceReport] = []
    for fixture in soup.select(FIXTURE_SELECTOR):
        home = _text(fixture, HOME_NAME_SELECTOR)
        away = _text(fixture, AWAY_NAME_SELECTOR)
        if not home or not away:
            continue
        label = _text(fixture, STATUS_SELECTOR)
        reports.append(
            SourceReport(
                source=SourceIdentity.BBC_SPORT,
                home_team=home,
                away_team=away,
                kickoff=_kickoff(day, label),
                status=map_status(label),
                score_home=parse_int(_text(fixture, HOME_SCORE_SELECTOR)),
                score_away=parse_int(_text(fixture, AWAY_SCORE_SELECTOR)),
            )
        )
    return reports


class BBCSportAdapter(SourceAdapter):
    source = SourceIdentity.BBC_SPORT

    def __init__(self, settings: Optional[ReliabilitySettings] = None) -> None:
        super().__init__(settings)
        self._http = self._make_client(self._settings.bbc_base_url)

    async def _fetch(self, day: date) -> list[SourceReport]:
        resp = await self._http.get(f"/sport/football/scores-fixtures/{day.isoformat()}")
        return parse_fixtures_page(resp.text, day)
