"""
Flashscore feed adapter (flashscore).

The feed is a flat text format: records separated by '~', fields by '¬' and
each field is 'KEY÷value'. A 'ZA' record opens a competition; each following
'AA' record is one match:
  AA match id   AD kickoff (unix seconds)   AB coarse status   AC detailed status
  AE / CX home name   AF away name   AG / AH home / away score
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Optional

from shared.models.domain import SourceReport
from shared.models.enums import FixtureStatus, SourceIdentity
from shared.utils.logging import get_logger

from reliability.config import ReliabilitySettings
from reliability.sources.base import SourceAdapter, parse_int

logger = get_logger(__name__)

RECORD_SEP = "~"
FIELD_SEP = "¬"
VALUE_SEP = "÷"

# AC (detailed status) codes
_DETAILED_STATUS: dict[str, FixtureStatus] = {
    "1": FixtureStatus.NOT_STARTED,
    "38": FixtureStatus.HALFTIME,
    "3": FixtureStatus.FINISHED,
    "10": FixtureStatus.FINISHED,  # after extra time
    "11": FixtureStatus.FINISHED,  # after penalties
    "54": FixtureStatus.FINISHED,  # awarded
    "4": FixtureStatus.POSTPONED,
    "5": FixtureStatus.POSTPONED,  # cancelled
    "36": FixtureStatus.POSTPONED,  # interrupted
    "37": FixtureStatus.POSTPONED,  # abandoned
}

# AB (coarse status) codes
_COARSE_STATUS: dict[str, FixtureStatus] = {
    "1": FixtureStatus.NOT_STARTED,
    "2": FixtureStatus.LIVE,
    "3": FixtureStatus.FINISHED,
}


def map_status(coarse: Optional[str], detailed: Optional[str]) -> FixtureStatus:
    if detailed and detailed in _DETAILED_STATUS:
        return _DETAILED_STATUS[detailed]
    return _COARSE_STATUS.get(coarse or "", FixtureStatus.UNKNOWN)


def _fields(record: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for chunk in record.split(FIELD_SEP):
        key, sep, value = chunk.partition(VALUE_SEP)
        if sep and key:
            fields[key] = value
    return fields


def parse_feed(body: str) -> list[SourceReport]:
    reports: list[SourceReport] = []
    competition: Optional[str] = None
    for record in body.split(RECORD_SEP):
        fields = _fields(record)
        if "ZA" in fields:
            competition = fields["ZA"] or None
        if "AA" not in fields:
            continue
        home = (fields.get("AE") or fields.get("CX") or "").strip()
        away = (fields.get("AF") or "").strip()
        start_ts = parse_int(fields.get("AD"))
        if not home or not away or start_ts is None:
            continue
        status = map_status(fields.get("AB"), fields.get("AC"))
        score_home = parse_int(fields.get("AG"))
        score_away = parse_int(fields.get("AH"))
        if status == FixtureStatus.NOT_STARTED:
            score_home = score_away = None
        reports.append(
            SourceReport(
                source=SourceIdentity.FLASHSCORE,
                home_team=home,
                away_team=away,
                kickoff=datetime.fromtimestamp(start_ts, tz=timezone.utc),
                status=status,
                score_home=score_home,
                score_away=score_away,
                competition=competition,
                raw_id=fields["AA"],
            )
        )
    return reports


def _today_utc() -> date:
    return datetime.now(timezone.utc).date()


class FlashscoreAdapter(SourceAdapter):
    """Day feed addressed by offset from today (0 = today, 1 = tomorrow, -1 = yesterday)."""

    source = SourceIdentity.FLASHSCORE

    def __init__(
        self,
        settings: Optional[ReliabilitySettings] = None,
        today: Callable[[], date] = _today_utc,
    ) -> None:
        super().__init__(settings)
        self._today = today
        self._http = self._make_client(
            self._settings.flashscore_feed_url,
            {"x-fsign": self._settings.flashscore_fsign, "Referer": "https://www.flashscore.com/"},
        )

    def feed_path(self, day: date) -> str:
        offset = (day - self._today()).days
        return f"/x/feed/f_1_{offset}_3_en_1"

    async def _fetch(self, day: date) -> list[SourceReport]:
        resp = await self._http.get(self.feed_path(day))
        return parse_feed(resp.text)
