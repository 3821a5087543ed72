"""
Unit tests for source adapters: page/feed parsing, status mapping and the
isolation boundary in SourceAdapter.fetch_reports.

Run: pytest backend/tests/test_sources.py -v
"""
from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from reliability.config import ReliabilitySettings
from reliability.sources import bbc, besoccer, flashscore, football_data
from reliability.sources.base import SourceAdapter
from reliability.sources.flashscore import FlashscoreAdapter
from shared.models.domain import SourceReport
from shared.models.enums import FixtureStatus, SourceIdentity
from shared.utils.circuit_breaker import CircuitBreaker
from tests.conftest import make_report

DAY = date(2024, 5, 11)


# ── BBC Sport ───────────────────────────────────────────────────────────

BBC_PAGE = """
<html><body>
<div class="qa-match-block">
  <h3>Premier League</h3>
  <ul>
    <li><article class="sp-c-fixture">
      <span class="sp-c-fixture__team-name--home"><abbr class="sp-c-fixture__team-name-trunc">Arsenal</abbr></span>
      <span class="sp-c-fixture__number--home">2</span>
      <span class="sp-c-fixture__number--away">1</span>
      <span class="sp-c-fixture__team-name--away"><abbr class="sp-c-fixture__team-name-trunc">Chelsea</abbr></span>
      <span class="sp-c-fixture__status">FT</span>
    </article></li>
    <li><article class="sp-c-fixture">
      <span class="sp-c-fixture__team-name--home"><abbr class="sp-c-fixture__team-name-trunc">Everton</abbr></span>
      <span class="sp-c-fixture__team-name--away"><abbr class="sp-c-fixture__team-name-trunc">Fulham</abbr></span>
      <span class="sp-c-fixture__status">17:30</span>
    </article></li>
    <li><article class="sp-c-fixture">
      <span class="sp-c-fixture__team-name--home"><abbr class="sp-c-fixture__team-name-trunc"></abbr></span>
      <span class="sp-c-fixture__team-name--away"><abbr class="sp-c-fixture__team-name-trunc">Nobody</abbr></span>
    </article></li>
  </ul>
</div>
</body></html>
"""


def test_bbc_parses_fixtures() -> None:
    reports = bbc.parse_fixtures_page(BBC_PAGE, DAY)
    assert len(reports) == 2

    finished, upcoming = reports
    assert finished.source == SourceIdentity.BBC_SPORT
    assert (finished.home_team, finished.away_team) == ("Arsenal", "Chelsea")
    assert finished.status == FixtureStatus.FINISHED
    assert (finished.score_home, finished.score_away) == (2, 1)
    assert finished.kickoff == datetime(2024, 5, 11, tzinfo=timezone.utc)

    assert upcoming.status == FixtureStatus.NOT_STARTED
    assert upcoming.score_home is None
    # 17:30 BST is 16:30 UTC
    assert upcoming.kickoff == datetime(2024, 5, 11, 16, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "label,expected",
    [
        ("FT", FixtureStatus.FINISHED),
        ("AET FT", FixtureStatus.FINISHED),
        ("PST", FixtureStatus.POSTPONED),
        ("HT", FixtureStatus.HALFTIME),
        ("15:00", FixtureStatus.NOT_STARTED),
        ("67 mins", FixtureStatus.LIVE),
        ("", FixtureStatus.UNKNOWN),
    ],
)
def test_bbc_status_map(label: str, expected: FixtureStatus) -> None:
    assert bbc.map_status(label) == expected


# ── BeSoccer ────────────────────────────────────────────────────────────

BESOCCER_PAGE = """
<div class="panel">
  <a class="match-link" href="/match/arsenal/chelsea">
    <div class="team-info"><div class="team-name">Arsenal</div></div>
    <div class="marker">2-1</div>
    <div class="status">Final</div>
    <div class="team-info"><div class="team-name">Chelsea</div></div>
  </a>
  <a class="match-link" href="/match/everton/fulham">
    <div class="team-info"><div class="team-name">Everton</div></div>
    <div class="marker">20:00</div>
    <div class="team-info"><div class="team-name">Fulham</div></div>
  </a>
  <a class="match-link" href="/match/leeds/hull">
    <div class="team-info"><div class="team-name">Leeds</div></div>
    <div class="marker">0-0</div>
    <div class="status">34'</div>
    <div class="team-info"><div class="team-name">Hull</div></div>
  </a>
</div>
"""


def test_besoccer_parses_matches() -> None:
    reports = besoccer.parse_livescore_page(BESOCCER_PAGE, DAY)
    assert [(r.home_team, r.away_team) for r in reports] == [
        ("Arsenal", "Chelsea"),
        ("Everton", "Fulham"),
        ("Leeds", "Hull"),
    ]
    final, upcoming, live = reports
    assert (final.status, final.score_home, final.score_away) == (FixtureStatus.FINISHED, 2, 1)
    assert (upcoming.status, upcoming.score_home) == (FixtureStatus.NOT_STARTED, None)
    assert (live.status, live.score_home, live.score_away) == (FixtureStatus.LIVE, 0, 0)
    assert all(r.source == SourceIdentity.BESOCCER for r in reports)


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Final", FixtureStatus.FINISHED),
        ("FT", FixtureStatus.FINISHED),
        ("Postponed", FixtureStatus.POSTPONED),
        ("Live", FixtureStatus.LIVE),
        ("78'", FixtureStatus.LIVE),
        ("NS", FixtureStatus.NOT_STARTED),
    ],
)
def test_besoccer_status_map(label: str, expected: FixtureStatus) -> None:
    assert besoccer.map_status(label) == expected


def test_besoccer_marker_without_score() -> None:
    assert besoccer.parse_marker("20:00") == (None, None)
    assert besoccer.parse_marker("") == (None, None)
    assert besoccer.parse_marker("3-0") == (3, 0)


# ── Flashscore ──────────────────────────────────────────────────────────

FEED = (
    "SA÷1¬~ZA÷ENGLAND: Premier League¬ZEE÷dYlOSQOD¬~"
    "AA÷g_1_abc¬AD÷1715436000¬AB÷3¬AC÷3¬CX÷Arsenal¬AE÷Arsenal¬AF÷Chelsea¬AG÷2¬AH÷1¬~"
    "AA÷g_1_def¬AD÷1715443200¬AB÷2¬AC÷38¬AE÷Everton¬AF÷Fulham¬AG÷0¬AH÷0¬~"
    "AA÷g_1_ghi¬AD÷1715450400¬AB÷1¬AC÷1¬AE÷Leeds¬AF÷Hull¬~"
    "AA÷g_1_bad¬AE÷Missing¬AF÷Kickoff¬~"
)


def test_flashscore_parses_feed() -> None:
    reports = flashscore.parse_feed(FEED)
    assert [r.raw_id for r in reports] == ["g_1_abc", "g_1_def", "g_1_ghi"]

    finished, halftime, upcoming = reports
    assert finished.kickoff == datetime(2024, 5, 11, 14, 0, tzinfo=timezone.utc)
    assert finished.status == FixtureStatus.FINISHED
    assert (finished.score_home, finished.score_away) == (2, 1)
    assert finished.competition == "ENGLAND: Premier League"
    assert halftime.status == FixtureStatus.HALFTIME
    assert upcoming.status == FixtureStatus.NOT_STARTED
    assert upcoming.score_home is None


def test_flashscore_postponed_detail_overrides_coarse_status() -> None:
    assert flashscore.map_status("1", "4") == FixtureStatus.POSTPONED
    assert flashscore.map_status("2", None) == FixtureStatus.LIVE
    assert flashscore.map_status(None, None) == FixtureStatus.UNKNOWN


def test_flashscore_feed_path_uses_day_offset() -> None:
    adapter = FlashscoreAdapter(ReliabilitySettings(), today=lambda: DAY)
    assert adapter.feed_path(DAY) == "/x/feed/f_1_0_3_en_1"
    assert adapter.feed_path(date(2024, 5, 13)) == "/x/feed/f_1_2_3_en_1"
    assert adapter.feed_path(date(2024, 5, 10)) == "/x/feed/f_1_-1_3_en_1"


# ── Football-Data.org ───────────────────────────────────────────────────

FOOTBALL_DATA_PAYLOAD = {
    "matches": [
        {
            "id": 436000,
            "utcDate": "2024-05-11T14:00:00Z",
            "status": "FINISHED",
            "competition": {"name": "Premier League"},
            "homeTeam": {"name": "Arsenal FC", "shortName": "Arsenal"},
            "awayTeam": {"name": "Chelsea FC", "shortName": "Chelsea"},
            "score": {"fullTime": {"home": 2, "away": 1}},
        },
        {
            "id": 436001,
            "utcDate": "2024-05-11T16:30:00Z",
            "status": "TIMED",
            "homeTeam": {"name": "Everton FC"},
            "awayTeam": {"name": "Fulham FC"},
            "score": {"fullTime": {"home": None, "away": None}},
        },
        {"id": 436002, "utcDate": "", "homeTeam": {"name": "X"}, "awayTeam": {"name": "Y"}},
    ]
}


def test_football_data_parses_matches() -> None:
    reports = football_data.parse_matches(FOOTBALL_DATA_PAYLOAD)
    assert len(reports) == 2
    finished, timed = reports
    assert finished.source == SourceIdentity.BASELINE_API
    assert finished.home_team == "Arsenal FC"
    assert finished.status == FixtureStatus.FINISHED
    assert (finished.score_home, finished.score_away) == (2, 1)
    assert finished.competition == "Premier League"
    assert finished.raw_id == "436000"
    assert timed.status == FixtureStatus.NOT_STARTED
    assert timed.score_home is None


@pytest.mark.parametrize(
    "status,expected",
    [
        ("SCHEDULED", FixtureStatus.NOT_STARTED),
        ("IN_PLAY", FixtureStatus.LIVE),
        ("PAUSED", FixtureStatus.HALFTIME),
        ("AWARDED", FixtureStatus.FINISHED),
        ("SUSPENDED", FixtureStatus.POSTPONED),
        ("WHATEVER", FixtureStatus.UNKNOWN),
    ],
)
def test_football_data_status_map(status: str, expected: FixtureStatus) -> None:
    assert football_data.map_status(status) == expected


@pytest.mark.asyncio
async def test_football_data_without_key_returns_empty() -> None:
    adapter = football_data.FootballDataAdapter(ReliabilitySettings(), api_key="")
    adapter._http = MagicMock()
    adapter._http.start = AsyncMock()
    adapter._http.get = AsyncMock()
    assert await adapter.fetch_reports(DAY) == []
    adapter._http.get.assert_not_called()


# ── SourceAdapter isolation boundary ────────────────────────────────────

class ScriptedAdapter(SourceAdapter):
    """Adapter whose _fetch behaviour is supplied by the test."""

    source = SourceIdentity.BESOCCER

    def __init__(self, behaviour, settings: ReliabilitySettings, breaker: CircuitBreaker | None = None) -> None:
        super().__init__(settings, breaker)
        self.behaviour = behaviour
        self.calls = 0

    async def _fetch(self, day: date) -> list[SourceReport]:
        self.calls += 1
        return await self.behaviour(day)


@pytest.fixture
def fast_settings() -> ReliabilitySettings:
    return ReliabilitySettings(adapter_deadline_s=0.05, circuit_failure_threshold=2, circuit_recovery_s=60)


@pytest.mark.asyncio
async def test_adapter_returns_reports(fast_settings: ReliabilitySettings) -> None:
    async def ok(day: date) -> list[SourceReport]:
        return [make_report(SourceIdentity.BESOCCER)]

    adapter = ScriptedAdapter(ok, fast_settings)
    assert len(await adapter.fetch_reports(DAY)) == 1


@pytest.mark.asyncio
async def test_adapter_error_becomes_empty(fast_settings: ReliabilitySettings) -> None:
    async def boom(day: date) -> list[SourceReport]:
        request = httpx.Request("GET", "https://www.besoccer.com/livescore/2024-05-11")
        raise httpx.HTTPStatusError("503", request=request, response=httpx.Response(503, request=request))

    adapter = ScriptedAdapter(boom, fast_settings)
    assert await adapter.fetch_reports(DAY) == []


@pytest.mark.asyncio
async def test_hanging_adapter_times_out(fast_settings: ReliabilitySettings) -> None:
    async def hang(day: date) -> list[SourceReport]:
        await asyncio.sleep(10)
        return []

    adapter = ScriptedAdapter(hang, fast_settings)
    assert await asyncio.wait_for(adapter.fetch_reports(DAY), timeout=2) == []


@pytest.mark.asyncio
async def test_repeated_failures_open_circuit(fast_settings: ReliabilitySettings) -> None:
    async def boom(day: date) -> list[SourceReport]:
        raise ValueError("markup changed")

    adapter = ScriptedAdapter(boom, fast_settings)
    for _ in range(3):
        assert await adapter.fetch_reports(DAY) == []
    # Third call is rejected by the open circuit without reaching _fetch
    assert adapter.calls == 2
