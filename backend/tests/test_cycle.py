"""
Unit tests for the fetch-and-ingest cycle.

Run: pytest backend/tests/test_cycle.py -v
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from reliability.config import ReliabilitySettings
from reliability.cycle import build_adapters, collect_reports, cycle_days, run_cycle
from reliability.orchestrator import FixtureIngestor
from reliability.sources import BBCSportAdapter, FlashscoreAdapter
from shared.models.enums import SourceIdentity
from tests.conftest import Clock, FakeFixtureRepository, make_report

DAY = date(2024, 5, 11)


def _adapter(name: str, reports: list) -> MagicMock:
    adapter = MagicMock()
    adapter.name = name
    adapter.fetch_reports = AsyncMock(return_value=reports)
    return adapter


def test_build_adapters_follows_enabled_sources() -> None:
    settings = ReliabilitySettings(enabled_sources=[SourceIdentity.BBC_SPORT, SourceIdentity.FLASHSCORE])
    adapters = build_adapters(settings)
    assert [type(a) for a in adapters] == [BBCSportAdapter, FlashscoreAdapter]


def test_cycle_days_start_from_nairobi_today() -> None:
    # 22:00 UTC on the 10th is already the 11th in Nairobi
    now = datetime(2024, 5, 10, 22, 0, tzinfo=timezone.utc)
    assert cycle_days(3, now) == [date(2024, 5, 11), date(2024, 5, 12), date(2024, 5, 13)]


@pytest.mark.asyncio
async def test_collect_reports_merges_all_sources() -> None:
    bbc = _adapter("bbc_sport", [make_report(SourceIdentity.BBC_SPORT)])
    flash = _adapter("flashscore", [make_report(SourceIdentity.FLASHSCORE)])
    dead = _adapter("besoccer", [])

    reports = await collect_reports([bbc, dead, flash], DAY)

    assert [r.source for r in reports] == [SourceIdentity.BBC_SPORT, SourceIdentity.FLASHSCORE]
    bbc.fetch_reports.assert_awaited_once_with(DAY)


@pytest.mark.asyncio
async def test_run_cycle_ingests_each_day(fixture_repo: FakeFixtureRepository, clock: Clock) -> None:
    ingestor = FixtureIngestor(fixture_repo, settings=ReliabilitySettings(), clock=clock)
    adapter = _adapter("bbc_sport", [make_report(SourceIdentity.BBC_SPORT, status="FT", score_home=1, score_away=0)])

    summaries = await run_cycle(ingestor, [adapter], [DAY, date(2024, 5, 12)])

    assert list(summaries) == [DAY, date(2024, 5, 12)]
    assert summaries[DAY].created == 1
    # Same reports again on the second day: nothing changed
    assert summaries[date(2024, 5, 12)].unchanged == 1
