"""
One fetch-and-ingest cycle: every enabled adapter fetches the day concurrently,
then all reports go through a single ingest() call.
"""
from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Sequence

from shared.models.domain import IngestSummary, SourceReport
from shared.models.enums import SourceIdentity
from shared.utils.logging import get_logger

from reliability.config import ReliabilitySettings, get_reliability_settings
from reliability.identity import NAIROBI_TZ
from reliability.orchestrator import FixtureIngestor
from reliability.sources import (
    BBCSportAdapter,
    BesoccerAdapter,
    FlashscoreAdapter,
    FootballDataAdapter,
    SourceAdapter,
)

logger = get_logger(__name__)

ADAPTER_TYPES: dict[SourceIdentity, type[SourceAdapter]] = {
    SourceIdentity.BASELINE_API: FootballDataAdapter,
    SourceIdentity.BBC_SPORT: BBCSportAdapter,
    SourceIdentity.BESOCCER: BesoccerAdapter,
    SourceIdentity.FLASHSCORE: FlashscoreAdapter,
}


def build_adapters(settings: Optional[ReliabilitySettings] = None) -> list[SourceAdapter]:
    settings = settings or get_reliability_settings()
    return [ADAPTER_TYPES[source](settings) for source in dict.fromkeys(settings.enabled_sources)]


def cycle_days(days_ahead: int, now: Optional[datetime] = None) -> list[date]:
    """Nairobi-local today plus the following days, days_ahead in total."""
    today = (now or datetime.now(timezone.utc)).astimezone(NAIROBI_TZ).date()
    return [today + timedelta(days=i) for i in range(max(1, days_ahead))]


async def collect_reports(adapters: Sequence[SourceAdapter], day: date) -> list[SourceReport]:
    """Run all adapters for one day; a failed or hanging adapter contributes nothing."""
    results = await asyncio.gather(*(adapter.fetch_reports(day) for adapter in adapters))
    reports: list[SourceReport] = []
    for adapter, batch in zip(adapters, results):
        logger.debug("cycle_source_reports", source=adapter.name, day=day.isoformat(), reports=len(batch))
        reports.extend(batch)
    return reports


async def run_cycle(
    ingestor: FixtureIngestor,
    adapters: Sequence[SourceAdapter],
    days: Sequence[date],
) -> dict[date, IngestSummary]:
    summaries: dict[date, IngestSummary] = {}
    for day in days:
        reports = await collect_reports(adapters, day)
        summaries[day] = await ingestor.ingest(reports)
    return summaries


async def run_cycle_loop(
    ingestor: FixtureIngestor,
    adapters: Sequence[SourceAdapter],
    settings: Optional[ReliabilitySettings] = None,
) -> None:
    """Run cycles forever at the configured interval."""
    settings = settings or get_reliability_settings()
    while True:
        try:
            summaries = await run_cycle(ingestor, adapters, cycle_days(settings.days_ahead))
            logger.info(
                "cycle_complete",
                days=[d.isoformat() for d in summaries],
                failed=sum(len(s.failed) for s in summaries.values()),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("cycle_error", error=str(e))
        await asyncio.sleep(settings.cycle_interval_s)
