"""
Match enrichment: team statistics for both sides plus head-to-head, for a
whole day's slate. Fixtures are independent and enriched concurrently, bounded
so a large slate does not burst the origin.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Iterable, Optional

from shared.models.domain import FixtureEnrichment, StatsFixtureRef
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

from stats.budget import RequestBudgetManager
from stats.config import StatsSettings, get_stats_settings
from stats.h2h import HeadToHeadService
from stats.origin import ApiFootballClient
from stats.repository import StatsRepository
from stats.team_stats import TeamStatsService

logger = get_logger(__name__)


class MatchEnrichmentService:
    def __init__(
        self,
        team_stats: TeamStatsService,
        h2h: HeadToHeadService,
        settings: Optional[StatsSettings] = None,
    ) -> None:
        self._team_stats = team_stats
        self._h2h = h2h
        self._settings = settings or get_stats_settings()

    async def enrich_fixture(self, ref: StatsFixtureRef) -> FixtureEnrichment:
        home, away, h2h = await asyncio.gather(
            self._team_stats.get_team_statistics(ref.home_team_id, ref.league_id, ref.season),
            self._team_stats.get_team_statistics(ref.away_team_id, ref.league_id, ref.season),
            self._h2h.get_h2h_data(ref.home_team_id, ref.away_team_id),
        )
        return FixtureEnrichment(home_stats=home, away_stats=away, h2h=h2h)

    async def enrich_fixtures(self, refs: Iterable[StatsFixtureRef]) -> dict[str, FixtureEnrichment]:
        refs = list(refs)
        sem = asyncio.Semaphore(max(1, self._settings.enrichment_max_concurrent))

        async def run(ref: StatsFixtureRef) -> FixtureEnrichment:
            async with sem:
                return await self.enrich_fixture(ref)

        results = await asyncio.gather(*(run(r) for r in refs))
        enriched = {ref.fixture_id: result for ref, result in zip(refs, results)}
        logger.info(
            "enrichment_complete",
            fixtures=len(refs),
            complete=sum(1 for e in enriched.values() if e.has_complete_data),
        )
        return enriched


@dataclass
class StatsStack:
    """Wired stats services sharing one budget, origin client and Redis."""
    budget: RequestBudgetManager
    origin: ApiFootballClient
    team_stats: TeamStatsService
    h2h: HeadToHeadService
    enrichment: MatchEnrichmentService

    async def close(self) -> None:
        await self.origin.close()


def build_stats_stack(
    db: DatabaseManager,
    redis: Optional[RedisManager] = None,
    settings: Optional[StatsSettings] = None,
) -> StatsStack:
    settings = settings or get_stats_settings()
    budget = RequestBudgetManager(redis, settings)
    origin = ApiFootballClient(stats_settings=settings)
    repository = StatsRepository(db)
    team_stats = TeamStatsService(origin, repository, budget, redis, settings)
    h2h = HeadToHeadService(origin, repository, budget, redis, settings)
    return StatsStack(
        budget=budget,
        origin=origin,
        team_stats=team_stats,
        h2h=h2h,
        enrichment=MatchEnrichmentService(team_stats, h2h, settings),
    )
