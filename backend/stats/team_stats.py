"""
Team statistics service.

Fast tier 1 h, durable freshness 24 h. The origin is only called for priority
leagues unless FW_STATS_FETCH_NON_PRIORITY_LEAGUES is set, in which case other
leagues fetch at medium priority.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from shared.models.domain import TeamStatistics, utcnow
from shared.models.enums import RequestPriority
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager, team_stats_key

from stats.budget import RequestBudgetManager
from stats.config import StatsSettings, get_stats_settings
from stats.layered_cache import CachePolicy, LayeredCache
from stats.origin import ApiFootballClient
from stats.parsers import parse_team_stats, team_stats_id
from stats.repository import StatsRepository

logger = get_logger(__name__)


def _fast_key(key: str) -> str:
    team_id, _, season = key.partition("-")
    return team_stats_key(team_id, season)


class TeamStatsService:
    def __init__(
        self,
        origin: ApiFootballClient,
        repository: StatsRepository,
        budget: RequestBudgetManager,
        redis: Optional[RedisManager] = None,
        settings: Optional[StatsSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._origin = origin
        self._budget = budget
        self._settings = settings or get_stats_settings()
        self._cache: LayeredCache[TeamStatistics] = LayeredCache(
            CachePolicy(
                entity="team_stats",
                model=TeamStatistics,
                fast_key=_fast_key,
                fast_ttl_s=self._settings.team_stats_fast_ttl_s,
                freshness_s=self._settings.team_stats_freshness_s,
                load_durable=repository.load_team_stats,
                save_durable=repository.save_team_stats,
            ),
            budget,
            redis,
            clock,
        )

    async def get_team_statistics(
        self,
        team_id: int,
        league_id: int,
        season: Optional[int] = None,
    ) -> Optional[TeamStatistics]:
        season = season or self._settings.default_season
        priority = self._budget.league_priority(league_id)
        allow_origin = priority == RequestPriority.HIGH or self._settings.fetch_non_priority_leagues
        if not allow_origin:
            logger.debug("team_stats_non_priority_league", team_id=team_id, league_id=league_id)

        return await self._cache.get(
            team_stats_id(team_id, season),
            fetch=lambda: self._origin.team_statistics(team_id, league_id, season),
            parse=lambda raw, now: parse_team_stats(raw, team_id, league_id, season, now),
            priority=priority,
            allow_origin=allow_origin,
        )

    async def batch_get_team_statistics(
        self,
        teams: Iterable[Sequence[int]],
    ) -> dict[int, Optional[TeamStatistics]]:
        """
        Fetch many teams in parallel.

        Each entry is (team_id, league_id) or (team_id, league_id, season).
        """
        entries = [tuple(t) for t in teams]

        async def one(entry: tuple[int, ...]) -> Optional[TeamStatistics]:
            team_id, league_id = entry[0], entry[1]
            season = entry[2] if len(entry) > 2 else None
            return await self.get_team_statistics(team_id, league_id, season)

        results = await asyncio.gather(*(one(e) for e in entries))
        return {entry[0]: stats for entry, stats in zip(entries, results)}
