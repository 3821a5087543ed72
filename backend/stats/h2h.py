"""
Head-to-head service. Fast tier and durable freshness are both 7 days.

Records are stored under the sorted pair "{low}-{high}" and always describe the
pair in that order (team1 = lower id), whichever order the caller passes.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Iterable, Optional

from shared.models.domain import HeadToHead, utcnow
from shared.models.enums import RequestPriority
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager, h2h_key

from stats.budget import RequestBudgetManager
from stats.config import StatsSettings, get_stats_settings
from stats.layered_cache import CachePolicy, LayeredCache
from stats.origin import ApiFootballClient
from stats.parsers import h2h_id, parse_h2h
from stats.repository import StatsRepository

logger = get_logger(__name__)


class HeadToHeadService:
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
        self._settings = settings or get_stats_settings()
        self._cache: LayeredCache[HeadToHead] = LayeredCache(
            CachePolicy(
                entity="h2h",
                model=HeadToHead,
                fast_key=h2h_key,
                fast_ttl_s=self._settings.h2h_fast_ttl_s,
                freshness_s=self._settings.h2h_freshness_s,
                load_durable=repository.load_h2h,
                save_durable=repository.save_h2h,
            ),
            budget,
            redis,
            clock,
        )

    async def get_h2h_data(self, team1_id: int, team2_id: int) -> Optional[HeadToHead]:
        if team1_id == team2_id:
            logger.warning("h2h_same_team", team_id=team1_id)
            return None
        low, high = sorted((team1_id, team2_id))
        return await self._cache.get(
            h2h_id(low, high),
            fetch=lambda: self._origin.head_to_head(low, high, self._settings.h2h_last_meetings),
            parse=lambda raw, now: parse_h2h(raw, low, high, now),
            priority=RequestPriority.MEDIUM,
        )

    async def batch_get_h2h_data(
        self,
        matchups: Iterable[tuple[int, int]],
    ) -> dict[str, Optional[HeadToHead]]:
        pairs = list(matchups)
        results = await asyncio.gather(*(self.get_h2h_data(a, b) for a, b in pairs))
        return {h2h_id(a, b): h2h for (a, b), h2h in zip(pairs, results)}
