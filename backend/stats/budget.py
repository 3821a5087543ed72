"""
Daily request budget for the rate-limited origin stats API.

One counter per UTC day (Redis key api_requests:<YYYY-MM-DD>) against a fixed
ceiling. Lower priorities are cut off early to reserve the tail of the budget:
  - count >= limit                       -> deny everything
  - low    and count >= 80% of the limit -> deny
  - medium and count >= 90% of the limit -> deny
The budget fails open: if Redis errors, requests are allowed. Without Redis a
process-wide counter (reset when the UTC day changes) stands in.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional

from shared.models.domain import BudgetStatus, utcnow
from shared.models.enums import RequestPriority
from shared.utils.logging import get_logger
from shared.utils.metrics import BUDGET_USED
from shared.utils.redis_manager import RedisManager, request_budget_key

from stats.config import StatsSettings, get_stats_settings

logger = get_logger(__name__)


class _LocalCounter:
    """In-process daily counter."""

    def __init__(self) -> None:
        self.day = ""
        self.count = 0
        self.lock = asyncio.Lock()

    def roll(self, day: str) -> None:
        if day != self.day:
            self.day = day
            self.count = 0


class RequestBudgetManager:
    """Admission control and accounting for origin API calls."""

    def __init__(
        self,
        redis: Optional[RedisManager] = None,
        settings: Optional[StatsSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._redis = redis
        self._settings = settings or get_stats_settings()
        self._clock = clock
        self._local = _LocalCounter()

    @property
    def limit(self) -> int:
        return self._settings.daily_request_limit

    def _day(self) -> str:
        return self._clock().date().isoformat()

    def _key(self) -> str:
        return request_budget_key(self._day())

    async def get_current_request_count(self) -> int:
        if self._redis is None:
            async with self._local.lock:
                self._local.roll(self._day())
                return self._local.count
        try:
            return await self._redis.get_int(self._key())
        except Exception as exc:
            logger.warning("budget_count_read_failed", error=str(exc))
            return 0

    async def can_make_request(self, priority: RequestPriority = RequestPriority.MEDIUM) -> bool:
        if self._redis is None:
            current = await self.get_current_request_count()
        else:
            try:
                current = await self._redis.get_int(self._key())
            except Exception as exc:
                logger.warning("budget_check_failed_open", priority=priority.value, error=str(exc))
                return True

        limit = self.limit
        if current >= limit:
            logger.warning("budget_daily_limit_reached", used=current, limit=limit)
            return False
        if priority == RequestPriority.LOW and current >= limit * self._settings.low_priority_threshold:
            logger.info("budget_low_priority_blocked", used=current, limit=limit)
            return False
        if priority == RequestPriority.MEDIUM and current >= limit * self._settings.medium_priority_threshold:
            logger.info("budget_medium_priority_blocked", used=current, limit=limit)
            return False
        logger.debug("budget_request_allowed", priority=priority.value, used=current, limit=limit)
        return True

    async def increment_request_count(self) -> None:
        """Count one dispatched origin request. Errors are logged, never raised."""
        if self._redis is None:
            async with self._local.lock:
                self._local.roll(self._day())
                self._local.count += 1
                count = self._local.count
        else:
            try:
                count = await self._redis.incr_with_expiry(self._key(), self._settings.budget_key_ttl_s)
            except Exception as exc:
                logger.warning("budget_increment_failed", error=str(exc))
                return

        BUDGET_USED.set(count)
        if count >= self.limit * self._settings.medium_priority_threshold:
            logger.warning("budget_approaching_limit", used=count, limit=self.limit)
        else:
            logger.debug("budget_incremented", used=count, limit=self.limit)

    async def get_remaining_requests(self) -> int:
        return max(0, self.limit - await self.get_current_request_count())

    async def reset_request_count(self) -> None:
        if self._redis is None:
            async with self._local.lock:
                self._local.day = self._day()
                self._local.count = 0
        else:
            try:
                await self._redis.delete(self._key())
            except Exception as exc:
                logger.warning("budget_reset_failed", error=str(exc))
                return
        BUDGET_USED.set(0)
        logger.info("budget_reset")

    async def get_budget_status(self) -> BudgetStatus:
        used = await self.get_current_request_count()
        return BudgetStatus(
            used=used,
            limit=self.limit,
            remaining=self.limit - used,
            percentage_used=round(used / self.limit * 100) if self.limit else 100,
        )

    def league_priority(self, league_id: int) -> RequestPriority:
        if league_id in self._settings.priority_leagues:
            return RequestPriority.HIGH
        return RequestPriority.MEDIUM
