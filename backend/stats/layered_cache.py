"""
Read-through cache for derived statistics.

Lookup order for one key:
  1. fast tier (Redis JSON with TTL)                     hit -> return
  2. durable tier (PostgreSQL row with last_updated)     fresh -> backfill fast tier, return
     (the backfill TTL never outlives the durable freshness window)
  3. request budget gate                                 denied -> None
  4. origin fetch -> count request -> parse -> write durable and fast tier -> return

Tier read/write errors are logged and treated as misses. Origin and parse
errors are logged and return None; nothing raises to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel

from shared.models.enums import CacheTier, RequestPriority
from shared.models.domain import utcnow
from shared.utils.logging import get_logger
from shared.utils.metrics import CACHE_LOOKUPS, ORIGIN_ERRORS
from shared.utils.redis_manager import RedisManager

from stats.budget import RequestBudgetManager
from stats.origin import OriginNotConfigured
from stats.repository import DurableEntry

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class CachePolicy(Generic[T]):
    """Per-entity wiring of the two tiers."""
    entity: str
    model: type[T]
    fast_key: Callable[[str], str]
    fast_ttl_s: int
    freshness_s: int
    load_durable: Callable[[str], Awaitable[Optional[DurableEntry]]]
    save_durable: Callable[[T], Awaitable[None]]


class LayeredCache(Generic[T]):
    def __init__(
        self,
        policy: CachePolicy[T],
        budget: RequestBudgetManager,
        redis: Optional[RedisManager] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._policy = policy
        self._budget = budget
        self._redis = redis
        self._clock = clock

    @property
    def freshness(self) -> timedelta:
        return timedelta(seconds=self._policy.freshness_s)

    def _record(self, tier: CacheTier) -> None:
        CACHE_LOOKUPS.labels(entity=self._policy.entity, tier=tier.value).inc()

    # ── Fast tier ───────────────────────────────────────────────────────
    async def _read_fast(self, key: str) -> Optional[T]:
        if self._redis is None:
            return None
        try:
            data = await self._redis.get_json(self._policy.fast_key(key))
            if data is None:
                return None
            return self._policy.model.model_validate(data)
        except Exception as exc:
            logger.warning("cache_fast_read_failed", entity=self._policy.entity, key=key, error=str(exc))
            return None

    async def _write_fast(self, key: str, value: T, ttl_s: Optional[int] = None) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set_json(
                self._policy.fast_key(key), value.model_dump(mode="json"), ttl_s or self._policy.fast_ttl_s
            )
        except Exception as exc:
            logger.warning("cache_fast_write_failed", entity=self._policy.entity, key=key, error=str(exc))

    # ── Durable tier ────────────────────────────────────────────────────
    async def _read_durable(self, key: str) -> Optional[tuple[T, datetime]]:
        """Fresh durable value with its last_updated, or None."""
        try:
            entry = await self._policy.load_durable(key)
        except Exception as exc:
            logger.warning("cache_durable_read_failed", entity=self._policy.entity, key=key, error=str(exc))
            return None
        if entry is None:
            return None
        age = self._clock() - entry.last_updated
        if age >= self.freshness:
            logger.info(
                "cache_durable_stale",
                entity=self._policy.entity,
                key=key,
                age_h=round(age.total_seconds() / 3600, 1),
            )
            return None
        try:
            return self._policy.model.model_validate(entry.payload), entry.last_updated
        except Exception as exc:
            logger.warning("cache_durable_payload_invalid", entity=self._policy.entity, key=key, error=str(exc))
            return None

    async def _write_durable(self, key: str, value: T) -> None:
        try:
            await self._policy.save_durable(value)
        except Exception as exc:
            logger.warning("cache_durable_write_failed", entity=self._policy.entity, key=key, error=str(exc))

    # ── Lookup ──────────────────────────────────────────────────────────
    async def get(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        parse: Callable[[Any, datetime], T],
        priority: RequestPriority = RequestPriority.MEDIUM,
        allow_origin: bool = True,
    ) -> Optional[T]:
        """
        Serve key from the cheapest tier that has it.

        Args:
            fetch: Dispatches the origin request and returns the raw payload.
            parse: Turns the raw payload into T; receives the fetch time as last_updated.
            priority: Budget tier used if the origin must be called.
            allow_origin: False serves cached tiers only.
        """
        value = await self._read_fast(key)
        if value is not None:
            self._record(CacheTier.FAST)
            return value

        durable = await self._read_durable(key)
        if durable is not None:
            value, last_updated = durable
            self._record(CacheTier.DURABLE)
            # Backfilled entries expire no later than the durable record goes stale.
            remaining_s = int((last_updated + self.freshness - self._clock()).total_seconds())
            ttl_s = min(self._policy.fast_ttl_s, remaining_s)
            if ttl_s > 0:
                await self._write_fast(key, value, ttl_s)
            return value

        if not allow_origin:
            self._record(CacheTier.MISS)
            logger.info("cache_origin_skipped", entity=self._policy.entity, key=key)
            return None

        if not await self._budget.can_make_request(priority):
            self._record(CacheTier.DENIED)
            logger.info("cache_origin_denied", entity=self._policy.entity, key=key, priority=priority.value)
            return None

        now = self._clock()
        try:
            raw = await fetch()
        except OriginNotConfigured as exc:
            self._record(CacheTier.MISS)
            logger.error("cache_origin_not_configured", entity=self._policy.entity, error=str(exc))
            return None
        except Exception as exc:
            # The request went out, so it still counts against the budget.
            await self._budget.increment_request_count()
            self._record(CacheTier.MISS)
            ORIGIN_ERRORS.labels(entity=self._policy.entity).inc()
            logger.warning("cache_origin_fetch_failed", entity=self._policy.entity, key=key, error=str(exc))
            return None
        await self._budget.increment_request_count()

        try:
            value = parse(raw, now)
        except Exception as exc:
            self._record(CacheTier.MISS)
            ORIGIN_ERRORS.labels(entity=self._policy.entity).inc()
            logger.warning(
                "cache_origin_payload_invalid",
                entity=self._policy.entity,
                key=key,
                error=str(exc),
                payload=str(raw)[:500],
            )
            return None

        await self._write_durable(key, value)
        await self._write_fast(key, value)
        self._record(CacheTier.ORIGIN)
        logger.info("cache_origin_fetched", entity=self._policy.entity, key=key)
        return value
