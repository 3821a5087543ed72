"""
Redis connection manager for FixtureWatch.
Fast cache tier for derived stats and the shared daily request counter.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Key namespaces ──────────────────────────────────────────────────────
TEAM_STATS_KEY = "team_stats:{team_id}:{season}"
H2H_KEY = "h2h:{h2h_id}"
REQUEST_BUDGET_KEY = "api_requests:{day}"


def _fmt(template: str, **kwargs: Any) -> str:
    return template.format(**kwargs)


def team_stats_key(team_id: int, season: int) -> str:
    return _fmt(TEAM_STATS_KEY, team_id=team_id, season=season)


def h2h_key(h2h_id: str) -> str:
    return _fmt(H2H_KEY, h2h_id=h2h_id)


def request_budget_key(day: str) -> str:
    return _fmt(REQUEST_BUDGET_KEY, day=day)


class RedisManager:
    """Manages async Redis connection pool and provides typed helpers."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._pool: Optional[Redis] = None

    async def connect(self) -> None:
        """Initialize the connection pool."""
        if not self._settings.redis_url:
            raise RuntimeError("Redis is disabled (FW_REDIS_URL is empty).")
        self._pool = aioredis.from_url(
            self._settings.redis_url,
            max_connections=self._settings.redis_max_connections,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=self._settings.redis_socket_timeout_s,
            socket_keepalive=True,
            retry_on_timeout=True,
        )
        await self._pool.ping()
        logger.info("redis_connected")

    async def disconnect(self) -> None:
        """Graceful shutdown."""
        if self._pool:
            await self._pool.aclose()
            logger.info("redis_disconnected")

    @property
    def client(self) -> Redis:
        if self._pool is None:
            raise RuntimeError("RedisManager not connected. Call connect() first.")
        return self._pool

    # ── JSON cache helpers ──────────────────────────────────────────────
    async def get_json(self, key: str) -> Optional[Any]:
        """Return the decoded JSON value at key, or None when absent."""
        raw = await self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set_json(self, key: str, value: Any, ttl_s: int) -> None:
        """Store a JSON-serialisable value with TTL."""
        await self.client.set(key, json.dumps(value, default=str), ex=ttl_s)

    # ── Counters ────────────────────────────────────────────────────────
    async def get_int(self, key: str) -> int:
        val = await self.client.get(key)
        return int(val) if val else 0

    async def incr_with_expiry(self, key: str, ttl_s: int) -> int:
        """Atomically increment key and (re)arm its expiry. Returns new count."""
        pipe = self.client.pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, ttl_s)
        results = await pipe.execute()
        return int(results[0])

    async def delete(self, key: str) -> None:
        await self.client.delete(key)
