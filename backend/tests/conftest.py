"""
Shared fixtures and in-memory fakes for the FixtureWatch test suite.
No Redis, PostgreSQL or network is needed.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Optional

import pytest

from shared.models.domain import SourceReport, UnifiedFixture
from shared.models.enums import SourceIdentity

KICKOFF = datetime(2024, 5, 11, 14, 0, tzinfo=timezone.utc)


class Clock:
    """Settable clock; advance() moves time forward."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeRedis:
    """Subset of RedisManager backed by dicts. fail=True makes every call raise."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis down")

    async def get_json(self, key: str) -> Optional[Any]:
        self._check()
        return self.store.get(key)

    async def set_json(self, key: str, value: Any, ttl_s: int) -> None:
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl_s

    async def get_int(self, key: str) -> int:
        self._check()
        return int(self.store.get(key, 0))

    async def incr_with_expiry(self, key: str, ttl_s: int) -> int:
        self._check()
        self.store[key] = int(self.store.get(key, 0)) + 1
        self.ttls[key] = ttl_s
        return self.store[key]

    async def delete(self, key: str) -> None:
        self._check()
        self.store.pop(key, None)


class FakeFixtureRepository:
    """FixtureRepository stand-in: per-id locks, write journal, optional failing ids."""

    def __init__(self) -> None:
        self.rows: dict[str, UnifiedFixture] = {}
        self.writes: list[tuple[str, str]] = []
        self.fail_ids: set[str] = set()
        self._locks: dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def locked(self, fixture_id: str) -> AsyncIterator[str]:
        lock = self._locks.setdefault(fixture_id, asyncio.Lock())
        async with lock:
            yield f"session:{fixture_id}"

    async def get(self, session: Any, fixture_id: str) -> Optional[UnifiedFixture]:
        if fixture_id in self.fail_ids:
            raise ConnectionError("durable store unavailable")
        return self.rows.get(fixture_id)

    async def upsert(self, session: Any, fixture: UnifiedFixture) -> None:
        self.writes.append(("upsert", fixture.id))
        self.rows[fixture.id] = fixture

    async def touch(self, session: Any, fixture_id: str, verified_at: datetime) -> None:
        self.writes.append(("touch", fixture_id))
        self.rows[fixture_id] = self.rows[fixture_id].model_copy(update={"last_verified_at": verified_at})

    async def load_aliases(self) -> dict[str, str]:
        return {}


def make_report(
    source: SourceIdentity = SourceIdentity.BBC_SPORT,
    home: str = "Arsenal",
    away: str = "Chelsea",
    kickoff: datetime = KICKOFF,
    status: str = "NS",
    score_home: Optional[int] = None,
    score_away: Optional[int] = None,
    **extra: Any,
) -> SourceReport:
    return SourceReport(
        source=source,
        home_team=home,
        away_team=away,
        kickoff=kickoff,
        status=status,
        score_home=score_home,
        score_away=score_away,
        **extra,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fixture_repo() -> FakeFixtureRepository:
    return FakeFixtureRepository()


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime(2024, 5, 11, 12, 0, tzinfo=timezone.utc))
