"""
Persistence for reconciled fixtures (verified_fixtures).

Every read-resolve-write for one fixture id runs inside locked(id): a write
transaction holding a PostgreSQL transaction-scoped advisory lock on the id,
so concurrent cycles for the same match serialize instead of clobbering each
other. The lock is released on commit or rollback.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.domain import Score, UnifiedFixture
from shared.models.enums import FixtureStatus
from shared.models.orm import VerifiedFixtureORM
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger

from reliability.identity import load_team_aliases

logger = get_logger(__name__)

# Columns rewritten by a full write. created_at is never in this set.
# Optional columns in MERGED_COLUMNS keep their stored value when a cycle
# carries none.
RECONCILED_COLUMNS = (
    "nairobi_date_key",
    "kickoff",
    "status",
    "score_home",
    "score_away",
    "home_team",
    "away_team",
    "competition",
    "confidence",
    "state_hash",
    "source_breakdown",
    "last_verified_at",
)
MERGED_COLUMNS = ("competition",)


def _to_domain(row: VerifiedFixtureORM) -> UnifiedFixture:
    try:
        status = FixtureStatus(row.status)
    except ValueError:
        status = FixtureStatus.UNKNOWN
    return UnifiedFixture(
        id=row.id,
        nairobi_date_key=row.nairobi_date_key,
        kickoff=row.kickoff,
        status=status,
        score=Score(home=row.score_home, away=row.score_away),
        home_team=row.home_team,
        away_team=row.away_team,
        competition=row.competition,
        confidence=row.confidence,
        state_hash=row.state_hash,
        source_breakdown=dict(row.source_breakdown or {}),
        last_verified_at=row.last_verified_at,
    )


def _merged(stmt, column: str):
    if column in MERGED_COLUMNS:
        return func.coalesce(stmt.excluded[column], getattr(VerifiedFixtureORM, column))
    return stmt.excluded[column]


def _to_row(fixture: UnifiedFixture) -> dict:
    return {
        "id": fixture.id,
        "nairobi_date_key": fixture.nairobi_date_key,
        "kickoff": fixture.kickoff,
        "status": fixture.status.value,
        "score_home": fixture.score.home,
        "score_away": fixture.score.away,
        "home_team": fixture.home_team,
        "away_team": fixture.away_team,
        "competition": fixture.competition,
        "confidence": fixture.confidence,
        "state_hash": fixture.state_hash,
        "source_breakdown": fixture.source_breakdown,
        "last_verified_at": fixture.last_verified_at,
    }


class FixtureRepository:
    """SQL access for verified_fixtures and the team alias table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    @asynccontextmanager
    async def locked(self, fixture_id: str) -> AsyncIterator[AsyncSession]:
        """Write session serialized per fixture id; commits on clean exit."""
        async with self._db.write_session() as session:
            await session.execute(select(func.pg_advisory_xact_lock(func.hashtext(fixture_id))))
            yield session

    async def get(self, session: AsyncSession, fixture_id: str) -> Optional[UnifiedFixture]:
        row = await session.get(VerifiedFixtureORM, fixture_id)
        if row is None:
            return None
        return _to_domain(row)

    async def upsert(self, session: AsyncSession, fixture: UnifiedFixture) -> None:
        """Full write; merges over an existing row without touching created_at."""
        values = _to_row(fixture)
        stmt = pg_insert(VerifiedFixtureORM).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[VerifiedFixtureORM.id],
            set_={
                **{col: _merged(stmt, col) for col in RECONCILED_COLUMNS},
                "updated_at": datetime.now(timezone.utc),
            },
        )
        await session.execute(stmt)

    async def touch(self, session: AsyncSession, fixture_id: str, verified_at: datetime) -> None:
        """Lightweight write: only last_verified_at moves."""
        await session.execute(
            update(VerifiedFixtureORM)
            .where(VerifiedFixtureORM.id == fixture_id)
            .values(last_verified_at=verified_at)
        )

    async def list_for_day(self, nairobi_date_key: str) -> list[UnifiedFixture]:
        async with self._db.read_session() as session:
            result = await session.execute(
                select(VerifiedFixtureORM)
                .where(VerifiedFixtureORM.nairobi_date_key == nairobi_date_key)
                .order_by(VerifiedFixtureORM.kickoff)
            )
            return [_to_domain(row) for row in result.scalars().all()]

    async def load_aliases(self) -> dict[str, str]:
        async with self._db.read_session() as session:
            return await load_team_aliases(session)
