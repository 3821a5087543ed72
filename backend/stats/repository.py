"""
Durable tier of the stats cache: team_statistics and head_to_head rows.
Each row stores the serialized entity plus the last_updated used for freshness.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import NamedTuple, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert

from shared.models.domain import HeadToHead, TeamStatistics
from shared.models.orm import HeadToHeadORM, TeamStatisticsORM
from shared.utils.database import DatabaseManager

from stats.parsers import team_stats_id


class DurableEntry(NamedTuple):
    payload: dict
    last_updated: datetime


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class StatsRepository:
    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def load_team_stats(self, key: str) -> Optional[DurableEntry]:
        async with self._db.read_session() as session:
            row = await session.get(TeamStatisticsORM, key)
            if row is None:
                return None
            return DurableEntry(dict(row.payload), _aware(row.last_updated))

    async def save_team_stats(self, stats: TeamStatistics) -> None:
        values = {
            "id": team_stats_id(stats.team_id, stats.season),
            "team_id": stats.team_id,
            "league_id": stats.league_id,
            "season": stats.season,
            "payload": stats.model_dump(mode="json"),
            "last_updated": stats.last_updated,
        }
        stmt = pg_insert(TeamStatisticsORM).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[TeamStatisticsORM.id],
            set_={k: stmt.excluded[k] for k in ("league_id", "payload", "last_updated")},
        )
        async with self._db.write_session() as session:
            await session.execute(stmt)

    async def load_h2h(self, key: str) -> Optional[DurableEntry]:
        async with self._db.read_session() as session:
            row = await session.get(HeadToHeadORM, key)
            if row is None:
                return None
            return DurableEntry(dict(row.payload), _aware(row.last_updated))

    async def save_h2h(self, h2h: HeadToHead) -> None:
        stmt = pg_insert(HeadToHeadORM).values(
            id=h2h.id,
            payload=h2h.model_dump(mode="json"),
            last_updated=h2h.last_updated,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[HeadToHeadORM.id],
            set_={"payload": stmt.excluded.payload, "last_updated": stmt.excluded.last_updated},
        )
        async with self._db.write_session() as session:
            await session.execute(stmt)
