"""
SQLAlchemy 2.0 ORM models for FixtureWatch.
verified_fixtures holds reconciled fixtures; team_statistics and head_to_head
are the durable tier of the stats cache; team_aliases merges naming variants.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class VerifiedFixtureORM(Base):
    __tablename__ = "verified_fixtures"
    __table_args__ = (
        Index("ix_verified_fixtures_date_key", "nairobi_date_key"),
    )

    id: Mapped[str] = mapped_column(String(300), primary_key=True)
    nairobi_date_key: Mapped[str] = mapped_column(String(10), nullable=False)
    kickoff: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    score_home: Mapped[Optional[int]] = mapped_column(Integer)
    score_away: Mapped[Optional[int]] = mapped_column(Integer)
    home_team: Mapped[str] = mapped_column(String(200), nullable=False)
    away_team: Mapped[str] = mapped_column(String(200), nullable=False)
    competition: Mapped[Optional[str]] = mapped_column(String(200))
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    state_hash: Mapped[str] = mapped_column(String(32), nullable=False)
    source_breakdown: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    last_verified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class TeamStatisticsORM(Base):
    __tablename__ = "team_statistics"

    # "{team_id}-{season}"
    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    team_id: Mapped[int] = mapped_column(Integer, nullable=False)
    league_id: Mapped[int] = mapped_column(Integer, nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class HeadToHeadORM(Base):
    __tablename__ = "head_to_head"

    # "{low_team_id}-{high_team_id}"
    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class TeamAliasORM(Base):
    __tablename__ = "team_aliases"

    alias_slug: Mapped[str] = mapped_column(String(200), primary_key=True)
    canonical_slug: Mapped[str] = mapped_column(String(200), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
