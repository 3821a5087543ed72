"""
Derived statistics (team stats, head-to-head) configuration.
Uses FW_STATS_ prefix; Redis/DB and the API-Football key come from shared get_settings().
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StatsSettings(BaseSettings):
    """Request budget and layered cache settings."""

    model_config = SettingsConfigDict(
        env_prefix="FW_STATS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Request budget
    daily_request_limit: int = Field(default=100, description="Origin API calls allowed per UTC day")
    low_priority_threshold: float = Field(default=0.8, description="Share of the limit after which low is denied")
    medium_priority_threshold: float = Field(default=0.9, description="Share of the limit after which medium is denied")
    budget_key_ttl_s: int = 86400
    priority_leagues: list[int] = Field(
        default_factory=lambda: [39, 140, 135, 78, 61, 2],
        description="PL, La Liga, Serie A, Bundesliga, Ligue 1, Champions League",
    )

    # Team statistics
    team_stats_freshness_s: int = Field(default=24 * 3600, description="Durable tier freshness window")
    team_stats_fast_ttl_s: int = Field(default=3600, description="Redis TTL")
    default_season: int = 2024
    fetch_non_priority_leagues: bool = Field(
        default=False,
        description="Allow origin fetches for leagues outside priority_leagues (medium priority)",
    )

    # Head to head
    h2h_freshness_s: int = Field(default=7 * 24 * 3600)
    h2h_fast_ttl_s: int = Field(default=7 * 24 * 3600)
    h2h_last_meetings: int = Field(default=10, description="Meetings requested from the origin")

    # Origin
    origin_timeout_s: float = 10.0
    origin_retries: int = 1

    # Enrichment fan-out
    enrichment_max_concurrent: int = Field(default=5, description="Fixtures enriched in parallel")


@lru_cache(maxsize=1)
def get_stats_settings() -> StatsSettings:
    return StatsSettings()
