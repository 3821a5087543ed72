"""
Reliability (multi-source reconciliation) configuration.
Uses FW_RELIABILITY_ prefix; Redis/DB come from shared get_settings().
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.models.enums import SourceIdentity
from shared.utils.http_client import DEFAULT_USER_AGENT


class ReliabilitySettings(BaseSettings):
    """Source adapter and ingestion settings."""

    model_config = SettingsConfigDict(
        env_prefix="FW_RELIABILITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sources
    enabled_sources: list[SourceIdentity] = Field(
        default_factory=lambda: list(SourceIdentity),
        description="Adapters run each cycle",
    )
    fetch_timeout_s: float = Field(default=10.0, description="HTTP timeout per request")
    fetch_retries: int = Field(default=2, description="Attempts per HTTP request")
    adapter_deadline_s: float = Field(default=25.0, description="Hard deadline for one adapter fetch")
    bbc_base_url: str = "https://www.bbc.com"
    besoccer_base_url: str = "https://www.besoccer.com"
    flashscore_feed_url: str = "https://d.flashscore.com"
    flashscore_fsign: str = Field(default="SW9D1eZo", description="x-fsign header the feed expects")
    football_data_base_url: str = "https://api.football-data.org/v4"
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent sent by every source adapter")

    # Circuit breaker per source
    circuit_failure_threshold: int = Field(default=3, description="Failures before opening circuit")
    circuit_recovery_s: float = Field(default=300.0, description="Seconds before half-open")

    # Ingestion
    max_concurrent_groups: int = Field(default=10, description="Identity groups reconciled in parallel")
    days_ahead: int = Field(default=3, description="Days (today included) fetched per scheduled cycle")
    cycle_interval_s: float = Field(default=900.0, description="Seconds between scheduled cycles")


@lru_cache(maxsize=1)
def get_reliability_settings() -> ReliabilitySettings:
    return ReliabilitySettings()
