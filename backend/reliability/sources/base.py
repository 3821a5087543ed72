"""
Base source adapter.

Every adapter fetches one day of fixtures from one origin and normalizes them
into SourceReport objects. fetch_reports() is the isolation boundary: it
bounds the fetch with a hard deadline, routes it through a per-source circuit
breaker and converts every failure into an empty list, so one broken source
never affects the others.
"""
from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import date, datetime, time as dt_time, timezone
from typing import Optional

from shared.models.domain import SourceReport
from shared.models.enums import SourceIdentity
from shared.utils.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_FETCHES, SOURCE_LATENCY, SOURCE_REPORTS

from reliability.config import ReliabilitySettings, get_reliability_settings

logger = get_logger(__name__)


def day_start_utc(day: date) -> datetime:
    """Midnight UTC of day; kickoff for sources that only expose a date."""
    return datetime.combine(day, dt_time.min, tzinfo=timezone.utc)


def parse_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    text = str(text).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class SourceAdapter(ABC):
    """One independent origin of fixture data."""

    source: SourceIdentity

    def __init__(
        self,
        settings: Optional[ReliabilitySettings] = None,
        breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        self._settings = settings or get_reliability_settings()
        self._breaker = breaker or CircuitBreaker(
            self.source.value,
            failure_threshold=self._settings.circuit_failure_threshold,
            recovery_timeout_s=self._settings.circuit_recovery_s,
        )
        self._http: Optional[ProviderHTTPClient] = None

    @property
    def name(self) -> str:
        return self.source.value

    def _make_client(self, base_url: str, headers: Optional[dict[str, str]] = None) -> ProviderHTTPClient:
        return ProviderHTTPClient(
            provider_name=self.source.value,
            base_url=base_url,
            headers={"User-Agent": self._settings.user_agent, **(headers or {})},
            timeout_s=self._settings.fetch_timeout_s,
            max_retries=self._settings.fetch_retries,
        )

    async def start(self) -> None:
        if self._http is not None:
            await self._http.start()

    async def close(self) -> None:
        if self._http is not None:
            await self._http.close()

    async def fetch_reports(self, day: date) -> list[SourceReport]:
        """
        Fetch one day's reports. Never raises: timeouts, open circuits, HTTP
        and parse failures all yield [].
        """
        start = time.perf_counter()
        outcome = "ok"
        try:
            await self.start()
            reports = await asyncio.wait_for(
                self._breaker.call(self._fetch, day),
                timeout=self._settings.adapter_deadline_s,
            )
        except CircuitBreakerOpen as exc:
            outcome = "circuit_open"
            logger.info("source_skipped_circuit_open", source=self.name, retry_after=round(exc.retry_after))
            return []
        except asyncio.TimeoutError:
            outcome = "timeout"
            logger.warning(
                "source_fetch_timeout",
                source=self.name,
                day=day.isoformat(),
                deadline_s=self._settings.adapter_deadline_s,
            )
            return []
        except Exception as exc:
            outcome = "error"
            logger.exception("source_fetch_failed", source=self.name, day=day.isoformat(), error=str(exc))
            return []
        finally:
            SOURCE_FETCHES.labels(source=self.name, outcome=outcome).inc()
            SOURCE_LATENCY.labels(source=self.name).observe(time.perf_counter() - start)

        SOURCE_REPORTS.labels(source=self.name).inc(len(reports))
        logger.info("source_fetch_complete", source=self.name, day=day.isoformat(), reports=len(reports))
        return reports

    @abstractmethod
    async def _fetch(self, day: date) -> list[SourceReport]:
        """Adapter-specific fetch and parse. May raise; fetch_reports() contains it."""
