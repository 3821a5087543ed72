"""
Circuit breaker for unreliable upstreams (scraped pages, third-party APIs).

States:
  CLOSED   : requests pass through
  OPEN     : too many consecutive failures; calls are rejected without I/O
  HALF_OPEN: after the recovery window, one probe call decides close vs reopen
"""
from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from shared.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when the circuit is open and calls are being rejected."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN. Retry after {retry_after:.0f}s.")


class CircuitBreaker:
    """
    Async circuit breaker guarding one upstream.

    Args:
        name: Upstream identifier for logging (e.g. a source name).
        failure_threshold: Consecutive failures before opening the circuit.
        recovery_timeout_s: Seconds to wait in OPEN state before probing.
        clock: Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        recovery_timeout_s: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = max(1, failure_threshold)
        self.recovery_timeout_s = recovery_timeout_s
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0
        self._probe_in_flight = False
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN and self._clock() - self._opened_at >= self.recovery_timeout_s:
            return CircuitState.HALF_OPEN
        return self._state

    @property
    def stats(self) -> dict[str, Any]:
        return {"name": self.name, "state": self.state.value, "failure_count": self._failure_count}

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        async with self._lock:
            current = self.state
            if current == CircuitState.OPEN:
                retry_after = self.recovery_timeout_s - (self._clock() - self._opened_at)
                raise CircuitBreakerOpen(self.name, max(retry_after, 1.0))
            if current == CircuitState.HALF_OPEN:
                if self._probe_in_flight:
                    raise CircuitBreakerOpen(self.name, 5.0)
                self._probe_in_flight = True

        try:
            result = await func(*args, **kwargs)
        except BaseException as exc:
            await self._on_failure(exc)
            raise
        await self._on_success()
        return result

    async def _on_success(self) -> None:
        async with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("circuit_breaker_closed", name=self.name)
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._probe_in_flight = False

    async def _on_failure(self, exc: BaseException) -> None:
        async with self._lock:
            self._failure_count += 1
            was_probe = self._probe_in_flight
            self._probe_in_flight = False
            if was_probe or self._failure_count >= self.failure_threshold:
                if self._state != CircuitState.OPEN or was_probe:
                    logger.warning(
                        "circuit_breaker_opened",
                        name=self.name,
                        failures=self._failure_count,
                        error=str(exc) or type(exc).__name__,
                    )
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()
