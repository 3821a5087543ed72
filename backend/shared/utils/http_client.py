"""
Async HTTP client wrapper for source adapters and the origin stats API.
Includes retry logic, timeout management, and metrics collection.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import httpx

from shared.config import get_settings
from shared.utils.logging import get_logger
from shared.utils.metrics import PROVIDER_LATENCY, PROVIDER_REQUESTS

logger = get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class ProviderHTTPClient:
    """
    Async HTTP client for one upstream (API or scraped site).
    Handles timeouts, retries on 429/5xx/timeouts, and records metrics per request.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        max_retries: int = 2,
    ) -> None:
        settings = get_settings()
        self._provider = provider_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s or settings.provider_request_timeout_s
        self._max_retries = max(1, max_retries)
        self._default_headers = {"User-Agent": DEFAULT_USER_AGENT, **(headers or {})}
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform a GET request with retry, metrics, and structured logging.

        Raises:
            httpx.HTTPStatusError: On non-retryable HTTP errors or after retries.
            httpx.TimeoutException: If all retries time out.
        """
        if not self._client:
            raise RuntimeError("ProviderHTTPClient not started. Call start() first.")

        last_exc: Optional[Exception] = None
        for attempt in range(1, self._max_retries + 1):
            start_time = time.perf_counter()
            status = "error"
            try:
                resp = await self._client.get(path, params=params, headers=extra_headers)
                status = str(resp.status_code)

                retryable = resp.status_code == 429 or resp.status_code >= 500
                if retryable and attempt < self._max_retries:
                    logger.warning(
                        "provider_retryable_status",
                        provider=self._provider,
                        path=path,
                        status=resp.status_code,
                        attempt=attempt,
                    )
                    delay = 1.0 * attempt
                    if resp.status_code == 429:
                        delay = min(float(resp.headers.get("Retry-After", "2") or 2), 10.0)
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                logger.debug(
                    "provider_request_success",
                    provider=self._provider,
                    path=path,
                    status=resp.status_code,
                    latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
                return resp

            except httpx.TimeoutException as exc:
                status = "timeout"
                last_exc = exc
                logger.warning("provider_timeout", provider=self._provider, path=path, attempt=attempt)
                if attempt < self._max_retries:
                    await asyncio.sleep(1.0 * attempt)
                    continue

            except httpx.HTTPStatusError as exc:
                last_exc = exc
                logger.error(
                    "provider_http_error",
                    provider=self._provider,
                    path=path,
                    status=exc.response.status_code,
                    attempt=attempt,
                )
                raise

            except httpx.HTTPError as exc:
                last_exc = exc
                logger.error(
                    "provider_request_error",
                    provider=self._provider,
                    path=path,
                    error=str(exc),
                    attempt=attempt,
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(1.0 * attempt)
                    continue

            finally:
                PROVIDER_REQUESTS.labels(provider=self._provider, status=status).inc()
                PROVIDER_LATENCY.labels(provider=self._provider).observe(time.perf_counter() - start_time)

        if last_exc:
            raise last_exc
        raise RuntimeError(f"Provider request failed after {self._max_retries} attempts")
