"""
API-Football origin client (v3).
Returns the raw 'response' member of each call; parsing lives in stats.parsers.
"""
from __future__ import annotations

from typing import Any, Optional

from shared.config import Settings, get_settings
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from stats.config import StatsSettings, get_stats_settings
from stats.parsers import OriginPayloadError

logger = get_logger(__name__)


class OriginNotConfigured(RuntimeError):
    """No API-Football key is configured."""


class ApiFootballClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        stats_settings: Optional[StatsSettings] = None,
    ) -> None:
        settings = settings or get_settings()
        stats_settings = stats_settings or get_stats_settings()
        self._api_key = settings.api_football_key
        host = settings.api_football_host
        self._http = ProviderHTTPClient(
            provider_name="api_football",
            base_url=f"https://{host}",
            headers={
                "x-apisports-key": self._api_key,
                "x-rapidapi-host": host,
                "x-rapidapi-key": self._api_key,
            },
            timeout_s=stats_settings.origin_timeout_s,
            max_retries=stats_settings.origin_retries,
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def _response(self, path: str, params: dict[str, Any]) -> Any:
        if not self.configured:
            raise OriginNotConfigured("FW_API_FOOTBALL_KEY is not set")
        await self._http.start()
        resp = await self._http.get(path, params=params)
        body = resp.json()
        if not isinstance(body, dict) or body.get("response") is None:
            raise OriginPayloadError(f"{path} returned no 'response' member: {str(body)[:300]}")
        errors = body.get("errors")
        if errors:
            raise OriginPayloadError(f"{path} returned errors: {errors}")
        logger.debug("api_football_response", path=path, results=body.get("results"))
        return body["response"]

    async def team_statistics(self, team_id: int, league_id: int, season: int) -> Any:
        return await self._response(
            "/teams/statistics",
            {"team": team_id, "league": league_id, "season": season},
        )

    async def head_to_head(self, team1_id: int, team2_id: int, last: int = 10) -> Any:
        return await self._response(
            "/fixtures/headtohead",
            {"h2h": f"{team1_id}-{team2_id}", "last": last},
        )
