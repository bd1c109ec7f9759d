"""
Activity API Client.
~~~~~~~~~~~~~~~~~~~~

HTTP client for the wellness backend's activity and route endpoints.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import aiohttp

from ...errors import RemoteSyncError

logger = logging.getLogger(__name__)


@dataclass
class ApiConfig:
    """Activity API connection configuration."""

    base_url: str = "http://localhost:5000"
    token: str = ""
    timeout: float = 15.0

    today_path: str = "/api/activity/today"
    sync_path: str = "/api/activity/sync"
    routes_path: str = "/api/routes"

    @classmethod
    def with_token_env(cls, token_env: str, **kwargs: Any) -> ApiConfig:
        return cls(token=os.environ.get(token_env, ""), **kwargs)


class ActivityApiClient:
    """
    HTTP client for the activity API.

    No retries: a failed call raises RemoteSyncError and the caller decides.

    Example:
        >>> async with ActivityApiClient(ApiConfig(base_url="http://api.local")) as client:
        ...     today = await client.get_today_activity()
    """

    def __init__(self, config: ApiConfig | None = None):
        self.config = config or ApiConfig()
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> ActivityApiClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ==================== Connection ====================

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if self.config.token:
                headers["Authorization"] = f"Bearer {self.config.token}"
            self._session = aiohttp.ClientSession(
                base_url=self.config.base_url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
        return self._session

    async def close(self) -> None:
        """Release the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    # ==================== Low-Level API ====================

    async def _request(
        self,
        method: str,
        path: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make a single API request.

        Args:
            method: HTTP method
            path: API path
            data: JSON body

        Returns:
            Response JSON (empty dict for an empty body)

        Raises:
            RemoteSyncError: non-2xx status, timeout or transport failure
        """
        session = self._get_session()
        try:
            async with session.request(method, path, json=data) as resp:
                if resp.status < 200 or resp.status >= 300:
                    text = await resp.text()
                    raise RemoteSyncError(
                        f"{method} {path} failed: {resp.status} - {text[:200]}",
                        status=resp.status,
                    )
                body = await resp.json(content_type=None)
                if body is None:
                    return {}
                return body if isinstance(body, dict) else {"data": body}

        except TimeoutError as e:
            raise RemoteSyncError(f"{method} {path} timed out") from e
        except aiohttp.ClientError as e:
            raise RemoteSyncError(f"{method} {path} error: {e}") from e
        except ValueError as e:
            raise RemoteSyncError(f"{method} {path} returned invalid JSON: {e}") from e

    # ==================== Activity API ====================

    async def get_today_activity(self) -> dict[str, Any]:
        """Today's persisted activity: ``{"activity": {...} | None, ...}``."""
        return await self._request("GET", self.config.today_path)

    async def post_activity_sync(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Upsert today's activity totals."""
        return await self._request("POST", self.config.sync_path, data=payload)

    async def post_route(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Store a finished route."""
        return await self._request("POST", self.config.routes_path, data=payload)
