"""Shared async HTTP plumbing for the third-party data APIs."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import ProviderUnreachable, classify_http_status
from ..llm.retry import RetryPolicy, execute
from .oauth import TokenProvider

logger = logging.getLogger(__name__)


class ApiClient:
    """Bearer-authenticated JSON client for one provider.

    The ``httpx.AsyncClient`` is owned by the caller (one per chat turn) so
    several providers can share a connection pool for the turn's lifetime.
    """

    provider: str = "API"
    base_url: str = ""

    def __init__(self, http: httpx.AsyncClient, tokens: TokenProvider, policy: Optional[RetryPolicy] = None):
        self.http = http
        self.tokens = tokens
        self.policy = policy or RetryPolicy()

    def is_configured(self) -> bool:
        return self.tokens.is_configured()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        token = await self.tokens.get_token()
        headers: Dict[str, str] = {"Authorization": f"Bearer {token}"}
        headers.update(kwargs.pop("headers", {}) or {})
        url = path if path.startswith("http") else f"{self.base_url}{path}"

        async def attempt() -> httpx.Response:
            try:
                response = await self.http.request(method, url, headers=headers, **kwargs)
            except httpx.TransportError as e:
                raise ProviderUnreachable(f"{self.provider} unreachable: {e}", provider=self.provider) from e
            logger.debug(f"{self.provider} {method} {url} -> {response.status_code}")
            if response.is_error:
                raise classify_http_status(
                    response.status_code,
                    f"{self.provider} API error: {response.status_code} {response.reason_phrase}",
                    provider=self.provider,
                )
            return response

        return await execute(attempt, self.policy, label=f"{self.provider} {method} {path}")

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._request("GET", path, params=params)
        return response.json()

    async def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        response = await self._request("POST", path, json=payload)
        return response.json()
