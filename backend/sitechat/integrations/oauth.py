"""
Bearer credential resolution for the remote-API tools.

A statically configured long-lived access token wins. Otherwise the
configured refresh token (+ client id/secret) is exchanged at the provider's
OAuth token endpoint for a short-lived access token. The resolved token is
cached on the provider instance, which lives for one chat turn.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthCredentials:
    access_token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def can_refresh(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)


class TokenProvider:
    """Hands out a bearer token for one provider.

    ``basic_auth`` selects how client credentials travel to the token
    endpoint: HTTP Basic (Spotify) or form fields (Strava).
    """

    def __init__(
        self,
        provider: str,
        credentials: OAuthCredentials,
        http: httpx.AsyncClient,
        token_url: Optional[str] = None,
        basic_auth: bool = False,
        setup_hint: str = "",
    ):
        self.provider = provider
        self.credentials = credentials
        self.http = http
        self.token_url = token_url
        self.basic_auth = basic_auth
        self.setup_hint = setup_hint
        self._token: Optional[str] = None
        self._refresh_failed = False
        self._lock = asyncio.Lock()

    def is_configured(self) -> bool:
        if self.credentials.access_token:
            return True
        return bool(self.token_url) and self.credentials.can_refresh

    def _unconfigured(self) -> ConfigurationError:
        hint = f" Please set {self.setup_hint} in environment variables." if self.setup_hint else ""
        return ConfigurationError(f"{self.provider} API is not configured.{hint}", provider=self.provider)

    async def get_token(self) -> str:
        if self._token:
            return self._token
        if self.credentials.access_token:
            self._token = self.credentials.access_token
            return self._token
        if not self.is_configured():
            raise self._unconfigured()
        # Concurrent tool calls share one exchange
        async with self._lock:
            if self._token:
                return self._token
            if self._refresh_failed:
                raise self._unconfigured()
            token = await self._refresh()
            if not token:
                self._refresh_failed = True
                raise self._unconfigured()
            self._token = token
            return token

    async def _refresh(self) -> Optional[str]:
        creds = self.credentials
        data = {"grant_type": "refresh_token", "refresh_token": creds.refresh_token}
        auth = None
        if self.basic_auth:
            auth = httpx.BasicAuth(creds.client_id or "", creds.client_secret or "")
        else:
            data.update({"client_id": creds.client_id, "client_secret": creds.client_secret})
        try:
            response = await self.http.post(self.token_url, data=data, auth=auth)
        except httpx.HTTPError as e:
            logger.error(f"Error refreshing {self.provider} token: {e}")
            return None
        if response.is_error:
            logger.error(f"Error refreshing {self.provider} token: {response.status_code} {response.text[:200]}")
            return None
        token = response.json().get("access_token")
        if token:
            logger.info(f"Refreshed {self.provider} access token")
        return token
