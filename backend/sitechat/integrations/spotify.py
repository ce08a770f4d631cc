"""Spotify Web API client (listening history)."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from ..llm.retry import RetryPolicy
from .base import ApiClient
from .oauth import OAuthCredentials, TokenProvider

TOKEN_URL = "https://accounts.spotify.com/api/token"


class SpotifyClient(ApiClient):
    provider = "Spotify"
    base_url = "https://api.spotify.com/v1"

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient, policy: Optional[RetryPolicy] = None) -> "SpotifyClient":
        tokens = TokenProvider(
            "Spotify",
            OAuthCredentials(
                access_token=settings.spotify_access_token,
                client_id=settings.spotify_client_id,
                client_secret=settings.spotify_client_secret,
                refresh_token=settings.spotify_refresh_token,
            ),
            http,
            token_url=TOKEN_URL,
            basic_auth=True,
            setup_hint="SPOTIFY_ACCESS_TOKEN or SPOTIFY_CLIENT_ID/SPOTIFY_CLIENT_SECRET/SPOTIFY_REFRESH_TOKEN",
        )
        return cls(http, tokens, policy)

    async def recently_played(self, limit: int = 15) -> Dict[str, Any]:
        return await self.get_json("/me/player/recently-played", params={"limit": limit})

    async def top_tracks(self, time_range: str = "long_term", limit: int = 15) -> Dict[str, Any]:
        return await self.get_json("/me/top/tracks", params={"time_range": time_range, "limit": limit})

    async def top_artists(self, time_range: str = "long_term", limit: int = 10) -> Dict[str, Any]:
        return await self.get_json("/me/top/artists", params={"time_range": time_range, "limit": limit})
