"""Strava API client (bike rides)."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings
from ..llm.retry import RetryPolicy
from .base import ApiClient
from .oauth import OAuthCredentials, TokenProvider

TOKEN_URL = "https://www.strava.com/oauth/token"


class StravaClient(ApiClient):
    provider = "Strava"
    base_url = "https://www.strava.com/api/v3"

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient, policy: Optional[RetryPolicy] = None) -> "StravaClient":
        tokens = TokenProvider(
            "Strava",
            OAuthCredentials(
                access_token=settings.strava_access_token,
                client_id=settings.strava_client_id,
                client_secret=settings.strava_client_secret,
                refresh_token=settings.strava_refresh_token,
            ),
            http,
            token_url=TOKEN_URL,
            setup_hint="STRAVA_ACCESS_TOKEN or STRAVA_CLIENT_ID/STRAVA_CLIENT_SECRET/STRAVA_REFRESH_TOKEN",
        )
        return cls(http, tokens, policy)

    async def list_activities(self, per_page: int = 10) -> List[Dict[str, Any]]:
        return await self.get_json("/athlete/activities", params={"per_page": per_page})

    async def list_rides(self, per_page: int = 10) -> List[Dict[str, Any]]:
        """Recent activities filtered to bike rides, newest first."""
        activities = await self.list_activities(per_page)
        return [a for a in activities if a.get("type") == "Ride"]

    async def get_activity(self, activity_id: int) -> Dict[str, Any]:
        return await self.get_json(f"/activities/{activity_id}")
