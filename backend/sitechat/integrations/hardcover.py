"""Hardcover GraphQL client (reading progress)."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings
from ..errors import ToolExecutionError
from ..llm.retry import RetryPolicy
from .base import ApiClient
from .oauth import OAuthCredentials, TokenProvider

GRAPHQL_URL = "https://api.hardcover.app/v1/graphql"

CURRENTLY_READING_QUERY = """
query {
  me {
    currently_reading {
      book {
        title
        contributions {
          author {
            name
          }
        }
        image
        pages
      }
      progress_pages
    }
  }
}
"""


class HardcoverClient(ApiClient):
    provider = "Hardcover"
    base_url = GRAPHQL_URL

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient, policy: Optional[RetryPolicy] = None) -> "HardcoverClient":
        tokens = TokenProvider(
            "Hardcover",
            OAuthCredentials(access_token=settings.hardcover_api_token),
            http,
            setup_hint="HARDCOVER_API_TOKEN",
        )
        return cls(http, tokens, policy)

    async def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables
        result = await self.post_json(GRAPHQL_URL, payload)
        errors = result.get("errors") or []
        if errors:
            raise ToolExecutionError(
                "GraphQL errors: " + ", ".join(e.get("message", "unknown") for e in errors),
                provider=self.provider,
            )
        return result.get("data") or {}

    async def currently_reading(self) -> List[Dict[str, Any]]:
        data = await self.query(CURRENTLY_READING_QUERY)
        me = data.get("me")
        # Hasura wraps `me` in a list
        if isinstance(me, list):
            me = me[0] if me else None
        if not me:
            raise ToolExecutionError("Invalid response from Hardcover API", provider=self.provider)
        return me.get("currently_reading") or []
