"""Routes model tool calls to their handlers and normalizes results to text."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional

import httpx

from ..config import Settings
from ..errors import AssistantError, ConfigurationError, ProviderAuthError
from ..integrations.content import StaticContent, load_content
from ..integrations.hardcover import HardcoverClient
from ..integrations.spotify import SpotifyClient
from ..integrations.strava import StravaClient
from ..schemas import ToolCallRequest, ToolResult
from .agents import BaseAgent, BikingAgent, BooksAgent, DocumentsAgent, MusicAgent, SnowboardingAgent
from .registry import get_tool, tool_label
from .retry import RetryPolicy
from .tools import truncate

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """Dispatches one round of tool calls. Tool failure is always soft:
    every call yields a ``ToolResult`` whose text can go straight back to
    the model.
    """

    def __init__(self, agents: List[BaseAgent], request_id: str = "-"):
        self.agents = agents
        self.request_id = request_id

    @classmethod
    def build(
        cls,
        settings: Settings,
        http: httpx.AsyncClient,
        content: Optional[StaticContent] = None,
        request_id: str = "-",
    ) -> "ToolDispatcher":
        content = content if content is not None else load_content(settings.content_dir)
        policy = RetryPolicy.for_tools(settings)
        agents: List[BaseAgent] = [
            DocumentsAgent(content),
            SnowboardingAgent(content),
            BikingAgent(StravaClient.from_settings(settings, http, policy)),
            BooksAgent(HardcoverClient.from_settings(settings, http, policy)),
            MusicAgent(SpotifyClient.from_settings(settings, http, policy)),
        ]
        return cls(agents, request_id)

    def _agent_for(self, tool_name: str) -> Optional[BaseAgent]:
        return next((a for a in self.agents if a.owns(tool_name)), None)

    async def dispatch(self, call: ToolCallRequest) -> ToolResult:
        started = time.monotonic()
        label = tool_label(call.name)
        agent = self._agent_for(call.name) if get_tool(call.name) else None
        if agent is None:
            logger.warning(f"[{self.request_id}] unknown tool requested: {call.name}")
            return ToolResult(tool_call_id=call.id, content=f"Unknown tool requested: {call.name}.", is_error=True)

        try:
            text = await agent.execute(call.name, call.input)
            result = ToolResult(tool_call_id=call.id, content=text or f"No {label} available.")
        except ConfigurationError as e:
            # Not an error: the model should just say the integration isn't set up
            logger.info(f"[{self.request_id}] {call.name}: {e.message}")
            result = ToolResult(tool_call_id=call.id, content=e.message)
        except ProviderAuthError as e:
            logger.error(f"[{self.request_id}] {call.name}: {e!r}")
            result = ToolResult(
                tool_call_id=call.id,
                content=f"Error fetching {label}: {e.provider} rejected the access token ({e.status_code}). "
                        f"Please ensure the {e.provider} API is properly configured.",
                is_error=True,
            )
        except AssistantError as e:
            logger.error(f"[{self.request_id}] {call.name}: {e!r}")
            result = ToolResult(tool_call_id=call.id, content=f"Error fetching {label}: {e.message}.", is_error=True)
        except Exception as e:
            logger.exception(f"[{self.request_id}] unhandled error in tool {call.name}")
            result = ToolResult(tool_call_id=call.id, content=f"Error fetching {label}: {e}", is_error=True)

        duration_ms = (time.monotonic() - started) * 1000
        logger.info(
            f"[{self.request_id}] tool_call {call.name} input={call.input} duration={duration_ms:.0f}ms "
            f"error={result.is_error} result={truncate(result.content, 1000)!r}"
        )
        return result

    async def dispatch_all(self, calls: List[ToolCallRequest]) -> List[ToolResult]:
        """Run one round concurrently; results come back in request order."""
        if not calls:
            return []
        return list(await asyncio.gather(*(self.dispatch(c) for c in calls)))
