"""OpenAI chat-completions client used by the orchestrator."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from ..config import Settings
from ..errors import (
    AssistantError,
    ConfigurationError,
    ProviderOverloaded,
    ProviderRequestError,
    ProviderUnreachable,
    classify_http_status,
    is_overloaded_message,
)
from ..schemas import ToolCallRequest, ToolResult

logger = logging.getLogger(__name__)


@dataclass
class ModelReply:
    text: str = ""
    tool_calls: List[ToolCallRequest] = field(default_factory=list)
    # Assistant message exactly as it must be replayed in the follow-up call
    assistant_message: Dict[str, Any] = field(default_factory=dict)
    finish_reason: Optional[str] = None


def classify_openai_error(exc: Exception) -> AssistantError:
    """Convert an ``openai`` SDK exception into a tagged error."""
    if isinstance(exc, AssistantError):
        return exc
    if isinstance(exc, openai.APIConnectionError):  # includes APITimeoutError
        return ProviderUnreachable(f"Model provider unreachable: {exc}", provider="openai")
    if isinstance(exc, openai.APIStatusError):
        return classify_http_status(exc.status_code, str(exc.message), provider="openai")
    if is_overloaded_message(str(exc)):
        return ProviderOverloaded(str(exc), provider="openai")
    return ProviderRequestError(str(exc), provider="openai")


def tool_result_messages(results: List[ToolResult]) -> List[Dict[str, Any]]:
    return [{"role": "tool", "tool_call_id": r.tool_call_id, "content": r.content} for r in results]


class ChatModel:
    """
    Thin async wrapper over ``AsyncOpenAI``.

    Usage:
        async with ChatModel(settings) as model:
            reply = await model.complete(messages, tools)

    The SDK's own retries are disabled; ``sitechat.llm.retry`` owns them.
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY not configured", provider="openai")
        self.settings = settings
        self.model = settings.model_name
        self.http_client = http_client
        self._client: Optional[AsyncOpenAI] = None

    async def __aenter__(self) -> "ChatModel":
        self._client = AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            max_retries=0,
            timeout=self.settings.llm_timeout,
            http_client=self.http_client,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
    ) -> ModelReply:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_output_tokens,
        }
        if tools:
            kwargs["tools"] = tools
            if tool_choice:
                kwargs["tool_choice"] = tool_choice
        started = time.monotonic()
        try:
            completion = await self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise classify_openai_error(e) from e

        choice = completion.choices[0]
        msg = choice.message
        calls: List[ToolCallRequest] = []
        for tc in msg.tool_calls or []:
            try:
                args = json.loads(tc.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning(f"Unparseable arguments for tool {tc.function.name}: {tc.function.arguments!r}")
                args = {}
            calls.append(ToolCallRequest(id=tc.id, name=tc.function.name, input=args if isinstance(args, dict) else {}))

        assistant_message: Dict[str, Any] = {"role": "assistant", "content": msg.content or ""}
        if msg.tool_calls:
            assistant_message["tool_calls"] = [tc.model_dump() for tc in msg.tool_calls]

        logger.info(
            f"Model response from {self.model}: text={len(msg.content or '')} chars, "
            f"tools={[c.name for c in calls]}, finish={choice.finish_reason}, "
            f"duration={(time.monotonic() - started) * 1000:.0f}ms"
        )
        return ModelReply(
            text=msg.content or "",
            tool_calls=calls,
            assistant_message=assistant_message,
            finish_reason=choice.finish_reason,
        )
