from __future__ import annotations
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Union
import asyncio
import logging
import time
import uuid

import httpx

from ..config import Settings, settings as default_settings
from ..errors import AssistantError, ConfigurationError, ProviderOverloaded
from ..integrations.content import StaticContent
from ..schemas import (
    ChatRequest,
    PlanningTrace,
    SessionContext,
    Topic,
    TurnEvent,
    TurnOutcome,
    tool_results_out,
)
from . import retry
from .client import ChatModel, ModelReply, tool_result_messages
from .dispatcher import ToolDispatcher
from .planning import extract_planning
from .registry import build_catalogue, describe_catalogue, openai_tools

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "I encountered an issue processing your request. Please try again."
UNAVAILABLE_MESSAGE = "The AI service is currently overloaded. Please try again in a few moments."
NOT_CONFIGURED_MESSAGE = "The chat assistant isn't configured right now. Please try again later."
ERROR_MESSAGE = "Sorry, I encountered an error processing your request. Please try again."

TOPIC_CONTEXTS: Dict[Optional[Topic], str] = {
    Topic.ABOUT: "You are helping visitors learn about {owner}. Focus on their background, career, experience, and interests.",
    Topic.MUSIC: "You are discussing {owner}'s music taste, listening habits, favorite artists, and music recommendations.",
    Topic.SNOWBOARDING: "You are discussing {owner}'s snowboarding activities, season progress, favorite mountains, and snowboarding experiences.",
    Topic.BIKING: "You are discussing {owner}'s cycling activities, bike rides, Strava data, routes, and biking achievements.",
    Topic.BOOKS: "You are discussing {owner}'s reading habits, currently reading books, favorite authors, and book recommendations.",
    Topic.PHOTOS: "You are discussing {owner}'s photography, travel experiences, memories from photos, and photography style.",
    Topic.SITE: (
        "You are helping visitors understand how this website is built. Discuss the tech stack, architecture, APIs, "
        "and implementation details. The chat backend is a FastAPI service that calls an OpenAI model with tools "
        "backed by Strava, Spotify and Hardcover."
    ),
    None: "You are a helpful assistant for {owner}'s personal website.",
}

# Turn stages: zero or one PlanningTrace, then exactly one TurnOutcome
Stage = Union[PlanningTrace, TurnOutcome]


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


def ensure_text(text: Optional[str]) -> str:
    return text if text and text.strip() else FALLBACK_MESSAGE


class ChatOrchestrator:
    """
    Runs one conversation turn: prompt -> model -> (tools -> one follow-up) -> text.

    ``events()`` yields streaming frames as they are produced; ``run()``
    returns the buffered outcome. Neither raises: every failure becomes an
    ``unavailable`` or ``error`` outcome with a fixed user-facing message.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        model_factory: Optional[Callable[[Settings], Any]] = None,
        content: Optional[StaticContent] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or default_settings
        self.model_factory = model_factory or ChatModel
        self.content = content
        self.transport = transport
        self.sleep = sleep
        self.llm_policy = retry.RetryPolicy.for_llm(self.settings)
        self.catalogue = build_catalogue(self.settings.owner_name)

    def session_context(self, topic: Optional[Topic]) -> SessionContext:
        fragment = TOPIC_CONTEXTS.get(topic, TOPIC_CONTEXTS[None]).format(owner=self.settings.owner_name)
        return SessionContext(topic=topic, system_prompt_fragment=fragment)

    def build_system_prompt(self, ctx: SessionContext) -> str:
        owner = self.settings.owner_name
        return (
            f"{ctx.system_prompt_fragment}\n\n"
            f"You have access to tools that let you retrieve information about {owner}:\n"
            f"{describe_catalogue(self.catalogue)}\n\n"
            "Before calling any tool, first write one short sentence that says which tools you will use and why, "
            "phrased like \"I'll use <tools> to <purpose>.\" Then call the tools.\n\n"
            "Use these tools to answer questions accurately. Be friendly, conversational, and helpful. "
            "Reference specific details when available.\n\n"
            "If a tool call fails or data isn't available, gracefully explain that the information isn't currently available."
        )

    def build_messages(self, request: ChatRequest, system_prompt: str) -> List[Dict[str, Any]]:
        chat_msgs: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        for m in request.conversation(self.settings.history_window):
            chat_msgs.append({"role": m.role.value, "content": m.content})
        return chat_msgs

    async def _call_model(
        self,
        model: Any,
        messages: List[Dict[str, Any]],
        request_id: str,
        label: str,
        tool_choice: Optional[str] = None,
    ) -> ModelReply:
        tools = openai_tools(self.catalogue)
        logger.info(f"[{request_id}] {label} model request: messages={len(messages)} tools={len(tools)}")
        return await retry.execute(
            lambda: model.complete(messages, tools, tool_choice=tool_choice),
            self.llm_policy,
            label=f"[{request_id}] {label} model call",
            sleep=self.sleep,
        )

    def _failure(self, exc: Exception, request_id: str, planning: Optional[PlanningTrace]) -> TurnOutcome:
        if isinstance(exc, ProviderOverloaded):
            logger.warning(f"[{request_id}] model provider overloaded after retries: {exc!r}")
            return TurnOutcome(status="unavailable", message=UNAVAILABLE_MESSAGE, planning=planning, error="service_unavailable")
        if isinstance(exc, ConfigurationError):
            logger.error(f"[{request_id}] {exc.message}")
            return TurnOutcome(status="error", message=NOT_CONFIGURED_MESSAGE, planning=planning, error="not_configured")
        if isinstance(exc, AssistantError):
            logger.error(f"[{request_id}] turn failed: {exc!r}", exc_info=exc)
        else:
            logger.exception(f"[{request_id}] unexpected error during chat turn", exc_info=exc)
        return TurnOutcome(status="error", message=ERROR_MESSAGE, planning=planning, error="internal_error")

    async def _stages(self, request: ChatRequest) -> AsyncIterator[Stage]:
        request_id = generate_request_id()
        started = time.monotonic()
        planning: Optional[PlanningTrace] = None
        ctx = self.session_context(request.topic())
        logger.info(f"[{request_id}] chat turn started topic={ctx.topic.value if ctx.topic else None}")
        try:
            async with self.model_factory(self.settings) as model:
                messages = self.build_messages(request, self.build_system_prompt(ctx))
                reply = await self._call_model(model, messages, request_id, "initial")
                if not reply.tool_calls:
                    outcome = TurnOutcome(message=ensure_text(reply.text))
                else:
                    planning = extract_planning(reply.text, reply.tool_calls)
                    yield planning

                    tool_started = time.monotonic()
                    async with httpx.AsyncClient(timeout=self.settings.http_timeout, transport=self.transport) as http:
                        dispatcher = ToolDispatcher.build(self.settings, http, self.content, request_id)
                        results = await dispatcher.dispatch_all(reply.tool_calls)
                    logger.info(
                        f"[{request_id}] {len(results)} tool calls finished in {(time.monotonic() - tool_started) * 1000:.0f}ms"
                    )

                    follow_up_messages = messages + [reply.assistant_message] + tool_result_messages(results)
                    follow_up = await self._call_model(model, follow_up_messages, request_id, "follow-up", tool_choice="none")
                    if follow_up.tool_calls:
                        logger.info(
                            f"[{request_id}] ignoring {len(follow_up.tool_calls)} tool calls requested by the follow-up"
                        )
                    outcome = TurnOutcome(message=ensure_text(follow_up.text), planning=planning, tool_results=results)
        except Exception as e:
            outcome = self._failure(e, request_id, planning)

        logger.info(
            f"[{request_id}] chat turn finished status={outcome.status} "
            f"duration={(time.monotonic() - started) * 1000:.0f}ms"
        )
        yield outcome

    async def events(self, request: ChatRequest) -> AsyncIterator[TurnEvent]:
        """planning? then response + done, or error."""
        async for stage in self._stages(request):
            if isinstance(stage, PlanningTrace):
                yield TurnEvent(event="planning", data=stage.model_dump())
            elif stage.status == "ok":
                data: Dict[str, Any] = {"message": stage.message}
                results = tool_results_out(stage.tool_results)
                if results:
                    data["toolResults"] = [r.model_dump() for r in results]
                yield TurnEvent(event="response", data=data)
                yield TurnEvent(event="done", data={})
            else:
                yield TurnEvent(event="error", data={"error": stage.error, "message": stage.message})

    async def run(self, request: ChatRequest) -> TurnOutcome:
        outcome: Optional[TurnOutcome] = None
        async for stage in self._stages(request):
            if isinstance(stage, TurnOutcome):
                outcome = stage
        if outcome is None:
            raise RuntimeError("chat turn produced no outcome")
        return outcome
