"""
Shared fixtures: explicit settings, in-memory static content, and a scripted
stand-in for the OpenAI chat model.

Run with:
$ pytest -q
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

import pytest

from sitechat.config import Settings
from sitechat.integrations.content import StaticContent, parse_season_csv
from sitechat.llm.client import ModelReply
from sitechat.schemas import ToolCallRequest

SEASON_CSV = """date,location,season,days
2023-12-09,Loveland,23-'24,1
2023-12-16,Arapahoe Basin,23-'24,2
2024-01-06,Copper Mountain,23-'24,3
2024-01-20,Arapahoe Basin,23-'24,4
2024-02-10,Winter Park,23-'24,5
2024-12-07,Arapahoe Basin,24-'25,1
2024-12-21,Loveland,24-'25,2
2025-01-04,Arapahoe Basin,24-'25,3
"""

_CREDENTIALS = (
    "strava_access_token", "strava_client_id", "strava_client_secret", "strava_refresh_token",
    "spotify_access_token", "spotify_client_id", "spotify_client_secret", "spotify_refresh_token",
    "hardcover_api_token",
)


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's environment and ``.env``."""
    values: Dict[str, Any] = {name: None for name in _CREDENTIALS}
    values.update(
        openai_api_key="test-key",
        owner_name="Jeremy",
        llm_max_retries=3,
        tool_max_retries=0,
        retry_initial_delay=0.0,
        retry_jitter=0.0,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def content() -> StaticContent:
    return StaticContent(
        profile="# About Me\nSoftware engineer in Colorado.",
        photos="# Photos\nIceland, 2023.",
        season_entries=parse_season_csv(SEASON_CSV),
    )


def text_reply(text: str) -> ModelReply:
    return ModelReply(text=text, assistant_message={"role": "assistant", "content": text}, finish_reason="stop")


def tool_reply(text: str, *calls: ToolCallRequest) -> ModelReply:
    return ModelReply(
        text=text,
        tool_calls=list(calls),
        assistant_message={
            "role": "assistant",
            "content": text,
            "tool_calls": [
                {"id": c.id, "type": "function", "function": {"name": c.name, "arguments": "{}"}} for c in calls
            ],
        },
        finish_reason="tool_calls",
    )


def call(call_id: str, name: str, **args: Any) -> ToolCallRequest:
    return ToolCallRequest(id=call_id, name=name, input=args)


class FakeModel:
    """Plays back scripted replies (or raises scripted errors) in order."""

    def __init__(self, replies: List[Union[ModelReply, Exception]]):
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    async def __aenter__(self) -> "FakeModel":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
    ) -> ModelReply:
        self.calls.append({"messages": messages, "tools": tools, "tool_choice": tool_choice})
        if not self.replies:
            raise AssertionError("model called more times than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def factory(self, settings: Settings) -> "FakeModel":
        return self


async def no_sleep(delay: float) -> None:
    return None


def parse_frames(body: str) -> List[tuple]:
    """Split an SSE body into ``(event, data)`` pairs."""
    frames = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        frames.append((lines["event"], json.loads(lines["data"])))
    return frames
