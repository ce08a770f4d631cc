from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx
import pytest

from sitechat.llm.agents import BaseAgent, BooksAgent, MusicAgent
from sitechat.llm.dispatcher import ToolDispatcher
from sitechat.integrations.hardcover import HardcoverClient
from sitechat.integrations.spotify import SpotifyClient
from sitechat.llm.retry import RetryPolicy

from conftest import call, make_settings


def _offline(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


class _SlowAgent(BaseAgent):
    name = "slow"
    tool_names = ("get_about_info", "get_photos_info")

    async def execute(self, tool_name: str, args: Dict[str, Any]) -> Optional[str]:
        # the first call finishes last
        await asyncio.sleep(0.02 if tool_name == "get_about_info" else 0)
        return f"{tool_name} done"


class _BrokenAgent(BaseAgent):
    name = "broken"
    tool_names = ("get_books_data",)

    async def execute(self, tool_name: str, args: Dict[str, Any]) -> Optional[str]:
        raise RuntimeError("handler exploded")


@pytest.mark.asyncio
async def test_results_match_request_ids_in_order(settings, content) -> None:
    calls = [
        call("call_a", "get_snowboarding_data", metric="total_days"),
        call("call_b", "get_music_data", query="recent_tracks"),
        call("call_c", "get_about_info", query="career"),
    ]
    async with httpx.AsyncClient(transport=httpx.MockTransport(_offline)) as http:
        dispatcher = ToolDispatcher.build(settings, http, content, request_id="req_test")
        results = await dispatcher.dispatch_all(calls)

    assert [r.tool_call_id for r in results] == ["call_a", "call_b", "call_c"]
    assert results[0].content == "2024-25: 3 days (Last location: Arapahoe Basin)"
    assert "Software engineer" in results[2].content


@pytest.mark.asyncio
async def test_unconfigured_provider_is_a_soft_result(settings, content) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(_offline)) as http:
        dispatcher = ToolDispatcher.build(settings, http, content)
        result = await dispatcher.dispatch(call("m1", "get_music_data", query="top_tracks"))

    assert result.tool_call_id == "m1"
    assert not result.is_error
    assert "Spotify API is not configured" in result.content


@pytest.mark.asyncio
async def test_unknown_tool(settings, content) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(_offline)) as http:
        dispatcher = ToolDispatcher.build(settings, http, content)
        result = await dispatcher.dispatch(call("x1", "get_weather"))
    assert result.is_error
    assert result.content == "Unknown tool requested: get_weather."


@pytest.mark.asyncio
async def test_handler_exception_becomes_error_result() -> None:
    dispatcher = ToolDispatcher([_BrokenAgent()])
    result = await dispatcher.dispatch(call("b1", "get_books_data", query="currently_reading"))
    assert result.tool_call_id == "b1"
    assert result.is_error
    assert result.content.startswith("Error fetching books data")


@pytest.mark.asyncio
async def test_concurrent_results_keep_request_order() -> None:
    dispatcher = ToolDispatcher([_SlowAgent()])
    results = await dispatcher.dispatch_all([call("1", "get_about_info"), call("2", "get_photos_info")])
    assert [r.content for r in results] == ["get_about_info done", "get_photos_info done"]


@pytest.mark.asyncio
async def test_rejected_token_is_reported(content) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    settings = make_settings(strava_access_token="expired")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        dispatcher = ToolDispatcher.build(settings, http, content)
        result = await dispatcher.dispatch(call("s1", "get_biking_data", query="last_ride"))
    assert result.is_error
    assert "Strava rejected the access token (401)" in result.content


@pytest.mark.asyncio
async def test_books_agent_formats_progress() -> None:
    reading = [
        {
            "book": {
                "title": "Dune",
                "pages": 600,
                "contributions": [{"author": {"name": "Frank Herbert"}}],
            },
            "progress_pages": 150,
        },
        {"book": {"title": "Notes", "pages": None, "contributions": []}, "progress_pages": None},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"me": {"currently_reading": reading}}})

    settings = make_settings(hardcover_api_token="tok")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        agent = BooksAgent(HardcoverClient.from_settings(settings, http, RetryPolicy(max_retries=0)))
        text = await agent.execute("get_books_data", {"query": "currently_reading"})

    assert text.splitlines() == [
        "Currently reading (2):",
        '- "Dune" by Frank Herbert - page 150 of 600 (25%)',
        '- "Notes" by Unknown Author',
    ]


@pytest.mark.asyncio
async def test_music_default_fetches_recent_and_top() -> None:
    track = {"name": "Song", "artists": [{"name": "Band"}]}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("recently-played"):
            return httpx.Response(200, json={"items": [{"track": track}]})
        return httpx.Response(200, json={"items": [track]})

    settings = make_settings(spotify_access_token="tok")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        agent = MusicAgent(SpotifyClient.from_settings(settings, http, RetryPolicy(max_retries=0)))
        text = await agent.execute("get_music_data", {"query": "anything"})

    assert 'Recently played:\n- "Song" by Band' in text
    assert 'Top tracks:\n1. "Song" by Band' in text
