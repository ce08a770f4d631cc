from __future__ import annotations

import asyncio

import httpx
import pytest

from sitechat.errors import ProviderAuthError, ProviderOverloaded
from sitechat.llm.orchestrator import (
    ERROR_MESSAGE,
    FALLBACK_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    UNAVAILABLE_MESSAGE,
    ChatOrchestrator,
)
from sitechat.schemas import ChatMessage, ChatRequest, Role

from conftest import FakeModel, call, make_settings, no_sleep, text_reply, tool_reply


def _offline(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def _orchestrator(model: FakeModel, content, settings=None) -> ChatOrchestrator:
    return ChatOrchestrator(
        settings=settings or make_settings(),
        model_factory=model.factory,
        content=content,
        transport=httpx.MockTransport(_offline),
        sleep=no_sleep,
    )


def _request(text: str = "How many days have you snowboarded?", **kwargs) -> ChatRequest:
    return ChatRequest(messages=[ChatMessage(role=Role.USER, content=text)], **kwargs)


@pytest.mark.asyncio
async def test_plain_answer_without_tools(content) -> None:
    model = FakeModel([text_reply("Hi! Ask me anything about Jeremy.")])
    outcome = await _orchestrator(model, content).run(_request("hello", topic_context="music"))

    assert outcome.status == "ok"
    assert outcome.message == "Hi! Ask me anything about Jeremy."
    assert outcome.planning is None
    assert outcome.tool_results == []
    assert len(model.calls) == 1
    system = model.calls[0]["messages"][0]
    assert system["role"] == "system"
    assert "Jeremy's music taste" in system["content"]
    assert "get_snowboarding_data" in system["content"]


@pytest.mark.asyncio
async def test_tool_round_then_single_follow_up(content) -> None:
    model = FakeModel([
        tool_reply(
            "I'll use the snowboarding data to count this season's days.",
            call("call_1", "get_snowboarding_data", metric="total_days"),
        ),
        # a follow-up asking for more tools must not start a second round
        tool_reply("You've been out 3 days this season.", call("call_2", "get_snowboarding_data", metric="comparison")),
    ])
    outcome = await _orchestrator(model, content).run(_request())

    assert outcome.status == "ok"
    assert outcome.message == "You've been out 3 days this season."
    assert outcome.planning.tools == ["get_snowboarding_data"]
    assert outcome.planning.reasoning == "I'll use the snowboarding data to count this season's days."
    assert [r.tool_call_id for r in outcome.tool_results] == ["call_1"]
    assert len(model.calls) == 2

    follow_up = model.calls[1]
    assert follow_up["tool_choice"] == "none"
    tool_messages = [m for m in follow_up["messages"] if m["role"] == "tool"]
    assert tool_messages == [
        {"role": "tool", "tool_call_id": "call_1", "content": "2024-25: 3 days (Last location: Arapahoe Basin)"}
    ]
    assert follow_up["messages"][-2]["tool_calls"][0]["id"] == "call_1"


@pytest.mark.asyncio
async def test_empty_text_is_replaced(content) -> None:
    model = FakeModel([text_reply("   ")])
    outcome = await _orchestrator(model, content).run(_request())
    assert outcome.status == "ok"
    assert outcome.message == FALLBACK_MESSAGE


@pytest.mark.asyncio
async def test_empty_follow_up_is_replaced(content) -> None:
    model = FakeModel([tool_reply("", call("c1", "get_about_info", query="career")), text_reply("")])
    outcome = await _orchestrator(model, content).run(_request("What do you do?"))
    assert outcome.message == FALLBACK_MESSAGE
    assert outcome.planning.reasoning == "I'll use the profile information to answer this question."


@pytest.mark.asyncio
async def test_overloaded_twice_then_success(content) -> None:
    model = FakeModel([ProviderOverloaded("busy"), ProviderOverloaded("busy"), text_reply("Done.")])
    outcome = await _orchestrator(model, content, make_settings(llm_max_retries=3)).run(_request())
    assert outcome.status == "ok"
    assert outcome.message == "Done."
    assert len(model.calls) == 3


@pytest.mark.asyncio
async def test_persistent_overload_is_unavailable(content) -> None:
    model = FakeModel([ProviderOverloaded("busy", status_code=529) for _ in range(5)])
    outcome = await _orchestrator(model, content, make_settings(llm_max_retries=2)).run(_request())
    assert outcome.status == "unavailable"
    assert outcome.message == UNAVAILABLE_MESSAGE
    assert outcome.error == "service_unavailable"
    assert len(model.calls) == 3


@pytest.mark.asyncio
async def test_model_auth_error_is_not_retried(content) -> None:
    model = FakeModel([ProviderAuthError("bad key", status_code=401), text_reply("never")])
    outcome = await _orchestrator(model, content).run(_request())
    assert outcome.status == "error"
    assert outcome.message == ERROR_MESSAGE
    assert len(model.calls) == 1


@pytest.mark.asyncio
async def test_missing_api_key(content) -> None:
    orchestrator = ChatOrchestrator(settings=make_settings(openai_api_key=None), content=content, sleep=no_sleep)
    outcome = await orchestrator.run(_request())
    assert outcome.status == "error"
    assert outcome.error == "not_configured"
    assert outcome.message == NOT_CONFIGURED_MESSAGE


@pytest.mark.asyncio
async def test_unconfigured_music_still_completes(content) -> None:
    model = FakeModel([
        tool_reply("", call("m1", "get_music_data", query="recent_tracks")),
        text_reply("Spotify isn't connected right now, so I can't see recent tracks."),
    ])
    outcome = await _orchestrator(model, content).run(_request("What have you been listening to?"))

    assert outcome.status == "ok"
    assert outcome.tool_results[0].tool_call_id == "m1"
    assert not outcome.tool_results[0].is_error
    assert "Spotify API is not configured" in outcome.tool_results[0].content


@pytest.mark.asyncio
async def test_conversation_is_windowed(content) -> None:
    history = [
        ChatMessage(role=Role.USER if i % 2 == 0 else Role.ASSISTANT, content=f"message {i}") for i in range(12)
    ]
    model = FakeModel([text_reply("ok")])
    await _orchestrator(model, content).run(ChatRequest(messages=[ChatMessage(role=Role.USER, content="latest")], history=history))

    sent = model.calls[0]["messages"]
    assert len(sent) == 1 + 10
    assert sent[-1] == {"role": "user", "content": "latest"}
    assert sent[1]["content"] == "message 3"


@pytest.mark.asyncio
async def test_event_order_with_tools(content) -> None:
    model = FakeModel([
        tool_reply("", call("c1", "get_photos_info", query="travel")),
        text_reply("Jeremy went to Iceland in 2023."),
    ])
    events = [ev async for ev in _orchestrator(model, content).events(_request("Where have you traveled?"))]

    assert [ev.event for ev in events] == ["planning", "response", "done"]
    assert events[0].data["tools"] == ["get_photos_info"]
    assert events[1].data == {
        "message": "Jeremy went to Iceland in 2023.",
        "toolResults": [{"tool_use_id": "c1", "content": "# Photos\nIceland, 2023."}],
    }


@pytest.mark.asyncio
async def test_event_order_on_failure(content) -> None:
    model = FakeModel([ProviderAuthError("bad key", status_code=401)])
    events = [ev async for ev in _orchestrator(model, content).events(_request())]
    assert [ev.event for ev in events] == ["error"]
    assert events[0].data == {"error": "internal_error", "message": ERROR_MESSAGE}


@pytest.mark.asyncio
async def test_planning_event_arrives_before_tools_finish(content) -> None:
    release = asyncio.Event()

    async def slow_spotify(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200, json={"items": [{"name": "Song", "artists": [{"name": "Band"}]}]})

    model = FakeModel([
        tool_reply("Let me check the top tracks.", call("call_1", "get_music_data", query="top_tracks")),
        text_reply("Your favourite is Song by Band."),
    ])
    orchestrator = ChatOrchestrator(
        settings=make_settings(spotify_access_token="tok"),
        model_factory=model.factory,
        content=content,
        transport=httpx.MockTransport(slow_spotify),
        sleep=no_sleep,
    )
    stream = orchestrator.events(_request("What do you listen to?"))

    first = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
    assert first.event == "planning"
    assert first.data["tools"] == ["get_music_data"]
    assert not release.is_set()
    # the follow-up model call has not happened while the tool is blocked
    assert len(model.calls) == 1

    release.set()
    rest = [ev async for ev in stream]
    assert [ev.event for ev in rest] == ["response", "done"]
    assert "\"Song\" by Band" in rest[0].data["toolResults"][0]["content"]


@pytest.mark.asyncio
async def test_tool_descriptions_use_configured_owner(content) -> None:
    model = FakeModel([text_reply("Hello.")])
    await _orchestrator(model, content, make_settings(owner_name="Alex")).run(_request("hello"))

    descriptions = [t["function"]["description"] for t in model.calls[0]["tools"]]
    assert any("Alex's" in d for d in descriptions)
    assert not any("Jeremy" in d for d in descriptions)
    assert "Alex's bike ride data" in model.calls[0]["messages"][0]["content"]
