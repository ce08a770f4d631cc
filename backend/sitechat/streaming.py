"""
Server-sent event framing for streamed chat turns.

A stream is ``planning? response (done | error)`` or just ``error``. The
``FrameSequencer`` holds one flag per event kind and refuses anything that
would break that grammar; the stream ends right after the terminal frame.
"""
from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict

from .schemas import TurnEvent

logger = logging.getLogger(__name__)

TERMINAL_EVENTS = ("done", "error")


class FrameOrderError(RuntimeError):
    pass


def format_frame(event: str, data: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


class FrameSequencer:
    def __init__(self) -> None:
        self.planning_sent = False
        self.response_sent = False
        self.terminal_sent = False

    def accept(self, event: str) -> None:
        if self.terminal_sent:
            raise FrameOrderError(f"'{event}' after terminal frame")
        if event == "planning":
            if self.planning_sent or self.response_sent:
                raise FrameOrderError("planning must come once, before response")
            self.planning_sent = True
        elif event == "response":
            if self.response_sent:
                raise FrameOrderError("response already sent")
            self.response_sent = True
        elif event == "done":
            if not self.response_sent:
                raise FrameOrderError("done before response")
            self.terminal_sent = True
        elif event == "error":
            self.terminal_sent = True
        else:
            raise FrameOrderError(f"unknown event type '{event}'")


async def sse_stream(events: AsyncIterator[TurnEvent], request_id: str = "-") -> AsyncIterator[str]:
    """Encode turn events as SSE frames, yielding each one as soon as it exists."""
    sequencer = FrameSequencer()
    try:
        async for ev in events:
            try:
                sequencer.accept(ev.event)
            except FrameOrderError as e:
                logger.error(f"[{request_id}] dropping out-of-order stream frame: {e}")
                continue
            logger.debug(f"[{request_id}] stream_event {ev.event}")
            yield format_frame(ev.event, ev.data)
            if sequencer.terminal_sent:
                return
    except Exception:
        logger.exception(f"[{request_id}] stream producer failed")
    if not sequencer.terminal_sent:
        yield format_frame("error", {"error": "internal_error", "message": "The response stream ended unexpectedly."})
