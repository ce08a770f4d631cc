"""
Chat endpoint backed by the tool-using orchestrator.

POST /api/chat
- Body: {messages: [{role, content}], topicContext: string|null, history: [{role, content}]}
- Buffered (default): {message, planning?, toolResults?}
- Streamed (?stream=true or Accept: text/event-stream): SSE frames
  planning? -> response -> done, or error

Environment: settings.openai_api_key must be set (OPENAI_API_KEY).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ..errors import TransportError
from ..llm.orchestrator import ChatOrchestrator
from ..schemas import ChatRequest, ChatResponse, ErrorResponse, Role, tool_results_out
from ..streaming import sse_stream


router = APIRouter(prefix="/api/chat", tags=["Chat"])


def get_orchestrator() -> ChatOrchestrator:
    return ChatOrchestrator()


def wants_stream(request: Request, stream: Optional[bool]) -> bool:
    if stream:
        return True
    return "text/event-stream" in request.headers.get("accept", "").lower()


def validate_turn(payload: ChatRequest) -> None:
    last = payload.messages[-1]
    if last.role != Role.USER:
        raise TransportError("The last message must come from the user.")
    if not last.content.strip():
        raise TransportError("The message must not be empty.")


@router.post(
    "",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def chat(
    payload: ChatRequest,
    request: Request,
    stream: Optional[bool] = Query(None, description="Stream the turn as server-sent events"),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    validate_turn(payload)

    if wants_stream(request, stream):
        return StreamingResponse(
            sse_stream(orch.events(payload)),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    outcome = await orch.run(payload)
    if outcome.status == "unavailable":
        body = ErrorResponse(error="Service unavailable", message=outcome.message)
        return JSONResponse(status_code=503, content=body.model_dump())
    if outcome.status == "error":
        body = ErrorResponse(error="Internal server error", message=outcome.message)
        return JSONResponse(status_code=500, content=body.model_dump())
    return ChatResponse(
        message=outcome.message,
        planning=outcome.planning,
        tool_results=tool_results_out(outcome.tool_results),
    )
