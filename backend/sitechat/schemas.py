"""
Pydantic schemas for request/response validation and for the values that
flow through one chat turn.
"""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ============ Conversation Schemas ============

class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One message of the caller-supplied conversation."""
    role: Role
    content: str


class Topic(str, Enum):
    """Widget/topic the visitor is chatting about; narrows the persona."""
    ABOUT = "about"
    MUSIC = "music"
    SNOWBOARDING = "snowboarding"
    BIKING = "biking"
    BOOKS = "books"
    PHOTOS = "photos"
    SITE = "site"


class ChatRequest(BaseModel):
    """Inbound body of POST /api/chat.

    ``activeWidget`` and ``conversationHistory`` are accepted as aliases so
    older clients keep working.
    """
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessage] = Field(..., min_length=1)
    topic_context: Optional[str] = Field(
        None, validation_alias=AliasChoices("topicContext", "activeWidget", "topic_context")
    )
    history: List[ChatMessage] = Field(
        default_factory=list, validation_alias=AliasChoices("history", "conversationHistory")
    )

    def conversation(self, window: int) -> List[ChatMessage]:
        """History followed by the new messages, bounded to the last ``window``."""
        combined = list(self.history) + list(self.messages)
        return combined[-window:] if window > 0 else combined

    def topic(self) -> Optional[Topic]:
        if not self.topic_context:
            return None
        try:
            return Topic(self.topic_context.strip().lower())
        except ValueError:
            return None


class SessionContext(BaseModel):
    """Which persona/system-prompt variant a turn is composed with."""
    topic: Optional[Topic] = None
    system_prompt_fragment: str


# ============ Tool Schemas ============

class ToolDefinition(BaseModel):
    """A named capability the model may invoke."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    input_schema: Dict[str, Any]


class ToolCallRequest(BaseModel):
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    tool_call_id: str
    content: str
    is_error: bool = False


class PlanningTrace(BaseModel):
    tools: List[str]
    reasoning: str


# ============ Turn Schemas ============

TurnStatus = Literal["ok", "unavailable", "error"]
EventType = Literal["planning", "response", "done", "error"]


class TurnEvent(BaseModel):
    """One unit of streamed progress produced by the orchestrator."""
    event: EventType
    data: Dict[str, Any] = Field(default_factory=dict)


class TurnOutcome(BaseModel):
    """Buffered result of one turn."""
    status: TurnStatus = "ok"
    message: str
    planning: Optional[PlanningTrace] = None
    tool_results: List[ToolResult] = Field(default_factory=list)
    error: Optional[str] = None


# ============ Response Schemas ============

class ToolResultOut(BaseModel):
    tool_use_id: str
    content: str


class ChatResponse(BaseModel):
    """Outbound body of a buffered chat turn."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    planning: Optional[PlanningTrace] = None
    tool_results: Optional[List[ToolResultOut]] = Field(None, alias="toolResults")


class ErrorResponse(BaseModel):
    error: str
    message: str


def tool_results_out(results: List[ToolResult]) -> Optional[List[ToolResultOut]]:
    if not results:
        return None
    return [ToolResultOut(tool_use_id=r.tool_call_id, content=r.content) for r in results]


# ============ Widget Schemas ============

class RideActivity(BaseModel):
    name: Optional[str] = None
    distance: Optional[float] = None  # meters
    elevation_gain: Optional[float] = None  # meters
    moving_time: Optional[int] = None  # seconds
    elapsed_time: Optional[int] = None
    start_date: Optional[str] = None
    start_date_local: Optional[str] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    location_country: Optional[str] = None
    route_polyline: Optional[str] = None


class RideResponse(BaseModel):
    activity: RideActivity


class TrackOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    artist: str
    played_at: Optional[str] = Field(None, alias="playedAt")
    rank: Optional[int] = None
    album_art: Optional[str] = Field(None, alias="albumArt")


class TracksResponse(BaseModel):
    tracks: List[TrackOut]


class BookOut(BaseModel):
    id: str
    title: str
    author: str
    cover_url: str = ""
    progress: int = 0  # percent, clamped to 0..100
    total_pages: int = 0
    current_page: int = 0


class BooksResponse(BaseModel):
    books: List[BookOut]
