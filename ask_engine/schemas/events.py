from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class SessionResponse(_WireModel):
    session_id: str = Field(..., alias="sessionId", min_length=1)
    expires_in: int | None = Field(default=None, alias="expiresIn", description="Session lifetime in seconds")


# Session SSE events, named by the frame's ``event:`` line.


class ConnectedEvent(_WireModel):
    type: Literal["connected"] = "connected"


class AnswerEvent(_WireModel):
    type: Literal["answer"] = "answer"
    text: str = Field(default="", description="Answer delta, not the full answer")
    session_id: str | None = Field(default=None, alias="sessionId")


class ToolEvent(_WireModel):
    type: Literal["tool"] = "tool"
    tool: str
    call_id: str = Field(..., alias="callID")
    status: Literal["pending", "running", "completed", "error"]
    session_id: str | None = Field(default=None, alias="sessionId")


class DoneEvent(_WireModel):
    type: Literal["done"] = "done"


class ErrorEvent(_WireModel):
    type: Literal["error"] = "error"
    error: str = "Unknown error"


SessionEvent = Annotated[
    ConnectedEvent | AnswerEvent | ToolEvent | DoneEvent | ErrorEvent,
    Field(discriminator="type"),
]


# Chunk-stream chunks, typed by the payload's ``type`` field.


class TextStartChunk(_WireModel):
    type: Literal["text-start"]
    id: str | None = None


class TextDeltaChunk(_WireModel):
    type: Literal["text-delta"]
    id: str | None = None
    delta: str


class TextEndChunk(_WireModel):
    type: Literal["text-end"]
    id: str | None = None


class ReasoningStartChunk(_WireModel):
    type: Literal["reasoning-start"]
    id: str | None = None


class ReasoningDeltaChunk(_WireModel):
    type: Literal["reasoning-delta"]
    id: str | None = None
    delta: str


class ReasoningEndChunk(_WireModel):
    type: Literal["reasoning-end"]
    id: str | None = None


class ToolInputStartChunk(_WireModel):
    type: Literal["tool-input-start"]
    tool_call_id: str = Field(..., alias="toolCallId")
    tool_name: str = Field(..., alias="toolName")


class ToolInputAvailableChunk(_WireModel):
    type: Literal["tool-input-available"]
    tool_call_id: str = Field(..., alias="toolCallId")
    tool_name: str | None = Field(default=None, alias="toolName")
    input: Any = None


class ToolOutputAvailableChunk(_WireModel):
    type: Literal["tool-output-available"]
    tool_call_id: str = Field(..., alias="toolCallId")
    output: Any = None


class ToolOutputErrorChunk(_WireModel):
    type: Literal["tool-output-error"]
    tool_call_id: str = Field(..., alias="toolCallId")
    error_text: str = Field(default="", alias="errorText")


class ErrorChunk(_WireModel):
    type: Literal["error"]
    error_text: str = Field(default="Unknown error", alias="errorText")


UIMessageChunk = Annotated[
    TextStartChunk
    | TextDeltaChunk
    | TextEndChunk
    | ReasoningStartChunk
    | ReasoningDeltaChunk
    | ReasoningEndChunk
    | ToolInputStartChunk
    | ToolInputAvailableChunk
    | ToolOutputAvailableChunk
    | ToolOutputErrorChunk
    | ErrorChunk,
    Field(discriminator="type"),
]

CHUNK_TYPES = frozenset(
    {
        "text-start",
        "text-delta",
        "text-end",
        "reasoning-start",
        "reasoning-delta",
        "reasoning-end",
        "tool-input-start",
        "tool-input-available",
        "tool-output-available",
        "tool-output-error",
        "error",
    }
)

SESSION_EVENT_TYPES = frozenset({"connected", "answer", "tool", "done", "error"})
