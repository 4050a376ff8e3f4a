"""Pure transcript reducers for both wire-protocol variants.

Every function here takes an immutable ``Message`` and returns the next one;
no I/O and no shared state. Delta routing always targets the last part of the
matching kind, so a tool call opened in the middle of a text run never absorbs
text deltas. Tool calls are addressed by id and updated in place.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ask_engine.schemas.events import (
    CHUNK_TYPES,
    SESSION_EVENT_TYPES,
    AnswerEvent,
    ErrorChunk,
    ErrorEvent,
    ReasoningDeltaChunk,
    ReasoningEndChunk,
    ReasoningStartChunk,
    SessionEvent,
    TextDeltaChunk,
    TextEndChunk,
    TextStartChunk,
    ToolEvent,
    ToolInputAvailableChunk,
    ToolInputStartChunk,
    ToolOutputAvailableChunk,
    ToolOutputErrorChunk,
    UIMessageChunk,
)
from ask_engine.schemas.messages import Message, ReasoningPart, TextPart, ToolCallPart, ToolCallState

logger = logging.getLogger(__name__)

_chunk_adapter: TypeAdapter[UIMessageChunk] = TypeAdapter(UIMessageChunk)
_session_event_adapter: TypeAdapter[SessionEvent] = TypeAdapter(SessionEvent)

_TOOL_STATUS_STATES: dict[str, ToolCallState] = {
    "pending": "input-streaming",
    "running": "input-available",
    "completed": "output-available",
    "error": "error",
}


def parse_chunk(payload: Any) -> UIMessageChunk | None:
    if not isinstance(payload, dict):
        logger.debug("ignoring non-object chunk payload")
        return None
    chunk_type = payload.get("type")
    if chunk_type not in CHUNK_TYPES:
        logger.debug("ignoring unrecognized chunk", extra={"chunk_type": chunk_type})
        return None
    try:
        return _chunk_adapter.validate_python(payload)
    except ValidationError as exc:
        logger.warning("dropping invalid chunk", extra={"chunk_type": chunk_type, "error": str(exc)})
        return None


def parse_session_event(name: str, payload: Any) -> SessionEvent | None:
    """Type a session SSE payload by its frame's event name."""

    if name not in SESSION_EVENT_TYPES:
        logger.debug("ignoring unrecognized session event", extra={"event_name": name})
        return None
    if not isinstance(payload, dict):
        logger.debug("ignoring non-object session event payload", extra={"event_name": name})
        return None
    try:
        return _session_event_adapter.validate_python({**payload, "type": name})
    except ValidationError as exc:
        logger.warning("dropping invalid session event", extra={"event_name": name, "error": str(exc)})
        return None


def stream_failure(event: Any) -> str | None:
    if isinstance(event, ErrorChunk):
        return event.error_text
    if isinstance(event, ErrorEvent):
        return event.error
    return None


def _append_delta(message: Message, kind: type[TextPart] | type[ReasoningPart], delta: str) -> Message:
    index = message.last_part_index(kind)
    if index is None:
        return message
    part = message.parts[index]
    return message.with_part(index, part.model_copy(update={"text": part.text + delta}))


def _close_last(message: Message, kind: type[TextPart] | type[ReasoningPart]) -> Message:
    index = message.last_part_index(kind)
    if index is None:
        return message
    return message.with_part(index, message.parts[index].model_copy(update={"state": "done"}))


def _update_tool_call(message: Message, call_id: str, **changes: Any) -> Message:
    index = message.tool_call_index(call_id)
    if index is None:
        return message
    return message.with_part(index, message.parts[index].model_copy(update=changes))


def apply_chunk(message: Message, chunk: UIMessageChunk) -> Message:
    match chunk:
        case TextStartChunk():
            return message.with_appended_part(TextPart())
        case TextDeltaChunk(delta=delta):
            return _append_delta(message, TextPart, delta)
        case TextEndChunk():
            return _close_last(message, TextPart)
        case ReasoningStartChunk():
            return message.with_appended_part(ReasoningPart())
        case ReasoningDeltaChunk(delta=delta):
            return _append_delta(message, ReasoningPart, delta)
        case ReasoningEndChunk():
            return _close_last(message, ReasoningPart)
        case ToolInputStartChunk():
            return message.with_appended_part(
                ToolCallPart(call_id=chunk.tool_call_id, name=chunk.tool_name)
            )
        case ToolInputAvailableChunk():
            return _update_tool_call(message, chunk.tool_call_id, input=chunk.input, state="input-available")
        case ToolOutputAvailableChunk():
            return _update_tool_call(message, chunk.tool_call_id, output=chunk.output, state="output-available")
        case ToolOutputErrorChunk():
            return _update_tool_call(message, chunk.tool_call_id, error_text=chunk.error_text, state="error")
        case _:
            return message


def apply_session_event(message: Message, event: SessionEvent) -> Message:
    match event:
        case AnswerEvent(text=text) if text:
            index = message.last_part_index(TextPart)
            if index is not None and message.parts[index].state == "streaming":
                return _append_delta(message, TextPart, text)
            return message.with_appended_part(TextPart(text=text))
        case ToolEvent():
            state = _TOOL_STATUS_STATES[event.status]
            index = message.tool_call_index(event.call_id)
            if index is None:
                return message.with_appended_part(
                    ToolCallPart(call_id=event.call_id, name=event.tool, state=state)
                )
            return message.with_part(
                index,
                message.parts[index].model_copy(update={"name": event.tool, "state": state}),
            )
        case _:
            return message


def close_open_parts(message: Message) -> Message:
    parts = tuple(
        part.model_copy(update={"state": "done"})
        if isinstance(part, (TextPart, ReasoningPart)) and part.state == "streaming"
        else part
        for part in message.parts
    )
    return message.model_copy(update={"parts": parts, "streaming": False})


def finalize_message(message: Message, empty_response_text: str) -> Message:
    """Close a completed assistant message, substituting fallback text when it is blank."""

    message = close_open_parts(message)
    if message.text.strip():
        return message
    index = message.last_part_index(TextPart)
    if index is None:
        return message.with_appended_part(TextPart(text=empty_response_text, state="done"))
    return message.with_part(index, TextPart(text=empty_response_text, state="done"))
