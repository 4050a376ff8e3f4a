"""Typed transcript and wire models."""

from ask_engine.schemas.events import SessionEvent, SessionResponse, UIMessageChunk
from ask_engine.schemas.messages import Message, Part, ReasoningPart, TextPart, ToolCallPart

__all__ = [
    "Message",
    "Part",
    "ReasoningPart",
    "SessionEvent",
    "SessionResponse",
    "TextPart",
    "ToolCallPart",
    "UIMessageChunk",
]
