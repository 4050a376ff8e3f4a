from __future__ import annotations

import itertools
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

StreamingState = Literal["streaming", "done"]
ToolCallState = Literal["input-streaming", "input-available", "output-available", "error"]

_message_ids = itertools.count(1)


def next_message_id() -> str:
    """Return a process-unique, monotonically increasing message id."""

    return f"msg-{next(_message_ids)}"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TextPart(_FrozenModel):
    type: Literal["text"] = "text"
    text: str = Field(default="", description="Accumulated answer text")
    state: StreamingState = "streaming"


class ReasoningPart(_FrozenModel):
    type: Literal["reasoning"] = "reasoning"
    text: str = Field(default="", description="Accumulated reasoning text")
    state: StreamingState = "streaming"


class ToolCallPart(_FrozenModel):
    type: Literal["tool-call"] = "tool-call"
    call_id: str = Field(..., alias="toolCallId", description="Correlation id used to address the call")
    name: str = Field(..., alias="toolName", description="Raw tool identifier as sent by the server")
    input: Any = None
    output: Any = None
    error_text: str | None = Field(default=None, alias="errorText")
    state: ToolCallState = "input-streaming"


Part = Annotated[TextPart | ReasoningPart | ToolCallPart, Field(discriminator="type")]


class Message(_FrozenModel):
    """One transcript entry. Instances are immutable; reducers return copies."""

    id: str = Field(default_factory=next_message_id)
    role: Literal["user", "assistant"]
    parts: tuple[Part, ...] = ()
    streaming: bool = Field(default=False, exclude=True)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", parts=(TextPart(text=text, state="done"),))

    @classmethod
    def assistant_placeholder(cls) -> Message:
        return cls(role="assistant", streaming=True)

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))

    def last_part_index(self, kind: type[TextPart] | type[ReasoningPart]) -> int | None:
        for index in range(len(self.parts) - 1, -1, -1):
            if isinstance(self.parts[index], kind):
                return index
        return None

    def tool_call_index(self, call_id: str) -> int | None:
        for index, part in enumerate(self.parts):
            if isinstance(part, ToolCallPart) and part.call_id == call_id:
                return index
        return None

    def with_part(self, index: int, part: Part) -> Message:
        parts = list(self.parts)
        parts[index] = part
        return self.model_copy(update={"parts": tuple(parts)})

    def with_appended_part(self, part: Part) -> Message:
        return self.model_copy(update={"parts": (*self.parts, part)})

    def without_reasoning(self) -> Message:
        if not any(isinstance(part, ReasoningPart) for part in self.parts):
            return self
        parts = tuple(part for part in self.parts if not isinstance(part, ReasoningPart))
        return self.model_copy(update={"parts": parts})

    def to_wire(self) -> dict[str, Any]:
        """Serialize in the camelCase shape the chunk-stream endpoint expects."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
