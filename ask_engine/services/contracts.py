from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from ask_engine.errors import AskEngineError
from ask_engine.schemas.events import SessionResponse
from ask_engine.schemas.messages import Message
from ask_engine.services.cancellation import CancellationToken
from ask_engine.services.framing import Frame, StreamFramer
from ask_engine.services.transport import ByteStream


class SessionTransportProtocol(Protocol):
    """HTTP contract of the session-based ask API."""

    async def create_session(self) -> SessionResponse:
        """Create a server-side conversation session."""

    async def delete_session(self, session_id: str) -> None:
        """Delete a server-side conversation session."""

    async def ask(self, session_id: str, question: str, token: CancellationToken) -> ByteStream:
        """Post a question within a session and return the open SSE body."""

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""


class ChunkTransportProtocol(Protocol):
    """HTTP contract of the connectionless chunk-stream endpoint."""

    async def ask(self, messages: Sequence[Message], token: CancellationToken) -> ByteStream:
        """Post the transcript and return the open tagged-line body."""

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""


class WireProtocol(Protocol):
    """One wire-protocol variant behind the chat orchestrator."""

    name: str

    @property
    def session_state(self) -> str | None:
        """Lifecycle state of the server-side session, ``None`` when sessionless."""

    @property
    def session_error(self) -> AskEngineError | None:
        """Last session creation failure, kept apart from exchange errors."""

    def new_framer(self) -> StreamFramer:
        """Return a fresh framer for one response body."""

    def decode(self, frame: Frame) -> Any | None:
        """Type a frame's payload; ``None`` means ignore the frame."""

    def apply(self, message: Message, event: Any) -> Message:
        """Fold one decoded event into the assistant message."""

    def failure(self, event: Any) -> str | None:
        """Return the error text when the event reports a stream failure."""

    def is_terminal(self, event: Any) -> bool:
        """Whether the event ends the stream."""

    async def open_stream(
        self,
        *,
        question: str,
        history: Sequence[Message],
        token: CancellationToken,
    ) -> ByteStream:
        """Invoke the transport for one exchange."""

    async def reset(self) -> None:
        """Drop conversation state held outside the transcript."""

    async def aclose(self) -> None:
        """Tear down sessions and HTTP resources."""
