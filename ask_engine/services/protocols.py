from __future__ import annotations

from collections.abc import Sequence
import logging
from typing import Any

from ask_engine.errors import AlreadyCreating, AskEngineError, SessionBusy, SessionCreateFailed
from ask_engine.schemas.events import DoneEvent, SessionEvent, UIMessageChunk
from ask_engine.schemas.messages import Message
from ask_engine.services.cancellation import CancellationToken
from ask_engine.services.contracts import ChunkTransportProtocol, SessionTransportProtocol
from ask_engine.services.framing import Frame, LineEventFramer, TaggedLineFramer
from ask_engine.services.reducer import (
    apply_chunk,
    apply_session_event,
    parse_chunk,
    parse_session_event,
    stream_failure,
)
from ask_engine.services.session import SessionLifecycle, SessionState
from ask_engine.services.transport import ByteStream

logger = logging.getLogger(__name__)


class SessionSseProtocol:
    """Session-scoped ask API streaming ``event:``/``data:`` frames."""

    name = "session-sse"

    def __init__(self, transport: SessionTransportProtocol, session: SessionLifecycle) -> None:
        self._transport = transport
        self._session = session

    @property
    def session(self) -> SessionLifecycle:
        return self._session

    @property
    def session_state(self) -> str | None:
        return self._session.state.value

    @property
    def session_error(self) -> AskEngineError | None:
        return self._session.error

    def new_framer(self) -> LineEventFramer:
        return LineEventFramer()

    def decode(self, frame: Frame) -> SessionEvent | None:
        return parse_session_event(frame.name, frame.data)

    def apply(self, message: Message, event: SessionEvent) -> Message:
        return apply_session_event(message, event)

    def failure(self, event: Any) -> str | None:
        return stream_failure(event)

    def is_terminal(self, event: Any) -> bool:
        return isinstance(event, DoneEvent)

    async def open_stream(
        self,
        *,
        question: str,
        history: Sequence[Message],
        token: CancellationToken,
    ) -> ByteStream:
        session_id = await self._ensure_session(token)
        return await self._transport.ask(session_id, question, token)

    async def _ensure_session(self, token: CancellationToken) -> str:
        if self._session.state is SessionState.ACTIVE and self._session.session_id is not None:
            return self._session.session_id
        if self._session.state is SessionState.CREATING:
            raise SessionBusy("session is being created, please try again")

        token.raise_if_cancelled()
        try:
            session_id = await self._session.initialize_session()
        except AlreadyCreating as exc:
            raise SessionBusy("session is being created, please try again") from exc
        except SessionCreateFailed:
            raise
        except AskEngineError as exc:
            raise SessionCreateFailed("failed to create session") from exc
        token.raise_if_cancelled()
        return session_id

    async def reset(self) -> None:
        await self._session.clear_session()

    async def aclose(self) -> None:
        try:
            await self._session.aclose()
        finally:
            await self._transport.aclose()


class ChunkStreamProtocol:
    """Connectionless endpoint streaming ``0:<json>`` chunk lines."""

    name = "chunk-stream"

    def __init__(self, transport: ChunkTransportProtocol) -> None:
        self._transport = transport

    @property
    def session_state(self) -> str | None:
        return None

    @property
    def session_error(self) -> AskEngineError | None:
        return None

    def new_framer(self) -> TaggedLineFramer:
        return TaggedLineFramer()

    def decode(self, frame: Frame) -> UIMessageChunk | None:
        return parse_chunk(frame.data)

    def apply(self, message: Message, event: UIMessageChunk) -> Message:
        return apply_chunk(message, event)

    def failure(self, event: Any) -> str | None:
        return stream_failure(event)

    def is_terminal(self, event: Any) -> bool:
        return False

    async def open_stream(
        self,
        *,
        question: str,
        history: Sequence[Message],
        token: CancellationToken,
    ) -> ByteStream:
        logger.debug("posting transcript", extra={"messages_count": len(history)})
        return await self._transport.ask(history, token)

    async def reset(self) -> None:
        return None

    async def aclose(self) -> None:
        await self._transport.aclose()
