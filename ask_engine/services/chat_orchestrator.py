from __future__ import annotations

import asyncio
from collections.abc import Callable
import contextlib
from dataclasses import dataclass, field
from enum import Enum
import itertools
import logging
from typing import Any

from ask_engine.errors import AskEngineError, ExchangeCancelled, StreamError
from ask_engine.schemas.messages import Message
from ask_engine.services.cancellation import CancellationToken
from ask_engine.services.contracts import WireProtocol
from ask_engine.services.reducer import close_open_parts, finalize_message

logger = logging.getLogger(__name__)

_exchange_ids = itertools.count(1)


class ExchangeState(str, Enum):
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"


@dataclass
class Exchange:
    """Transient state of one ``send_message`` call."""

    question: str
    user_message: Message
    assistant_id: str
    checkpoint: int
    id: int = field(default_factory=lambda: next(_exchange_ids))
    token: CancellationToken = field(default_factory=CancellationToken)
    state: ExchangeState = ExchangeState.SENDING
    error: AskEngineError | None = None


@dataclass(frozen=True)
class ChatSnapshot:
    messages: tuple[Message, ...]
    is_streaming: bool
    error: AskEngineError | None
    session_state: str | None
    session_error: AskEngineError | None = None


ChatListener = Callable[[ChatSnapshot], Any]


class Transcript:
    """Ordered message list with checkpoint/truncate rollback."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def checkpoint(self) -> int:
        return len(self._messages)

    def append(self, *messages: Message) -> None:
        self._messages.extend(messages)

    def get(self, message_id: str) -> Message | None:
        for message in reversed(self._messages):
            if message.id == message_id:
                return message
        return None

    def replace(self, message: Message) -> None:
        for index in range(len(self._messages) - 1, -1, -1):
            if self._messages[index].id == message.id:
                self._messages[index] = message
                return

    def truncate(self, checkpoint: int) -> None:
        del self._messages[checkpoint:]

    def clear(self) -> None:
        self._messages.clear()


class ChatOrchestrator:
    """Drives ask exchanges end-to-end and owns the conversation transcript.

    At most one exchange mutates the transcript at a time: a new
    ``send_message`` cancels the active exchange, and every reducer application
    first checks that its exchange still owns the transcript.
    """

    def __init__(
        self,
        protocol: WireProtocol,
        *,
        empty_response_text: str,
        expose_reasoning: bool = False,
    ) -> None:
        self._protocol = protocol
        self._empty_response_text = empty_response_text
        self._expose_reasoning = expose_reasoning
        self._transcript = Transcript()
        self._active: Exchange | None = None
        self._error: AskEngineError | None = None
        self._listeners: list[ChatListener] = []
        self._tasks: set[asyncio.Task[Exchange]] = set()

    @property
    def protocol(self) -> WireProtocol:
        return self._protocol

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.snapshot().messages

    @property
    def is_streaming(self) -> bool:
        return self._active is not None

    @property
    def error(self) -> AskEngineError | None:
        return self._error

    @property
    def session_state(self) -> str | None:
        return self._protocol.session_state

    @property
    def session_error(self) -> AskEngineError | None:
        return self._protocol.session_error

    def snapshot(self) -> ChatSnapshot:
        messages = self._transcript.messages
        if not self._expose_reasoning:
            messages = tuple(message.without_reasoning() for message in messages)
        return ChatSnapshot(
            messages=messages,
            is_streaming=self.is_streaming,
            error=self._error,
            session_state=self.session_state,
            session_error=self.session_error,
        )

    def subscribe(self, listener: ChatListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def send_message(self, text: str) -> asyncio.Task[Exchange] | None:
        """Start an exchange for ``text``; returns its task, or ``None`` for blank text."""

        if not text.strip():
            return None

        self._supersede_active()
        self._error = None

        checkpoint = self._transcript.checkpoint()
        user_message = Message.user(text)
        placeholder = Message.assistant_placeholder()
        self._transcript.append(user_message, placeholder)
        exchange = Exchange(
            question=text,
            user_message=user_message,
            assistant_id=placeholder.id,
            checkpoint=checkpoint,
        )
        self._active = exchange
        logger.debug("exchange started", extra={"exchange_id": exchange.id, "protocol": self._protocol.name})
        self._publish()

        task = asyncio.create_task(self._run_exchange(exchange))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def reset_chat(self) -> None:
        self._supersede_active()
        self._transcript.clear()
        self._error = None
        self._publish()
        await self._protocol.reset()
        logger.info("chat reset")
        self._publish()

    async def aclose(self) -> None:
        self._supersede_active()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._protocol.aclose()

    async def __aenter__(self) -> ChatOrchestrator:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _run_exchange(self, exchange: Exchange) -> Exchange:
        try:
            exchange.token.raise_if_cancelled()
            history = (*self._transcript.messages[: exchange.checkpoint], exchange.user_message)
            stream = await self._protocol.open_stream(
                question=exchange.question,
                history=history,
                token=exchange.token,
            )
            async with stream:
                self._transition(exchange, ExchangeState.STREAMING)
                framer = self._protocol.new_framer()
                async with (
                    contextlib.aclosing(stream.iter_bytes()) as fragments,
                    contextlib.aclosing(framer.aiter_frames(fragments)) as frames,
                ):
                    async for frame in frames:
                        event = self._protocol.decode(frame)
                        if event is None:
                            continue
                        self._ensure_owner(exchange)
                        failure = self._protocol.failure(event)
                        if failure is not None:
                            raise StreamError(failure)
                        self._apply(exchange, event)
                        if self._protocol.is_terminal(event):
                            break
            self._ensure_owner(exchange)
            self._complete(exchange)
        except ExchangeCancelled:
            self._mark_cancelled(exchange)
        except AskEngineError as exc:
            if exchange.token.cancelled or exchange is not self._active:
                self._mark_cancelled(exchange)
            else:
                self._fail(exchange, exc)
        except asyncio.CancelledError:
            self._mark_cancelled(exchange)
            if exchange is self._active:
                self._active = None
                self._publish()
            raise
        except Exception as exc:
            logger.exception("exchange crashed", extra={"exchange_id": exchange.id})
            error = AskEngineError(f"unexpected failure: {type(exc).__name__}: {exc}")
            error.__cause__ = exc
            if exchange.token.cancelled or exchange is not self._active:
                self._mark_cancelled(exchange)
            else:
                self._fail(exchange, error)
        return exchange

    def _ensure_owner(self, exchange: Exchange) -> None:
        if exchange.token.cancelled or exchange is not self._active:
            raise ExchangeCancelled()

    def _apply(self, exchange: Exchange, event: Any) -> None:
        message = self._transcript.get(exchange.assistant_id)
        if message is None:
            raise ExchangeCancelled()
        self._transcript.replace(self._protocol.apply(message, event))
        self._publish()

    def _transition(self, exchange: Exchange, state: ExchangeState) -> None:
        logger.debug(
            "exchange transition",
            extra={"exchange_id": exchange.id, "from_state": exchange.state.value, "to_state": state.value},
        )
        exchange.state = state

    def _complete(self, exchange: Exchange) -> None:
        message = self._transcript.get(exchange.assistant_id)
        if message is not None:
            self._transcript.replace(finalize_message(message, self._empty_response_text))
        self._transition(exchange, ExchangeState.COMPLETED)
        self._active = None
        self._publish()

    def _fail(self, exchange: Exchange, exc: AskEngineError) -> None:
        logger.warning(
            "exchange failed",
            extra={"exchange_id": exchange.id, "error_type": type(exc).__name__, "error": str(exc)},
        )
        self._transcript.truncate(exchange.checkpoint)
        exchange.error = exc
        self._transition(exchange, ExchangeState.ERRORED)
        self._error = exc
        self._active = None
        self._publish()

    def _mark_cancelled(self, exchange: Exchange) -> None:
        if exchange.state is not ExchangeState.CANCELLED:
            self._transition(exchange, ExchangeState.CANCELLED)

    def _supersede_active(self) -> None:
        exchange = self._active
        if exchange is None:
            return
        exchange.token.cancel()
        self._active = None
        placeholder = self._transcript.get(exchange.assistant_id)
        if placeholder is not None:
            self._transcript.replace(close_open_parts(placeholder))
        logger.debug("exchange superseded", extra={"exchange_id": exchange.id})

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("chat listener failed")
