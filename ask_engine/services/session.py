from __future__ import annotations

import asyncio
from enum import Enum
import logging

from ask_engine.errors import AlreadyCreating, AskEngineError, SessionCreateFailed
from ask_engine.services.contracts import SessionTransportProtocol

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    NONE = "none"
    CREATING = "creating"
    ACTIVE = "active"
    ERROR = "error"


class SessionLifecycle:
    """Owns the single server-side conversation session of one engine."""

    def __init__(self, transport: SessionTransportProtocol) -> None:
        self._transport = transport
        self._state = SessionState.NONE
        self._session_id: str | None = None
        self._error: AskEngineError | None = None
        self._generation = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def error(self) -> AskEngineError | None:
        return self._error

    async def initialize_session(self) -> str:
        if self._state is SessionState.ACTIVE and self._session_id is not None:
            return self._session_id
        if self._state is SessionState.CREATING:
            raise AlreadyCreating("session creation already in progress")

        generation = self._generation
        self._state = SessionState.CREATING
        self._error = None
        try:
            response = await self._transport.create_session()
        except asyncio.CancelledError:
            if generation == self._generation:
                self._state = SessionState.NONE
            raise
        except AskEngineError as exc:
            if generation == self._generation:
                self._state = SessionState.ERROR
                self._error = exc
            logger.warning("session creation failed", extra={"error": str(exc)})
            raise

        if generation != self._generation:
            # Cleared while the create call was in flight; the new session is orphaned.
            await self._delete_quietly(response.session_id)
            raise SessionCreateFailed("session was cleared while being created")

        self._session_id = response.session_id
        self._state = SessionState.ACTIVE
        logger.info(
            "session created",
            extra={"session_id": response.session_id, "expires_in": response.expires_in},
        )
        return response.session_id

    async def clear_session(self) -> None:
        session_id = self._session_id
        self._generation += 1
        self._session_id = None
        self._state = SessionState.NONE
        self._error = None
        if session_id is not None:
            await self._delete_quietly(session_id)

    async def aclose(self) -> None:
        if self._state is SessionState.ACTIVE:
            await self.clear_session()

    async def _delete_quietly(self, session_id: str) -> None:
        try:
            await self._transport.delete_session(session_id)
        except AskEngineError as exc:
            logger.warning("session delete failed", extra={"session_id": session_id, "error": str(exc)})
        else:
            logger.debug("session deleted", extra={"session_id": session_id})
