"""Shared fakes and helpers for ask-engine tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
import json
from typing import Any

import httpx
import pytest

from ask_engine.core.settings import Settings
from ask_engine.errors import TransportError
from ask_engine.schemas.events import SessionResponse


def sse(event: str, data: Any) -> bytes:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n".encode()


def chunk_line(payload: Any, tag: str = "0") -> bytes:
    return f"{tag}:{json.dumps(payload)}\n".encode()


async def scripted_body(*steps: bytes | asyncio.Event | Exception) -> AsyncIterator[bytes]:
    """Response body that yields bytes, pauses on events and raises exceptions in order."""

    for step in steps:
        if isinstance(step, asyncio.Event):
            await step.wait()
        elif isinstance(step, Exception):
            raise step
        else:
            yield step


async def wait_until(predicate: Callable[[], bool], attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


class FakeAskServer:
    """httpx MockTransport handler emulating the session and chunk-stream ask APIs."""

    def __init__(
        self,
        bodies: list[Callable[[], AsyncIterator[bytes]]] | None = None,
        *,
        session_ids: tuple[str, ...] = ("session-1", "session-2", "session-3"),
        create_status: int = 200,
        delete_status: int = 204,
        ask_status: int = 200,
    ) -> None:
        self._bodies = list(bodies or [])
        self._session_ids = list(session_ids)
        self.create_status = create_status
        self.delete_status = delete_status
        self.ask_status = ask_status
        self.requests: list[httpx.Request] = []

    def requests_for(self, method: str, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.endswith(suffix)]

    @property
    def deleted_paths(self) -> list[str]:
        return [r.url.path for r in self.requests if r.method == "DELETE"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/session"):
            if self.create_status >= 400:
                return httpx.Response(self.create_status)
            return httpx.Response(200, json={"sessionId": self._session_ids.pop(0), "expiresIn": 3600})
        if request.method == "DELETE":
            return httpx.Response(self.delete_status)
        if self.ask_status >= 300:
            return httpx.Response(self.ask_status)
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=self._bodies.pop(0)(),
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeSessionTransport:
    """In-memory session transport used at the HTTP boundary."""

    def __init__(self, *, fail_create: bool = False, fail_delete: bool = False) -> None:
        self.fail_create = fail_create
        self.fail_delete = fail_delete
        self.created: list[str] = []
        self.deleted: list[str] = []
        self.create_gate: asyncio.Event | None = None
        self.closed = False

    async def create_session(self) -> SessionResponse:
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.fail_create:
            raise TransportError(500, "Internal Server Error")
        session_id = f"session-{len(self.created) + 1}"
        self.created.append(session_id)
        return SessionResponse(session_id=session_id, expires_in=600)

    async def delete_session(self, session_id: str) -> None:
        self.deleted.append(session_id)
        if self.fail_delete:
            raise TransportError(404, "Not Found")

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session_transport() -> FakeSessionTransport:
    return FakeSessionTransport()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None)
