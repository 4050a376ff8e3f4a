from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ask_engine.errors import NetworkError, NoResponseBody, TransportError
from ask_engine.schemas.events import SessionResponse
from ask_engine.schemas.messages import Message
from ask_engine.services.cancellation import CancellationToken

logger = logging.getLogger(__name__)


async def _next_fragment(fragments: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await anext(fragments)
    except StopAsyncIteration:
        return None


class ByteStream:
    """Open streaming response body consumed one read at a time."""

    def __init__(self, response: httpx.Response, token: CancellationToken) -> None:
        self._response = response
        self._token = token

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def __aenter__(self) -> ByteStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._response.aclose()

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        fragments = self._response.aiter_bytes()
        try:
            while True:
                self._token.raise_if_cancelled()
                try:
                    fragment = await self._token.race(_next_fragment(fragments))
                except httpx.HTTPError as exc:
                    raise NetworkError(f"stream read failed: {exc}") from exc
                if fragment is None:
                    return
                yield fragment
        finally:
            await self._response.aclose()


class _HttpTransport:
    """Shared httpx plumbing for the assistant HTTP endpoints."""

    def __init__(self, *, timeout_seconds: float = 60.0, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, url: str, *, json: Any = None) -> httpx.Response:
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc
        if response.is_error:
            raise TransportError(response.status_code, response.reason_phrase)
        return response

    async def _open_stream(self, url: str, payload: dict[str, Any], token: CancellationToken) -> ByteStream:
        token.raise_if_cancelled()
        request = self._client.build_request(
            "POST",
            url,
            json=payload,
            headers={"Accept": "text/event-stream"},
        )
        try:
            response = await token.race(self._client.send(request, stream=True))
        except httpx.HTTPError as exc:
            raise NetworkError(f"POST {url} failed: {exc}") from exc

        if response.is_error:
            await response.aclose()
            raise TransportError(response.status_code, response.reason_phrase)
        if response.status_code == httpx.codes.NO_CONTENT:
            await response.aclose()
            raise NoResponseBody(f"POST {url} returned no response body")
        logger.debug("opened response stream", extra={"url": url, "status_code": response.status_code})
        return ByteStream(response, token)


class SessionApiTransport(_HttpTransport):
    """Client for the session-based ask API (``/api/session`` + ``/api/ask``)."""

    def __init__(
        self,
        base_url: str,
        project_id: str | None = None,
        *,
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, client=client)
        self._base_url = base_url.rstrip("/")
        self._project_id = project_id

    def _url(self, path: str) -> str:
        if self._project_id:
            return f"{self._base_url}/api/projects/{self._project_id}/{path}"
        return f"{self._base_url}/api/{path}"

    async def create_session(self) -> SessionResponse:
        response = await self._request("POST", self._url("session"), json={})
        try:
            return SessionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(response.status_code, "malformed session response") from exc

    async def delete_session(self, session_id: str) -> None:
        await self._request("DELETE", self._url(f"session/{session_id}"))

    async def ask(self, session_id: str, question: str, token: CancellationToken) -> ByteStream:
        return await self._open_stream(
            self._url("ask"),
            {"sessionId": session_id, "question": question},
            token,
        )


class ChunkStreamTransport(_HttpTransport):
    """Client for the connectionless chunk-stream endpoint."""

    def __init__(
        self,
        api_url: str,
        project: str | None = None,
        *,
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, client=client)
        self._api_url = api_url
        self._project = project

    async def ask(self, messages: Sequence[Message], token: CancellationToken) -> ByteStream:
        payload: dict[str, Any] = {"messages": [message.to_wire() for message in messages]}
        if self._project:
            payload["project"] = self._project
        return await self._open_stream(self._api_url, payload, token)
