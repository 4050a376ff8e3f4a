from __future__ import annotations

import punq

from ask_engine.core.settings import Settings, get_settings
from ask_engine.services.chat_orchestrator import ChatOrchestrator
from ask_engine.services.contracts import ChunkTransportProtocol, SessionTransportProtocol, WireProtocol
from ask_engine.services.protocols import ChunkStreamProtocol, SessionSseProtocol
from ask_engine.services.session import SessionLifecycle
from ask_engine.services.transport import ChunkStreamTransport, SessionApiTransport


def _register_session_sse(container: punq.Container, settings: Settings) -> None:
    container.register(
        SessionTransportProtocol,
        factory=lambda: SessionApiTransport(
            base_url=settings.api_url,
            project_id=settings.project_id,
            timeout_seconds=settings.request_timeout_seconds,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        SessionLifecycle,
        factory=lambda: SessionLifecycle(transport=container.resolve(SessionTransportProtocol)),
        scope=punq.Scope.singleton,
    )
    container.register(
        WireProtocol,
        factory=lambda: SessionSseProtocol(
            transport=container.resolve(SessionTransportProtocol),
            session=container.resolve(SessionLifecycle),
        ),
        scope=punq.Scope.singleton,
    )


def _register_chunk_stream(container: punq.Container, settings: Settings) -> None:
    container.register(
        ChunkTransportProtocol,
        factory=lambda: ChunkStreamTransport(
            api_url=settings.api_url,
            project=settings.project_id,
            timeout_seconds=settings.request_timeout_seconds,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        WireProtocol,
        factory=lambda: ChunkStreamProtocol(transport=container.resolve(ChunkTransportProtocol)),
        scope=punq.Scope.singleton,
    )


def build_container(settings: Settings) -> punq.Container:
    container = punq.Container()
    container.register(Settings, instance=settings)

    if settings.protocol == "chunk-stream":
        _register_chunk_stream(container, settings)
    else:
        _register_session_sse(container, settings)

    container.register(
        ChatOrchestrator,
        factory=lambda: ChatOrchestrator(
            container.resolve(WireProtocol),
            empty_response_text=settings.empty_response_text,
            expose_reasoning=settings.expose_reasoning,
        ),
        scope=punq.Scope.singleton,
    )
    return container


def build_chat_orchestrator(settings: Settings | None = None) -> ChatOrchestrator:
    """Build a fully wired orchestrator for the configured wire protocol."""

    return build_container(settings or get_settings()).resolve(ChatOrchestrator)
