"""Engine services: transport, sessions, framing, reduction and orchestration."""

from ask_engine.services.cancellation import CancellationToken
from ask_engine.services.chat_orchestrator import ChatOrchestrator
from ask_engine.services.framing import LineEventFramer, StreamFramer, TaggedLineFramer
from ask_engine.services.protocols import ChunkStreamProtocol, SessionSseProtocol
from ask_engine.services.session import SessionLifecycle, SessionState
from ask_engine.services.transport import ByteStream, ChunkStreamTransport, SessionApiTransport

__all__ = [
    "ByteStream",
    "CancellationToken",
    "ChatOrchestrator",
    "ChunkStreamProtocol",
    "ChunkStreamTransport",
    "LineEventFramer",
    "SessionApiTransport",
    "SessionLifecycle",
    "SessionSseProtocol",
    "SessionState",
    "StreamFramer",
    "TaggedLineFramer",
]
