"""Error taxonomy for the chat engine."""

from __future__ import annotations


class AskEngineError(Exception):
    """Base exception for failures that terminate an exchange."""


class NetworkError(AskEngineError):
    """Raised when the connection to the assistant backend fails."""


class TransportError(AskEngineError):
    """Raised when the assistant backend answers with a non-success status."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"{status_code} {reason}".strip())
        self.status_code = status_code
        self.reason = reason


class NoResponseBody(AskEngineError):
    """Raised when a stream endpoint answers without a readable body."""


class StreamError(AskEngineError):
    """Raised when the server reports an error inside the stream."""


class MalformedFrame(AskEngineError):
    """Raised when a frame payload is not valid JSON. Recovered by the framer."""


class SessionCreateFailed(AskEngineError):
    """Raised when a conversation session could not be created."""


class SessionBusy(AskEngineError):
    """Raised when an exchange needs a session that is still being created."""


class AlreadyCreating(AskEngineError):
    """Raised when session creation is requested while one is in progress."""


class ExchangeCancelled(Exception):
    """Cancelled outcome of an exchange; intentionally not an ``AskEngineError``."""
