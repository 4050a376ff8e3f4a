"""Streaming chat engine for ask-style assistant backends."""

from ask_engine.dependency_injection import build_chat_orchestrator
from ask_engine.services.chat_orchestrator import ChatOrchestrator, ChatSnapshot, ExchangeState

__all__ = ["ChatOrchestrator", "ChatSnapshot", "ExchangeState", "build_chat_orchestrator"]
