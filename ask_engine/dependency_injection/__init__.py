"""Dependency injection container assembly utilities."""

from ask_engine.dependency_injection.container import build_chat_orchestrator, build_container

__all__ = ["build_chat_orchestrator", "build_container"]
