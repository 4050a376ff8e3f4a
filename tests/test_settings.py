from __future__ import annotations

import pytest
from pydantic import ValidationError

from ask_engine.core.settings import DEFAULT_EMPTY_RESPONSE_TEXT, Settings


def test_settings_defaults(test_settings: Settings) -> None:
    assert test_settings.api_url == "http://localhost:3000"
    assert test_settings.protocol == "session-sse"
    assert test_settings.project_id is None
    assert test_settings.request_timeout_seconds == 60.0
    assert test_settings.empty_response_text == DEFAULT_EMPTY_RESPONSE_TEXT
    assert test_settings.expose_reasoning is False


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ASK_ENGINE_API_URL", "https://docs.example.com/api/chat")
    monkeypatch.setenv("ASK_ENGINE_PROTOCOL", "chunk-stream")
    monkeypatch.setenv("ASK_ENGINE_PROJECT_ID", "handbook")
    monkeypatch.setenv("ASK_ENGINE_EXPOSE_REASONING", "true")

    settings = Settings(_env_file=None)

    assert settings.api_url == "https://docs.example.com/api/chat"
    assert settings.protocol == "chunk-stream"
    assert settings.project_id == "handbook"
    assert settings.expose_reasoning is True


def test_settings_reject_unknown_protocol(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ASK_ENGINE_PROTOCOL", "websocket")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_effective_log_level_prefers_explicit_level() -> None:
    settings = Settings(_env_file=None, APP_ENV="prod", LOG_LEVEL="warning")

    assert settings.effective_log_level == "WARNING"


@pytest.mark.parametrize(("app_env", "expected"), [("local", "DEBUG"), ("LOCAL", "DEBUG"), ("prod", "INFO")])
def test_effective_log_level_falls_back_to_environment(app_env: str, expected: str) -> None:
    settings = Settings(_env_file=None, APP_ENV=app_env, LOG_LEVEL=None)

    assert settings.effective_log_level == expected
