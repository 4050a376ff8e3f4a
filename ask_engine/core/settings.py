from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EMPTY_RESPONSE_TEXT = "Something went wrong. Please try again later."

WireProtocolName = Literal["session-sse", "chunk-stream"]


class Settings(BaseSettings):
    """Runtime configuration loaded from env vars and local env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = Field(default="local", alias="APP_ENV")
    log_level: str | None = Field(default=None, alias="LOG_LEVEL")

    api_url: str = Field(default="http://localhost:3000", alias="ASK_ENGINE_API_URL")
    protocol: WireProtocolName = Field(default="session-sse", alias="ASK_ENGINE_PROTOCOL")
    project_id: str | None = Field(default=None, alias="ASK_ENGINE_PROJECT_ID")
    request_timeout_seconds: float = Field(default=60.0, alias="ASK_ENGINE_REQUEST_TIMEOUT_SECONDS", gt=0)
    empty_response_text: str = Field(
        default=DEFAULT_EMPTY_RESPONSE_TEXT,
        alias="ASK_ENGINE_EMPTY_RESPONSE_TEXT",
        min_length=1,
    )
    expose_reasoning: bool = Field(default=False, alias="ASK_ENGINE_EXPOSE_REASONING")

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "DEBUG" if self.app_env.lower() == "local" else "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
