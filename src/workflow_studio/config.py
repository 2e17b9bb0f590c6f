"""Configuration management using pydantic-settings.

Settings are read from the environment and an optional ``.env`` file. Nothing here
is required at startup: the studio runs against local JSON state without any
external credentials.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMConfig(BaseSettings):
    """LLM provider configuration used by the product assistant."""

    model_config = SettingsConfigDict(env_prefix="STUDIO_LLM_", env_file=".env", extra="ignore")

    provider: Literal["openai"] = Field(default="openai", description="LLM provider to use")
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model name")
    openai_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=400, ge=1, le=4096)

    @property
    def enabled(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())


class StudioSettings(BaseSettings):
    """Top-level settings for the CLI and the REST server."""

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    state_path: Path = Field(
        default=Path("studio_state/state.json"),
        validation_alias="STUDIO_STATE_PATH",
        description="JSON file holding users, teams, memberships, workflows and notifications.",
    )

    github_base_url: str = Field(
        default="https://api.github.com", validation_alias="GITHUB_BASE_URL"
    )

    # Dev-friendly CORS for a local UI. Override via STUDIO_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias="STUDIO_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    llm: LLMConfig = Field(default_factory=LLMConfig)

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
