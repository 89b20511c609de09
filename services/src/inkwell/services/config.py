"""Service configuration utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _default_data_dir() -> Path:
    """Determine a sensible default storage directory."""

    return Path.cwd() / "storage"


class ServiceSettings(BaseModel):
    """Runtime configuration for the FastAPI services."""

    ENV_PREFIX: ClassVar[str] = "INKWELL_"
    ENV_FILE: ClassVar[str | None] = ".env"
    ENV_FILE_ENCODING: ClassVar[str] = "utf-8"

    model_config = ConfigDict(extra="ignore")

    data_dir: Path = Field(
        default_factory=_default_data_dir,
        description="Directory holding chapter files, edit history and the search index.",
    )
    openrouter_api_key: str | None = Field(
        default=None,
        description="Bearer token for the OpenRouter chat completions API.",
    )
    openrouter_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        description="Chat completions endpoint used for rewrites and context repair.",
    )
    app_public_url: str = Field(
        default="http://localhost:3000",
        description="Referer advertised to the model provider.",
    )
    model_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout applied to each model call in seconds.",
    )
    web_timeout_seconds: float = Field(
        default=7.0,
        description="Timeout applied to each web search or page fetch in seconds.",
    )
    web_max_results: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Number of search results fetched for online rewrites.",
    )
    web_snippet_chars: int = Field(
        default=1200,
        ge=100,
        description="Maximum characters kept from each fetched page.",
    )
    history_default_limit: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Number of edit operations returned by the history endpoint by default.",
    )

    @field_validator("data_dir")
    @classmethod
    def _ensure_data_dir_exists(cls, value: Path) -> Path:
        """Validate that the configured storage directory exists."""

        if not value.exists():
            raise ValueError(f"Data directory does not exist: {value}")
        return value

    @field_validator("model_timeout_seconds", "web_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    @staticmethod
    def _parse_env_file(path: Path, encoding: str) -> dict[str, str]:
        """Parse an environment file supporting `export` and quoted values."""

        parsed: dict[str, str] = {}

        for raw_line in path.read_text(encoding=encoding).splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].strip()

            if "=" not in line:
                continue

            key, raw_value = line.split("=", 1)
            key = key.strip()
            value = raw_value.strip()

            if value and value[0] == value[-1] and value[0] in {'"', "'"}:
                value = value[1:-1]

            parsed[key] = value

        return parsed

    @classmethod
    def from_environment(cls) -> "ServiceSettings":
        """Load settings from environment variables or a `.env` file."""

        file_values: dict[str, str] = {}
        if cls.ENV_FILE:
            env_file_path = Path(cls.ENV_FILE)
            if not env_file_path.is_absolute():
                env_file_path = Path.cwd() / env_file_path
            if env_file_path.exists():
                file_values = cls._parse_env_file(env_file_path, cls.ENV_FILE_ENCODING)

        overrides: dict[str, str] = {}
        for field_name in cls.model_fields:
            env_key = f"{cls.ENV_PREFIX}{field_name.upper()}"
            if env_key in os.environ:
                overrides[field_name] = os.environ[env_key]
            elif env_key in file_values:
                overrides[field_name] = file_values[env_key]

        # The provider's conventional variable name is honoured as a fallback.
        if "openrouter_api_key" not in overrides:
            fallback = os.environ.get("OPENROUTER_API_KEY") or file_values.get("OPENROUTER_API_KEY")
            if fallback:
                overrides["openrouter_api_key"] = fallback

        typed_overrides = cast(dict[str, Any], overrides)
        return cls(**typed_overrides)

    @property
    def chapters_dir(self) -> Path:
        return self.data_dir / "chapters"

    @property
    def history_dir(self) -> Path:
        """Root directory for edit history and diagnostics."""

        return self.data_dir / "history"

    @property
    def search_db_path(self) -> Path:
        return self.data_dir / "search.sqlite3"


__all__: list[str] = ["ServiceSettings"]
