"""Environment configuration and validation.

Strongly-typed application settings loaded from environment variables (optionally via a local
`.env` file).

Gemini credentials come from `GEMINI_API_KEY` (a single key or a comma-separated list) plus any
number of numbered fallbacks `GEMINI_API_KEY_1`, `GEMINI_API_KEY_2`, ... They are collected here,
once, and handed to the cascade as an explicit list.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

from dotenv import dotenv_values
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.db.pool import DEFAULT_STATEMENT_TIMEOUT_MS
from src.llm.gemini import DEFAULT_API_BASE, DEFAULT_TIMEOUT_S

DEFAULT_MODELS: tuple[str, ...] = (
    "gemini-2.5-flash-lite",
    "gemini-2.5-flash",
    "gemini-2.0-flash",
)

_NUMBERED_KEY_RE = re.compile(r"^GEMINI_API_KEY_(\d+)$")


def collect_credentials(primary: str | None, environ: Mapping[str, str | None]) -> list[str]:
    """Collect Gemini keys in cascade order.

    Order: the comma-separated primary keys as written, then numbered fallbacks by ascending
    number. Blank values and duplicates are dropped.
    """

    keys: dict[str, None] = {}
    for part in (primary or "").split(","):
        if part.strip():
            keys.setdefault(part.strip(), None)

    numbered = sorted(
        (int(m.group(1)), (value or "").strip())
        for name, value in environ.items()
        if (m := _NUMBERED_KEY_RE.match(name))
    )
    for _, value in numbered:
        if value:
            keys.setdefault(value, None)

    return list(keys)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    telegram_bot_token: str = Field(alias="TELEGRAM_BOT_TOKEN")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    db_timezone: str = Field(default="UTC", alias="DB_TIMEZONE")

    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_credentials: list[str] = Field(default_factory=list, exclude=True)
    gemini_models: str = Field(default=",".join(DEFAULT_MODELS), alias="GEMINI_MODELS")
    llm_api_base: str = Field(default=DEFAULT_API_BASE, alias="LLM_API_BASE")
    llm_timeout_s: float = Field(default=DEFAULT_TIMEOUT_S, gt=0, alias="LLM_TIMEOUT_S")

    openweather_api_key: str | None = Field(default=None, alias="OPENWEATHER_API_KEY")

    db_statement_timeout_ms: int = Field(
        default=DEFAULT_STATEMENT_TIMEOUT_MS, ge=0, alias="DB_STATEMENT_TIMEOUT_MS"
    )

    page_size: int = Field(default=50, gt=0, alias="PAGE_SIZE")
    rate_limit_per_minute: int = Field(default=10, gt=0, alias="RATE_LIMIT_PER_MINUTE")
    seed_sample_data: bool = Field(default=False, alias="SEED_SAMPLE_DATA")

    @field_validator("db_timezone")
    @classmethod
    def validate_db_timezone_is_utc(cls, value: str) -> str:
        """Record timestamps and relative date filters assume UTC sessions."""

        if value.upper() != "UTC":
            raise ValueError("DB_TIMEZONE must be UTC")
        return "UTC"

    @field_validator("database_url", "openweather_api_key", mode="before")
    @classmethod
    def blank_as_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def validate_models(self) -> Settings:
        if not self.model_ids:
            raise ValueError("GEMINI_MODELS must list at least one model id")
        return self

    @property
    def model_ids(self) -> list[str]:
        return [m.strip() for m in self.gemini_models.split(",") if m.strip()]


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is missing or invalid.
    """

    try:
        settings = Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc

    # Numbered fallbacks cannot be declared as fields; read them from `.env` and the process
    # environment (the latter wins, as with declared fields).
    environ = {**dotenv_values(".env"), **os.environ}
    settings.gemini_credentials = collect_credentials(settings.gemini_api_key, environ)
    if not settings.gemini_credentials:
        raise RuntimeError(
            "Invalid environment configuration: "
            "GEMINI_API_KEY (or GEMINI_API_KEY_<n>) is required"
        )
    return settings
