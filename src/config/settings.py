"""Application settings loaded from environment variables and ``.env``."""

from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pydantic
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError


class Settings(BaseSettings):
    """Bot settings.

    Secrets are stored as ``SecretStr``; use the ``*_str`` properties to get
    the plain value.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Telegram
    telegram_bot_token: SecretStr
    admin_user_ids: List[int] = Field(default_factory=list)

    # AI (OpenAI-compatible endpoint, OpenRouter by default)
    openrouter_api_key: Optional[SecretStr] = None
    openai_api_key: Optional[SecretStr] = None
    openai_base_url: Optional[str] = None
    model_fast: str = "mistralai/mistral-7b-instruct"
    model_analysis: str = "qwen/qwen-coder-plus"
    ai_timeout_seconds: float = 30.0

    # Storage
    database_url: str = "sqlite:///data/diary.db"
    entry_retention_days: int = Field(default=0, ge=0)

    # Users
    default_timezone: str = "UTC"
    default_quiz_day: int = Field(default=0, ge=0, le=6)
    default_quiz_time: int = Field(default=20, ge=0, le=23)

    # Conversation flows
    conversation_ttl_minutes: int = Field(default=24 * 60, ge=1)
    inline_quiz_max_questions: int = Field(default=5, ge=1)

    # Scheduler
    scheduler_interval_seconds: int = Field(default=3600, ge=60)
    nudge_hour: int = Field(default=19, ge=0, le=23)
    nudges_enabled: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("default_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def telegram_token_str(self) -> str:
        return self.telegram_bot_token.get_secret_value()

    @property
    def openrouter_api_key_str(self) -> Optional[str]:
        return (
            self.openrouter_api_key.get_secret_value()
            if self.openrouter_api_key
            else None
        )

    @property
    def openai_api_key_str(self) -> Optional[str]:
        return self.openai_api_key.get_secret_value() if self.openai_api_key else None

    @property
    def ai_api_key_str(self) -> Optional[str]:
        """Key used for completions: OpenRouter first, then OpenAI."""
        return self.openrouter_api_key_str or self.openai_api_key_str

    @property
    def ai_base_url(self) -> Optional[str]:
        if self.openai_base_url:
            return self.openai_base_url
        if self.openrouter_api_key_str:
            return "https://openrouter.ai/api/v1"
        return None


def load_settings(**overrides: object) -> Settings:
    """Load settings, converting validation failures to ConfigurationError."""
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except pydantic.ValidationError as exc:
        missing = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        raise ConfigurationError(
            f"Invalid or missing settings: {', '.join(missing)}"
        ) from exc
