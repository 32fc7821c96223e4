"""Application configuration using Pydantic BaseSettings."""

import logging
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("debttracker.config")

# Order ids are uppercase alphanumeric tokens that follow the marker phrase
# and end at whitespace, a period or the end of the text.
DEFAULT_ORDER_ID_PATTERN = r"order ID (?P<id>[A-Z0-9]+?)(?:[\s.]|$)"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # MongoDB Configuration
    MONGO_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "debttracker"

    # Chat platform (Slack Web API)
    SLACK_API_URL: str = "https://slack.com/api"
    SLACK_BOT_TOKEN: str = ""
    SLACK_TIMEOUT_SECONDS: float = 10.0
    # Transport id of the bot itself; only reactions on its own messages count
    BOT_USER_ID: str = ""
    # Where internal failures are reported, empty to only log them
    OPERATOR_CHANNEL: str = ""

    # Debt tracking
    DEBT_REMINDER_INTERVAL_SECONDS: float = 4 * 60 * 60
    DEBT_MAXIMUM_DURATION_SECONDS: float = 72 * 60 * 60
    QUIET_HOURS_START: int = 21
    QUIET_HOURS_END: int = 9
    DEFAULT_TIMEZONE: Optional[str] = None
    MARK_AS_PAID_REACTION: str = "money_with_wings"
    HOST_CANCEL_REACTION: str = "x"
    ORDER_ID_PATTERN: str = DEFAULT_ORDER_ID_PATTERN
    CURRENCY: str = "nis"
    RESUME_ON_STARTUP: bool = True

    # Application Metadata
    APP_VERSION: str = "1.0.0"

    @field_validator("QUIET_HOURS_START", "QUIET_HOURS_END")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError("Quiet hours must be between 0 and 23")
        return v

    @field_validator("DEBT_REMINDER_INTERVAL_SECONDS", "DEBT_MAXIMUM_DURATION_SECONDS")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Durations must be positive")
        return v

    @model_validator(mode="after")
    def validate_interval_within_duration(self) -> "Settings":
        """The first reminder must be able to fire before tracking times out."""
        if self.DEBT_REMINDER_INTERVAL_SECONDS > self.DEBT_MAXIMUM_DURATION_SECONDS:
            raise ValueError(
                "DEBT_REMINDER_INTERVAL_SECONDS must not exceed "
                "DEBT_MAXIMUM_DURATION_SECONDS"
            )
        if not self.BOT_USER_ID:
            logger.warning(
                "BOT_USER_ID not set! Reactions will never match the bot's "
                "own messages until it is configured."
            )
        return self


# Global settings instance
settings = Settings()
