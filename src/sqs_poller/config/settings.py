"""
Module: settings.py
Description: Poller configuration using pydantic-settings.

Configures poller and transport defaults from environment variables
(prefixed with SQS_POLLER_) with validation. Supports .env files for
local development. Explicit constructor arguments on SqsPoller and
SQSClient always win over these values.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# SQS rejects visibility timeouts above 12 hours
MAX_VISIBILITY_TIMEOUT_SECONDS = 43200


class PollerSettings(BaseSettings):
    """Poller settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SQS_POLLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # AWS settings
    aws_region: str = Field(default="eu-west-1", description="AWS region of the queue")
    http_timeout_seconds: int = Field(
        default=25,
        ge=1,
        description="Read timeout for SQS calls; must exceed the long-poll wait"
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="botocore retry attempts per SQS call"
    )

    # Receive settings
    max_number_of_messages: int = Field(
        default=10,
        ge=1,
        le=10,
        description="Messages requested per receive call"
    )
    wait_time_seconds: int = Field(
        default=20,
        ge=0,
        le=20,
        description="Long-poll wait per receive call"
    )

    # Poll loop settings
    handler_timeout_ms: int = Field(
        default=600000,
        gt=0,
        description="Watchdog period for a whole batch of handlers"
    )
    poll_error_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Pause after a failed receive call"
    )
    max_backoff_seconds: int = Field(
        default=1200,
        gt=0,
        le=MAX_VISIBILITY_TIMEOUT_SECONDS,
        description="Ceiling for visibility timeout extensions"
    )
    backoff_multipliers: List[float] = Field(
        default=[1, 1, 1, 2, 2, 2, 2],
        min_length=1,
        description="Per-receive multipliers applied cumulatively to the base visibility timeout"
    )

    @field_validator('backoff_multipliers')
    @classmethod
    def validate_backoff_multipliers(cls, v: List[float]) -> List[float]:
        """Validate every multiplier is positive."""
        if any(multiplier <= 0 for multiplier in v):
            raise ValueError("backoff_multipliers must all be positive")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()


# Global settings instance
settings = PollerSettings()
