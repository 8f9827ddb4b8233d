"""
Deployment settings for eventq, loaded from the environment.

Library classes take their configuration as constructor arguments with
defaults. Settings exists for applications that wire eventq from environment
variables (prefix EVENTQ_) or a .env file; create_event_recorder() reads it.
"""

from __future__ import annotations

from datetime import timedelta

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """eventq settings loaded from EVENTQ_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="EVENTQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    lock_timeout_ms: int = Field(
        default=20, ge=0, description="Bounded wait for the queue lock"
    )
    delimiter: str = Field(
        default="|", description="Separator used in the tracking list"
    )
    delivery_timeout_seconds: float = Field(
        default=10, gt=0, description="HTTP timeout for one delivery attempt"
    )
    drain_interval_seconds: float | None = Field(
        default=None, gt=0, description="Periodic drain interval; unset disables it"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"log_level must be one of {sorted(valid)}")
        return v.upper()

    @property
    def lock_timeout(self) -> timedelta:
        return timedelta(milliseconds=self.lock_timeout_ms)

    @property
    def delivery_timeout(self) -> timedelta:
        return timedelta(seconds=self.delivery_timeout_seconds)

    @property
    def drain_interval(self) -> timedelta | None:
        if self.drain_interval_seconds is None:
            return None
        return timedelta(seconds=self.drain_interval_seconds)
