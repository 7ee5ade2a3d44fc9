"""Application configuration via pydantic-settings.

Values are loaded from environment variables (.env file).
Settings are organized into logical groups and composed into a single Settings object.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnrollmentSettings(BaseSettings):
    """Bounds and defaults used by the enrollment state machine."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="ENROLLMENT_", extra="ignore")

    default_current_age: int = Field(
        default=34,
        description="Age assumed when the account does not provide one",
    )
    default_contribution_pct: float = Field(
        default=6,
        description="Contribution rate used when the user is unsure",
    )
    min_current_age: int = Field(default=14, description="Youngest accepted current age")
    max_age: int = Field(default=100, description="Upper bound for current and retirement age")
    allocation_tolerance: float = Field(
        default=0.01,
        description="Allowed deviation from 100 when summing a manual allocation",
    )


class SessionSettings(BaseSettings):
    """Limits for the in-memory conversation store and audit trail."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="SESSION_", extra="ignore")

    max_sessions: int = Field(default=10_000, description="Conversations kept in memory at once")
    idle_ttl_seconds: int = Field(default=86_400, description="Forget a conversation after this long without a turn")
    completed_ttl_seconds: int = Field(
        default=900,
        description="Forget a confirmed or ineligible conversation after this long",
    )
    audit_max_sessions: int = Field(default=10_000, description="Conversations the audit trail tracks at once")


class ApiSettings(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_host: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    api_port: int = Field(default=8000, description="Bind port for uvicorn")


class Settings(BaseSettings):
    """Root settings composing all sub-settings.

    Usage:
        settings = Settings()
        settings.enrollment.default_current_age
        settings.api.api_port
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    environment: str = Field(default="development")
    log_level: str = Field(default="DEBUG")
    audit_trail_size: int = Field(default=200, description="Events kept per conversation")

    # Composed settings (loaded from same .env)
    enrollment: EnrollmentSettings = Field(default_factory=EnrollmentSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            msg = f"Invalid log level: {v}. Must be one of {valid}"
            raise ValueError(msg)
        return upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Module-level singleton: import this wherever settings are needed.
settings = Settings()
