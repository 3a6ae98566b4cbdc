from typing import Final

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_BCRYPT_ROUNDS,
    DEFAULT_DB_PATH,
    DEFAULT_PORT,
    DEFAULT_SESSION_LIFETIME_HOURS,
    DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS,
    MEMORY_DB_PATH,
)
from .domain.constants import INITIAL_VETO_BUDGET


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files."""

    # Server configuration
    debug: bool = Field(default=True, description="Enable debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")

    # Database configuration
    db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description=f"SQLite database file path ('{MEMORY_DB_PATH}' for in-memory)",
    )
    database_url: str | None = Field(
        default=None, description="Full database URL, overrides db_path when set"
    )

    # Application configuration
    app_name: str = Field(default="SongVote", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    initial_veto_budget: int = Field(
        default=INITIAL_VETO_BUDGET,
        ge=0,
        description="Number of vetoes a newly registered user may cast",
    )

    # Security configuration
    bcrypt_rounds: int = Field(
        default=DEFAULT_BCRYPT_ROUNDS,
        ge=4,
        le=31,
        description="bcrypt cost factor for password hashing",
    )
    session_lifetime_hours: float = Field(
        default=DEFAULT_SESSION_LIFETIME_HOURS,
        gt=0,
        description="Lifetime of a login session",
    )
    session_sweep_interval_seconds: float = Field(
        default=DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS,
        gt=0,
        description="How often expired sessions are removed",
    )
    session_cookie_secure: bool = Field(
        default=False, description="Only send the session cookie over HTTPS"
    )

    # Logging configuration
    log_to_file: bool = Field(
        default=False, description="Force logging to file even in debug mode"
    )

    # Pydantic Settings configuration
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, v: str) -> str:
        """Reject an empty path, which SQLite would silently treat as a temp file."""
        if not v.strip():
            raise ValueError("db_path cannot be empty")
        return v.strip()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_memory_database(self) -> bool:
        """Check if the configured database lives only in memory."""
        if self.database_url:
            return self.database_url in ("sqlite://", "sqlite:///:memory:")
        return self.db_path == MEMORY_DB_PATH

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_database_url(self) -> str:
        """Get the effective database URL, handling SQLite with db_path."""
        if self.database_url:
            return self.database_url
        if self.db_path == MEMORY_DB_PATH:
            return "sqlite://"
        return f"sqlite:///{self.db_path}"


# Global settings instance
settings: Final = Settings()
