"""Configuration management for the link shortener."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Config(BaseSettings):
    """Application configuration.

    Loaded once from the environment (and ``.env`` / ``.env.local``) by the
    entry points, then handed to each component that needs it.
    """

    # Storage settings
    database_path: str = Field(
        default="link_shortener.db",
        description="Path of the SQLite database file"
    )

    pool_size: int = Field(
        default=25,
        ge=1,
        description="Maximum number of concurrent storage connections"
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind to"
    )

    port: int = Field(
        default=8080,
        description="Port to listen on"
    )

    workers: int = Field(
        default=1,
        ge=1,
        description="Number of uvicorn worker processes"
    )

    # Link settings
    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL for generated short links"
    )

    path_prefix: str = Field(
        default="",
        description="Path prefix for short links (e.g., '/s' for /s/abc1)"
    )

    auth_token: Optional[str] = Field(
        default=None,
        description="Bearer token required to create links"
    )

    max_allocation_attempts: int = Field(
        default=10,
        ge=1,
        description="Maximum candidate codes tried before giving up"
    )

    # Click accounting settings
    click_queue_size: int = Field(
        default=10000,
        ge=1,
        description="Maximum number of clicks waiting to be recorded"
    )

    click_workers: int = Field(
        default=4,
        ge=1,
        description="Number of background click recording tasks"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Log file path (logs to stdout if not specified)"
    )

    log_json: bool = Field(
        default=False,
        description="Use JSON format for logs"
    )

    model_config = {
        "env_file": (".env", ".env.local"),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v) -> str:
        """Upper-case the level; unknown values fall back to INFO."""
        level = str(v or "").strip().upper()
        if level == "WARN":
            level = "WARNING"
        return level if level in LOG_LEVELS else "INFO"

    @field_validator("auth_token", mode="before")
    @classmethod
    def empty_token_is_none(cls, v):
        if v is not None and not str(v).strip():
            return None
        return v


def load_config(**overrides) -> Config:
    """Load configuration from environment."""
    return Config(**overrides)
