"""
Configuration module for acme-rss.

Settings are read from ``ACME_RSS_*`` environment variables (and an optional
``.env`` file) using Pydantic BaseSettings for type validation and defaults.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings

DEFAULT_USER_AGENT = "acme-rss/0.1 (+https://9fans.github.io/plan9port/)"


class Settings(BaseSettings):
    """Runtime settings for the feed reader."""

    # Feed list
    feeds_file: str = Field(
        default="~/.rss",
        description="Whitespace-delimited file listing feed sources (name URL per line)",
    )

    # Acme
    window_name: str = Field(
        default="rss",
        min_length=1,
        description="Name given to the main listing window",
    )
    ninep_command: str = Field(
        default="9p",
        description="plan9port 9p executable used to talk to acme",
    )
    namespace: Optional[str] = Field(
        default=None,
        description="Plan 9 namespace directory passed to 9p -n (defaults to 9p's own lookup)",
    )

    # HTTP
    http_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=120.0,
        description="Timeout in seconds for feed and article requests",
    )
    http_max_attempts: int = Field(
        default=3,
        ge=1,
        le=6,
        description="Attempts made for a request before giving up on network errors",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent with feed and article requests",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json: bool = Field(
        default=False,
        description="Render log lines as JSON instead of the console format",
    )

    model_config = ConfigDict(
        env_prefix="ACME_RSS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def feeds_path(self) -> Path:
        """Feeds file with ``~`` expanded."""
        return Path(self.feeds_file).expanduser()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the cached settings instance.

    Raises:
        ValidationError: If an ``ACME_RSS_*`` variable is present but invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        print(f"Configuration validation error: {e}", file=sys.stderr)
        raise
