"""
Dogsfy Backend — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by the composition root (main.py), the schema bootstrap
       script, and the account service (page limits).
When:  Loaded once at module import time; validated before app starts.

Partition URLs:
    Each partition is an independent database. The defaults mirror the
    three-file SQLite layout the system was designed around:

        NORTH_DATABASE_URL    → users whose id starts with "n"
        SOUTH_DATABASE_URL    → users whose id starts with "s"
        FRIENDS_DATABASE_URL  → friendship edges
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    Attributes are grouped by concern.
    """

    # ── Partitions ────────────────────────────────────────────────────────
    # Format: any async SQLAlchemy URL (sqlite+aiosqlite, postgresql+asyncpg, ...)
    north_database_url: str = Field(
        default="sqlite+aiosqlite:///./dogsfy-n.db",
        description="Async URL of the northern-hemisphere user partition",
    )
    south_database_url: str = Field(
        default="sqlite+aiosqlite:///./dogsfy-s.db",
        description="Async URL of the southern-hemisphere user partition",
    )
    friends_database_url: str = Field(
        default="sqlite+aiosqlite:///./dogsfy-friends.db",
        description="Async URL of the friendship edge partition",
    )

    # Pool sizing only applies to server databases; SQLite engines ignore it.
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=5, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # Create missing tables when the application starts.
    auto_create_schema: bool = Field(default=True)

    # ── Storage Retry ─────────────────────────────────────────────────────
    # What: Tenacity settings for transient OperationalErrors
    #       (e.g. SQLite "database is locked" under concurrent writers)
    storage_retry_max_attempts: int = Field(default=3, ge=1, le=10)
    storage_retry_min_wait: float = Field(default=0.05, ge=0, le=5)
    storage_retry_max_wait: float = Field(default=1.0, ge=0.1, le=30)

    # ── Friend Listing ────────────────────────────────────────────────────
    max_page_limit: int = Field(default=100, ge=1, le=1000)

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3000, ge=1024, le=65535)

    # Successful requests slower than this are logged at WARNING.
    slow_request_ms: float = Field(default=1000.0, ge=1)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @property
    def partition_urls(self) -> List[str]:
        """North, south and friends URLs, in that order."""
        return [
            self.north_database_url,
            self.south_database_url,
            self.friends_database_url,
        ]

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_partition_layout(self) -> None:
        """
        What:  Checks that the three partitions point at distinct databases.
        When:  Called during app startup (lifespan).
        How:   Raises ValueError listing every duplicated URL.
        """
        seen = set()
        duplicates = []
        for url in self.partition_urls:
            if url in seen:
                duplicates.append(url)
            seen.add(url)
        if duplicates:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - partition URL used more than once: {u}" for u in duplicates)
            )


# Singleton instance: imported throughout the application
settings = Settings()
