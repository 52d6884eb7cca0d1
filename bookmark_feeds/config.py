"""Configuration for bookmark_feeds.

Settings come from BOOKMARK_FEEDS_* environment variables; the CLI may
override individual fields.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _default_db_path() -> Path:
    """Get the database path, respecting BOOKMARK_FEEDS_DB_PATH env var."""
    env_path = os.environ.get("BOOKMARK_FEEDS_DB_PATH")
    if env_path:
        return Path(env_path)
    return Path.home() / ".bookmark_feeds" / "bookmark_feeds.db"


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class ReaderConfig:
    """Runtime configuration for the feed-tracking engine."""

    name: str = "bookmark_feeds"
    db_path: Path = field(default_factory=_default_db_path)
    # Number of links refreshed concurrently.
    workers: int = 8
    # Seconds that must pass between two refreshes of the same feed.
    min_check_interval: int = 300
    # Failed discoveries before a link stops being retried; 0 retries forever.
    max_discovery_attempts: int = 0
    log_level: str = "INFO"
    user_agent: str = "BookmarkFeeds/1.0 (+feed discovery)"

    def __post_init__(self):
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.min_check_interval < 0:
            raise ValueError("min_check_interval must not be negative")
        if self.max_discovery_attempts < 0:
            raise ValueError("max_discovery_attempts must not be negative")


def load_config() -> ReaderConfig:
    """Build a configuration from the environment."""
    return ReaderConfig(
        db_path=_default_db_path(),
        workers=_env_int("BOOKMARK_FEEDS_WORKERS", 8),
        min_check_interval=_env_int("BOOKMARK_FEEDS_MIN_CHECK_INTERVAL", 300),
        max_discovery_attempts=_env_int("BOOKMARK_FEEDS_MAX_DISCOVERY_ATTEMPTS", 0),
        log_level=os.environ.get("BOOKMARK_FEEDS_LOG_LEVEL", "INFO").upper(),
        user_agent=os.environ.get(
            "BOOKMARK_FEEDS_USER_AGENT", "BookmarkFeeds/1.0 (+feed discovery)"
        ),
    )


_config: Optional[ReaderConfig] = None


def get_config() -> ReaderConfig:
    """Get or create the process-wide configuration."""
    global _config

    if _config is None:
        _config = load_config()
    return _config
