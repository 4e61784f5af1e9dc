"""
Environment-driven configuration.

Values come from the process environment, after loading a local .env file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment
load_dotenv()

# Defaults
DEFAULT_DB_NAME = "learnsync"
DEFAULT_REPLICA_URL = "sqlite+aiosqlite:///data/replica.db"
DEFAULT_SYNC_INTERVAL_SECONDS = 10.0
DEFAULT_PULL_PAGE_SIZE = 1000


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


@dataclass
class Settings:
    """Runtime settings for a learnsync client process."""
    mongo_uri: Optional[str] = field(default_factory=lambda: os.getenv("MONGO_URI"))
    db_name: str = field(default_factory=lambda: os.getenv("LEARNSYNC_DB_NAME", DEFAULT_DB_NAME))
    replica_url: str = field(
        default_factory=lambda: os.getenv("REPLICA_DATABASE_URL", DEFAULT_REPLICA_URL)
    )
    sync_interval_seconds: float = field(
        default_factory=lambda: _env_float("SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS)
    )
    pull_page_size: int = field(
        default_factory=lambda: _env_int("PULL_PAGE_SIZE", DEFAULT_PULL_PAGE_SIZE)
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def require_mongo_uri(self) -> str:
        if not self.mongo_uri:
            raise ValueError("MONGO_URI not found in environment variables")
        return self.mongo_uri
