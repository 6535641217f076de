"""
Runtime settings for the deduplication engine.

Values come from environment variables (optionally loaded from ``.env`` by
``casededup.env.load_env``) and are validated once at load time.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

DEFAULT_DATABASE_URL = "sqlite:///data/cases.db"
DEFAULT_CANDIDATE_LIMIT = 50

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: str) -> bool:
    raw = os.getenv(name, default).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass
class Settings:
    """Deduplication engine settings"""
    database_url: str = field(default_factory=lambda: os.getenv("DEDUP_DATABASE_URL", DEFAULT_DATABASE_URL))
    candidate_limit: int = field(default_factory=lambda: int(os.getenv("DEDUP_CANDIDATE_LIMIT", str(DEFAULT_CANDIDATE_LIMIT))))
    atomic_decisions: bool = field(default_factory=lambda: _env_bool("DEDUP_ATOMIC_DECISIONS", "true"))
    log_level: str = field(default_factory=lambda: os.getenv("DEDUP_LOG_LEVEL", "INFO"))
    log_dir: Path = field(default_factory=lambda: Path(os.getenv("DEDUP_LOG_DIR", "logs")))

    def __post_init__(self):
        if self.candidate_limit <= 0:
            raise ValueError("candidate_limit must be positive")
        if self.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {self.log_level}")
        if not self.database_url:
            raise ValueError("database_url must not be empty")


@lru_cache()
def get_settings() -> Settings:
    """Get the process-wide settings (cached)."""
    return Settings()
