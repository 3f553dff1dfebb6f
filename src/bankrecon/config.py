"""Runtime settings for bankrecon, read from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Shared with document processing so the two never run at the same time
PROCESSING_LOCK_ID = "document-processing"

DEFAULT_LOCK_TIMEOUT_SECONDS = 300.0
DEFAULT_LOCK_EXPIRY_SECONDS = 300.0
DEFAULT_MOVEMENT_BATCH_SIZE = 2000


def default_database_path() -> str:
    """Return ~/.bankrecon/bankrecon.db, creating the directory."""
    db_dir = Path.home() / ".bankrecon"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "bankrecon.db")


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got '{value}'")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got '{value}'")


@dataclass(frozen=True)
class Settings:
    """Reconciliation run settings."""

    lock_id: str = PROCESSING_LOCK_ID
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    lock_expiry: float = DEFAULT_LOCK_EXPIRY_SECONDS
    movement_batch_size: int = DEFAULT_MOVEMENT_BATCH_SIZE
    database_path: Optional[str] = None
    log_level: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from BANKRECON_* environment variables."""
        return cls(
            lock_timeout=_env_float("BANKRECON_LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS),
            lock_expiry=_env_float("BANKRECON_LOCK_EXPIRY_SECONDS", DEFAULT_LOCK_EXPIRY_SECONDS),
            movement_batch_size=_env_int("BANKRECON_MOVEMENT_BATCH_SIZE", DEFAULT_MOVEMENT_BATCH_SIZE),
            database_path=os.environ.get("BANKRECON_DB_PATH"),
            log_level=os.environ.get("BANKRECON_LOG_LEVEL"),
        )
