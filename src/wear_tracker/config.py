"""Runtime settings from environment variables (and a local .env, if any)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

from .notifications import NotificationPolicy

DEFAULT_DB_PATH = Path.home() / ".wear-tracker" / "devices.db"
DEFAULT_TICK_SECONDS = 60.0
DEFAULT_NOT_WORN_HOURS = 3.0
DEFAULT_WORN_TOO_LONG_HOURS = 12.0


@dataclass
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    tick_seconds: float = DEFAULT_TICK_SECONDS
    not_worn_hours: float = DEFAULT_NOT_WORN_HOURS
    worn_too_long_hours: float = DEFAULT_WORN_TOO_LONG_HOURS
    verbose: bool = False

    def policy(self) -> NotificationPolicy:
        return NotificationPolicy(
            not_worn_threshold=timedelta(hours=self.not_worn_hours),
            worn_too_long_threshold=timedelta(hours=self.worn_too_long_hours),
        )


def _positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero, got {raw!r}")
    return value


def load_settings(env_file: Path | None = None) -> Settings:
    """Build Settings from WEAR_TRACKER_* variables. A .env file is read first if present."""
    load_dotenv(env_file or Path.cwd() / ".env")
    db_path = os.environ.get("WEAR_TRACKER_DB")
    return Settings(
        db_path=Path(db_path).expanduser() if db_path else DEFAULT_DB_PATH,
        tick_seconds=_positive_float("WEAR_TRACKER_TICK_SECONDS", DEFAULT_TICK_SECONDS),
        not_worn_hours=_positive_float("WEAR_TRACKER_NOT_WORN_HOURS", DEFAULT_NOT_WORN_HOURS),
        worn_too_long_hours=_positive_float(
            "WEAR_TRACKER_WORN_TOO_LONG_HOURS", DEFAULT_WORN_TOO_LONG_HOURS
        ),
        verbose=os.environ.get("WEAR_TRACKER_VERBOSE", "false").lower() == "true",
    )
