"""Device record and its wear-session state machine.

A device is Idle (session_start_time is None) or Running. toggle() is the only
transition callers use; start()/stop() are no-ops from the wrong state.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime

logger = logging.getLogger("wear_tracker.device")


def _parse_instant(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value).astimezone()


def _format_instant(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ledger(raw: dict | None) -> dict[date, float]:
    return {date.fromisoformat(key): float(seconds) for key, seconds in (raw or {}).items()}


def _format_ledger(ledger: dict[date, float]) -> dict[str, float]:
    return {key.isoformat(): seconds for key, seconds in sorted(ledger.items())}


@dataclass
class Device:
    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    total_time_today: float = 0.0
    session_start_time: datetime | None = None
    last_stop_time: datetime | None = None
    weekly_stats: dict[date, float] = field(default_factory=dict)
    monthly_stats: dict[date, float] = field(default_factory=dict)
    notified_for_not_wearing: bool = False
    notified_for_long_wearing: bool = False
    last_checked_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now().astimezone())

    # ---- Read-only views ----

    @property
    def is_running(self) -> bool:
        return self.session_start_time is not None

    def current_session_time(self, now: datetime) -> float:
        """Seconds in the in-progress session, 0 when idle or if the clock went backwards."""
        if self.session_start_time is None:
            return 0.0
        return max(0.0, (now - self.session_start_time).total_seconds())

    def total_time(self, now: datetime) -> float:
        """Time worn today including any in-progress session."""
        return self.total_time_today + self.current_session_time(now)

    # ---- Session transitions ----

    def start(self, now: datetime) -> None:
        if self.is_running:
            return
        self.session_start_time = now
        self.notified_for_not_wearing = False
        logger.debug(f"Started session for '{self.name}' at {now.isoformat()}")

    def stop(self, now: datetime) -> float:
        """End the running session. Returns the seconds it contributed."""
        if not self.is_running:
            return 0.0
        elapsed = self.current_session_time(now)
        self.total_time_today += elapsed
        self.session_start_time = None
        self.last_stop_time = now
        self.notified_for_long_wearing = False
        logger.debug(f"Stopped session for '{self.name}' after {elapsed:.1f}s")
        return elapsed

    def toggle(self, now: datetime) -> bool:
        """Stop if running, else start. Returns the new running state."""
        if self.is_running:
            self.stop(now)
        else:
            self.start(now)
        return self.is_running

    # ---- Serialization ----

    def copy(self) -> Device:
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        """JSON-compatible record for a DeviceStore (snake_case keys)."""
        return {
            "id": self.id,
            "name": self.name,
            "total_time_today": self.total_time_today,
            "session_start_time": _format_instant(self.session_start_time),
            "last_stop_time": _format_instant(self.last_stop_time),
            "weekly_stats": _format_ledger(self.weekly_stats),
            "monthly_stats": _format_ledger(self.monthly_stats),
            "notified_for_not_wearing": self.notified_for_not_wearing,
            "notified_for_long_wearing": self.notified_for_long_wearing,
            "last_checked_at": _format_instant(self.last_checked_at),
            "created_at": _format_instant(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Device:
        """Rebuild a device from a store record. Missing optional keys take defaults."""
        device = cls(
            name=data["name"],
            id=data["id"],
            total_time_today=max(0.0, float(data.get("total_time_today", 0.0))),
            session_start_time=_parse_instant(data.get("session_start_time")),
            last_stop_time=_parse_instant(data.get("last_stop_time")),
            weekly_stats=_parse_ledger(data.get("weekly_stats")),
            monthly_stats=_parse_ledger(data.get("monthly_stats")),
            notified_for_not_wearing=bool(data.get("notified_for_not_wearing", False)),
            notified_for_long_wearing=bool(data.get("notified_for_long_wearing", False)),
            last_checked_at=_parse_instant(data.get("last_checked_at")),
        )
        created_at = _parse_instant(data.get("created_at"))
        if created_at is not None:
            device.created_at = created_at
        return device
