"""Time sources. Injected everywhere so tests can control the current instant."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in the host's local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self._now = (start or datetime.now()).astimezone()

    def now(self) -> datetime:
        return self._now

    def set(self, instant: datetime) -> None:
        self._now = instant.astimezone()

    def advance(self, **kwargs: float) -> datetime:
        """Move forward by timedelta(**kwargs) and return the new instant."""
        self._now = (self._now + timedelta(**kwargs)).astimezone()
        return self._now
