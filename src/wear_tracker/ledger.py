"""Daily rollup of wear time into weekly and monthly history buckets.

Rollup runs when the local calendar day of the current evaluation differs from
the previous one. Re-running it for the same day is a no-op, so callers may
evaluate as often as they like.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from . import timefmt
from .device import Device

logger = logging.getLogger("wear_tracker.ledger")

WEEK_RETENTION_DAYS = 7
MONTH_RETENTION_DAYS = 30


class TimeFrame(str, Enum):
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class LedgerSummary:
    frame: TimeFrame
    total: float
    average_per_day: float
    days: list[tuple[date, float]]


class StatisticsLedger:
    """Rollup, retention pruning and aggregate queries over a device's history."""

    def __init__(self, week_days: int = WEEK_RETENTION_DAYS, month_days: int = MONTH_RETENTION_DAYS):
        self.week_days = week_days
        self.month_days = month_days

    # ---- Day change ----

    @staticmethod
    def day_changed(previous: datetime, now: datetime) -> bool:
        return timefmt.day_key(previous) != timefmt.day_key(now)

    def roll_over(self, device: Device, previous: datetime, now: datetime) -> list[date]:
        """Fold time accrued before today's local midnight into the ledgers.

        For every midnight crossed between `previous` and `now` the running
        session (if any) is split at midnight, the closing day's total is
        recorded, and total_time_today is reset. Returns the day keys written,
        empty if `now` is still on the day of `previous` (or earlier).
        """
        closing = timefmt.day_key(previous)
        today = timefmt.day_key(now)
        if closing >= today:
            return []

        written: list[date] = []
        while closing < today:
            midnight = timefmt.next_start_of_day(closing)
            if device.session_start_time is not None:
                device.total_time_today += max(
                    0.0, (midnight - device.session_start_time).total_seconds()
                )
                device.session_start_time = midnight

            # Days skipped entirely by a gap in evaluation only get a bucket if
            # wear time accrued in them.
            if not written or device.total_time_today > 0:
                self._record(device, closing, device.total_time_today)
                written.append(closing)
            device.total_time_today = 0.0
            closing = timefmt.day_key(midnight)

        self.prune(device, today)
        logger.info(
            f"Rolled over '{device.name}' into {len(written)} day(s): "
            + ", ".join(key.isoformat() for key in written)
        )
        return written

    def _record(self, device: Device, key: date, seconds: float) -> None:
        device.weekly_stats[key] = seconds
        device.monthly_stats[key] = seconds

    def prune(self, device: Device, today: date) -> None:
        """Drop entries older than the retention windows, measured in calendar days."""
        device.weekly_stats = {
            key: seconds for key, seconds in device.weekly_stats.items()
            if timefmt.days_between(key, today) <= self.week_days
        }
        device.monthly_stats = {
            key: seconds for key, seconds in device.monthly_stats.items()
            if timefmt.days_between(key, today) <= self.month_days
        }

    # ---- Aggregates ----

    @staticmethod
    def entries(device: Device, frame: TimeFrame) -> dict[date, float]:
        return device.weekly_stats if frame == TimeFrame.WEEK else device.monthly_stats

    def total_time(self, device: Device, frame: TimeFrame) -> float:
        return sum(self.entries(device, frame).values())

    def average_time_per_day(self, device: Device, frame: TimeFrame) -> float:
        """Average over recorded days only; a day with no entry is not counted as zero."""
        entries = self.entries(device, frame)
        return sum(entries.values()) / max(1, len(entries))

    def history(self, device: Device, frame: TimeFrame) -> list[tuple[date, float]]:
        """Recorded (day, seconds) pairs, oldest first."""
        return sorted(self.entries(device, frame).items())

    def summary(self, device: Device, frame: TimeFrame) -> LedgerSummary:
        return LedgerSummary(
            frame=frame,
            total=self.total_time(device, frame),
            average_per_day=self.average_time_per_day(device, frame),
            days=self.history(device, frame),
        )
