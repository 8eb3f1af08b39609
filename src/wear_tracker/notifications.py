"""Reminder conditions and notification sinks.

Both reminders are edge-triggered: once a condition fires, its latch on the
device suppresses it until the opposing event (start or stop) clears the latch.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

from rich.console import Console

from .device import Device

logger = logging.getLogger("wear_tracker.notifications")

DEFAULT_NOT_WORN_THRESHOLD = timedelta(hours=3)
DEFAULT_WORN_TOO_LONG_THRESHOLD = timedelta(hours=12)


class NotificationKind(str, Enum):
    NOT_WORN = "not_worn"
    WORN_TOO_LONG = "worn_too_long"


def _describe(threshold: timedelta) -> str:
    hours = threshold.total_seconds() / 3600
    if hours >= 1:
        return f"{hours:g} hour{'s' if hours != 1 else ''}"
    minutes = threshold.total_seconds() / 60
    return f"{minutes:g} minute{'s' if minutes != 1 else ''}"


class NotificationPolicy:
    def __init__(
        self,
        not_worn_threshold: timedelta = DEFAULT_NOT_WORN_THRESHOLD,
        worn_too_long_threshold: timedelta = DEFAULT_WORN_TOO_LONG_THRESHOLD,
    ):
        self.not_worn_threshold = not_worn_threshold
        self.worn_too_long_threshold = worn_too_long_threshold

    def due(self, device: Device, now: datetime) -> list[NotificationKind]:
        """Conditions that have newly become true. Does not touch the device."""
        kinds: list[NotificationKind] = []
        if (
            not device.is_running
            and device.last_stop_time is not None
            and not device.notified_for_not_wearing
            and now - device.last_stop_time >= self.not_worn_threshold
        ):
            kinds.append(NotificationKind.NOT_WORN)
        if (
            device.session_start_time is not None
            and not device.notified_for_long_wearing
            and now - device.session_start_time >= self.worn_too_long_threshold
        ):
            kinds.append(NotificationKind.WORN_TOO_LONG)
        return kinds

    def apply(self, device: Device, now: datetime) -> list[NotificationKind]:
        """Set the latch for every due condition and return those conditions."""
        kinds = self.due(device, now)
        for kind in kinds:
            if kind == NotificationKind.NOT_WORN:
                device.notified_for_not_wearing = True
            else:
                device.notified_for_long_wearing = True
        return kinds

    def message_for(self, kind: NotificationKind, device_name: str) -> tuple[str, str]:
        """(title, body) shown to the user."""
        if kind == NotificationKind.NOT_WORN:
            return (
                f"Time to wear your {device_name}",
                f"You haven't worn your {device_name} for over "
                f"{_describe(self.not_worn_threshold)}. Put it on to stay on track!",
            )
        return (
            f"Time for a break from {device_name}",
            f"You've been wearing your {device_name} for over "
            f"{_describe(self.worn_too_long_threshold)}. "
            "Consider taking a break to eat or clean it.",
        )


# ---- Sinks ----

class NotificationSink(Protocol):
    def notify(self, device_id: str, kind: NotificationKind, device_name: str) -> None: ...


class LoggingNotificationSink:
    """Writes reminders to the log. The default when no other sink is configured."""

    def __init__(self, policy: NotificationPolicy | None = None):
        self.policy = policy or NotificationPolicy()

    def notify(self, device_id: str, kind: NotificationKind, device_name: str) -> None:
        title, body = self.policy.message_for(kind, device_name)
        logger.info(f"NOTIFY [{device_id[:8]}] {title}: {body}")


class ConsoleNotificationSink:
    """Prints reminders to the terminal. Delivery failures are logged, never raised."""

    def __init__(self, console: Console | None = None, policy: NotificationPolicy | None = None):
        self.console = console or Console()
        self.policy = policy or NotificationPolicy()

    def notify(self, device_id: str, kind: NotificationKind, device_name: str) -> None:
        title, body = self.policy.message_for(kind, device_name)
        style = "bold yellow" if kind == NotificationKind.NOT_WORN else "bold magenta"
        try:
            self.console.print(f"[{style}]{title}[/{style}]  {body}")
        except Exception as e:
            logger.error(f"Failed to deliver {kind.value} notification for {device_id}: {e}")


class RecordingNotificationSink:
    """Keeps every notification in memory. Used offline and in tests."""

    def __init__(self):
        self.sent: list[tuple[str, NotificationKind, str]] = []

    def notify(self, device_id: str, kind: NotificationKind, device_name: str) -> None:
        self.sent.append((device_id, kind, device_name))

    def kinds(self) -> list[NotificationKind]:
        return [kind for _, kind, _ in self.sent]
