"""Daily wear-time accounting for retainers, aligners and similar devices."""

from .clock import Clock, ManualClock, SystemClock
from .device import Device
from .dispatch import EffectDispatcher
from .engine import DeviceTimeAccountingEngine, EngineEvent, EvaluationResult
from .errors import NotFoundError, PersistenceError, ValidationError, WearTrackerError
from .ledger import LedgerSummary, StatisticsLedger, TimeFrame
from .notifications import (
    ConsoleNotificationSink,
    LoggingNotificationSink,
    NotificationKind,
    NotificationPolicy,
    NotificationSink,
    RecordingNotificationSink,
)
from .store import DeviceStore, InMemoryDeviceStore, SqliteDeviceStore

__version__ = "1.0.0"

__all__ = [
    "Clock",
    "ConsoleNotificationSink",
    "Device",
    "DeviceStore",
    "DeviceTimeAccountingEngine",
    "EffectDispatcher",
    "EngineEvent",
    "EvaluationResult",
    "InMemoryDeviceStore",
    "LedgerSummary",
    "LoggingNotificationSink",
    "ManualClock",
    "NotFoundError",
    "NotificationKind",
    "NotificationPolicy",
    "NotificationSink",
    "PersistenceError",
    "RecordingNotificationSink",
    "SqliteDeviceStore",
    "StatisticsLedger",
    "SystemClock",
    "TimeFrame",
    "ValidationError",
    "WearTrackerError",
]
