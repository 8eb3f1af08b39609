"""Device time-accounting engine.

Owns the device collection and is its only writer. User actions (add, rename,
delete, toggle) and the periodic evaluate() tick mutate in-memory state under
one lock; store writes and notifications are then dispatched fire-and-forget,
so every call returns with state that is already consistent.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Callable, Iterable

from .clock import Clock, SystemClock
from .device import Device
from .dispatch import EffectDispatcher
from .errors import NotFoundError, PersistenceError, ValidationError
from .ledger import LedgerSummary, StatisticsLedger, TimeFrame
from .notifications import NotificationKind, NotificationPolicy, NotificationSink
from .store import DeviceStore

logger = logging.getLogger("wear_tracker.engine")


class EngineEvent(str, Enum):
    DEVICE_ADDED = "device_added"
    DEVICE_RENAMED = "device_renamed"
    DEVICE_DELETED = "device_deleted"
    TIMER_TOGGLED = "timer_toggled"
    DAY_ROLLED_OVER = "day_rolled_over"
    NOTIFIED = "notified"


Listener = Callable[[EngineEvent, str], None]


@dataclass
class EvaluationResult:
    rolled_over: dict[str, list[date]] = field(default_factory=dict)
    notifications: list[tuple[str, NotificationKind]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def mutated(self) -> bool:
        return bool(self.rolled_over or self.notifications)


def _validated_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Device name cannot be empty")
    return cleaned


class DeviceTimeAccountingEngine:
    """Applies wear-session commands and day rollups to a collection of devices."""

    def __init__(
        self,
        store: DeviceStore,
        notifier: NotificationSink,
        clock: Clock | None = None,
        ledger: StatisticsLedger | None = None,
        policy: NotificationPolicy | None = None,
        dispatcher: EffectDispatcher | None = None,
    ):
        self._store = store
        self._notifier = notifier
        self._clock: Clock = clock or SystemClock()
        self.ledger = ledger or StatisticsLedger()
        self.policy = policy or NotificationPolicy()
        self._owns_dispatcher = dispatcher is None
        self._dispatcher = dispatcher or EffectDispatcher()
        self._devices: dict[str, Device] = {}
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    # ---- Queries ----

    @property
    def devices(self) -> list[Device]:
        """Snapshot of every device, in insertion order."""
        with self._lock:
            return [device.copy() for device in self._devices.values()]

    def get_device(self, device_id: str) -> Device:
        with self._lock:
            return self._require(device_id).copy()

    def total_time(self, device_id: str, now: datetime | None = None) -> float:
        now = self._resolve_now(now)
        with self._lock:
            return self._require(device_id).total_time(now)

    def stats(self, device_id: str, frame: TimeFrame) -> LedgerSummary:
        with self._lock:
            return self.ledger.summary(self._require(device_id), frame)

    def resolve(self, ref: str) -> Device:
        """Find a device by id, unique id prefix, or case-insensitive name."""
        ref = (ref or "").strip()
        with self._lock:
            if ref in self._devices:
                return self._devices[ref].copy()
            matches = [
                device for device in self._devices.values()
                if device.name.lower() == ref.lower()
            ]
            if not matches and ref:
                matches = [device for device in self._devices.values() if device.id.startswith(ref)]
            if len(matches) > 1:
                raise ValidationError(f"'{ref}' matches {len(matches)} devices, use the device id")
            if not matches:
                raise NotFoundError(ref)
            return matches[0].copy()

    # ---- Lifecycle ----

    def load(self) -> list[Device]:
        """Replace the collection with the store's records, then catch up on missed days.

        Blocks on the store; call once at startup.
        """
        try:
            records = self._dispatcher.run(self._store.load())
        except PersistenceError as e:
            logger.error(f"Could not load devices, keeping current collection: {e}")
            return self.devices

        loaded: list[Device] = []
        for record in records:
            try:
                loaded.append(Device.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable device record {record.get('id')!r}: {e}")
        loaded.sort(key=lambda device: device.created_at)

        with self._lock:
            self._devices = {device.id: device for device in loaded}
        logger.info(f"Loaded {len(loaded)} device(s)")
        self.evaluate()
        return self.devices

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(event, device_id)` after each committed mutation. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def flush(self, timeout: float | None = 10.0) -> None:
        """Wait for dispatched store writes and notifications to finish."""
        self._dispatcher.flush(timeout)

    def close(self) -> None:
        if self._owns_dispatcher:
            self._dispatcher.close()
        else:
            self._dispatcher.flush()

    # ---- Commands ----

    def add_device(self, name: str) -> Device:
        cleaned = _validated_name(name)
        now = self._clock.now()
        with self._lock:
            device = Device(name=cleaned, created_at=now, last_checked_at=now)
            self._devices[device.id] = device
            self._persist(device)
            snapshot = device.copy()
        logger.info(f"Added device '{cleaned}' ({device.id[:8]})")
        self._emit([(EngineEvent.DEVICE_ADDED, device.id)])
        return snapshot

    def rename_device(self, device_id: str, new_name: str) -> Device:
        with self._lock:
            device = self._require(device_id)
            cleaned = _validated_name(new_name)
            old_name = device.name
            device.name = cleaned
            self._persist(device)
            snapshot = device.copy()
        logger.info(f"Renamed device '{old_name}' -> '{cleaned}'")
        self._emit([(EngineEvent.DEVICE_RENAMED, device_id)])
        return snapshot

    def delete_device(self, device_id: str) -> bool:
        """Remove a device. Unknown ids are ignored. Returns whether anything was removed."""
        with self._lock:
            device = self._devices.pop(device_id, None)
            if device is None:
                logger.debug(f"Delete ignored, no device {device_id}")
                return False
            self._dispatcher.submit(
                self._store.delete, device_id, description=f"delete {device_id[:8]}"
            )
        logger.info(f"Deleted device '{device.name}' ({device_id[:8]})")
        self._emit([(EngineEvent.DEVICE_DELETED, device_id)])
        return True

    def delete_devices(self, device_ids: Iterable[str]) -> int:
        """Batch delete. Stale ids are skipped. Returns how many were removed."""
        return sum(1 for device_id in list(device_ids) if self.delete_device(device_id))

    def toggle_timer(self, device_id: str, now: datetime | None = None) -> Device:
        """Start the device's session if idle, stop it if running."""
        now = self._resolve_now(now)
        events: list[tuple[EngineEvent, str]] = []
        with self._lock:
            device = self._require(device_id)
            if device.last_checked_at is not None and now < device.last_checked_at:
                logger.warning(
                    f"Clock moved backwards for '{device.name}' "
                    f"({now.isoformat()} < {device.last_checked_at.isoformat()}), "
                    f"toggling at last check instead"
                )
                now = device.last_checked_at
            # Any midnight since the last tick is settled first so the toggle
            # lands on today's counter.
            if self._catch_up(device, now):
                events.append((EngineEvent.DAY_ROLLED_OVER, device_id))
            running = device.toggle(now)
            self._persist(device)
            snapshot = device.copy()
        logger.info(f"{'Started' if running else 'Stopped'} timer for '{snapshot.name}'")
        events.append((EngineEvent.TIMER_TOGGLED, device_id))
        self._emit(events)
        return snapshot

    def evaluate(self, now: datetime | None = None) -> EvaluationResult:
        """Periodic tick: roll over finished days and fire due reminders."""
        now = self._resolve_now(now)
        result = EvaluationResult()
        events: list[tuple[EngineEvent, str]] = []
        with self._lock:
            for device in self._devices.values():
                previous = device.last_checked_at or now
                mutated = False
                if now < previous:
                    logger.warning(
                        f"Clock moved backwards for '{device.name}' "
                        f"({now.isoformat()} < {previous.isoformat()}), skipping rollup"
                    )
                    result.skipped.append(device.id)
                else:
                    written = self.ledger.roll_over(device, previous, now)
                    device.last_checked_at = now
                    if written:
                        result.rolled_over[device.id] = written
                        events.append((EngineEvent.DAY_ROLLED_OVER, device.id))
                        mutated = True

                for kind in self.policy.apply(device, now):
                    logger.info(f"Reminder due for '{device.name}': {kind.value}")
                    self._dispatcher.submit(
                        self._notifier.notify, device.id, kind, device.name,
                        description=f"notify {kind.value} {device.id[:8]}",
                    )
                    result.notifications.append((device.id, kind))
                    events.append((EngineEvent.NOTIFIED, device.id))
                    mutated = True

                if mutated:
                    self._persist(device)
        self._emit(events)
        return result

    # ---- Internal ----

    def _resolve_now(self, now: datetime | None) -> datetime:
        return now.astimezone() if now is not None else self._clock.now()

    def _require(self, device_id: str) -> Device:
        device = self._devices.get(device_id)
        if device is None:
            raise NotFoundError(device_id)
        return device

    def _catch_up(self, device: Device, now: datetime) -> bool:
        previous = device.last_checked_at or now
        if now < previous:
            return False
        written = self.ledger.roll_over(device, previous, now)
        device.last_checked_at = now
        return bool(written)

    def _persist(self, device: Device) -> None:
        # Serialize now so later mutations can't leak into this write.
        record = device.to_dict()
        self._dispatcher.submit(self._store.save, record, description=f"save {device.id[:8]}")

    def _emit(self, events: list[tuple[EngineEvent, str]]) -> None:
        for event, device_id in events:
            for listener in list(self._listeners):
                try:
                    listener(event, device_id)
                except Exception:
                    logger.exception(f"Listener failed for {event.value}")
