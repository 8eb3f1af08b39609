"""Error taxonomy for engine operations and stores."""

from __future__ import annotations


class WearTrackerError(Exception):
    """Base for every error raised by wear_tracker."""


class ValidationError(WearTrackerError):
    """User-supplied data violates a precondition. Nothing was mutated."""


class NotFoundError(WearTrackerError):
    """An operation referenced a device id that is no longer present."""

    def __init__(self, device_id: str):
        super().__init__(f"No device with id '{device_id}'")
        self.device_id = device_id


class PersistenceError(WearTrackerError):
    """A DeviceStore failed to load, save or delete a record.

    Raised inside store implementations only. The effect dispatcher logs it;
    it never reaches callers of the engine API.
    """
