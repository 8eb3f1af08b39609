import time
from datetime import datetime, timedelta

import pytest

from wear_tracker import (
    DeviceTimeAccountingEngine,
    EffectDispatcher,
    InMemoryDeviceStore,
    ManualClock,
    NotificationPolicy,
    RecordingNotificationSink,
)

# Mid-June: no DST transition anywhere near the dates the tests walk through.
START = datetime(2026, 6, 1, 9, 0)


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def store():
    return InMemoryDeviceStore()


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def dispatcher():
    d = EffectDispatcher()
    yield d
    d.close()


@pytest.fixture
def policy():
    return NotificationPolicy(
        not_worn_threshold=timedelta(hours=3),
        worn_too_long_threshold=timedelta(hours=12),
    )


@pytest.fixture
def engine(store, sink, clock, policy, dispatcher):
    return DeviceTimeAccountingEngine(store, sink, clock=clock, policy=policy, dispatcher=dispatcher)


@pytest.fixture
def new_york(monkeypatch):
    """Pin the local zone to one with DST changes on 2026-03-08 and 2026-11-01."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
