"""Duration formatting and local calendar boundaries.

All durations are float seconds. Instants are aware datetimes; naive ones are
taken to be host-local. Day arithmetic goes through calendar dates so DST
transitions (23h / 25h days) never shift a day key.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta


def _whole_seconds(seconds: float) -> int:
    return max(0, int(seconds))


def format_clock(seconds: float) -> str:
    """Format seconds as 'HH:MM:SS'. Hours keep counting past 24."""
    total = _whole_seconds(seconds)
    hours = total // 3600
    minutes = total // 60 % 60
    secs = total % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_hours_minutes(seconds: float) -> str:
    """Format seconds as 'H hr M min'."""
    total = _whole_seconds(seconds)
    return f"{total // 3600} hr {total // 60 % 60} min"


def format_short(seconds: float) -> str:
    """Format seconds as 'Xh Ym'."""
    total = _whole_seconds(seconds)
    return f"{total // 3600}h {total // 60 % 60}m"


# ---- Calendar boundaries ----

def local(instant: datetime) -> datetime:
    """Return the instant as an aware datetime in the host's local timezone."""
    return instant.astimezone()


def day_key(instant: datetime) -> date:
    """Local calendar date of the instant. Used as the ledger key for that day."""
    return local(instant).date()


def start_of_day(value: datetime | date) -> datetime:
    """Local midnight that starts the day containing `value`."""
    if isinstance(value, datetime):
        value = day_key(value)
    return datetime.combine(value, time.min).astimezone()


def next_start_of_day(value: datetime | date) -> datetime:
    """Local midnight that ends the day containing `value`."""
    if isinstance(value, datetime):
        value = day_key(value)
    return start_of_day(value + timedelta(days=1))


def start_of_week(instant: datetime) -> datetime:
    """Local midnight of the Monday starting the ISO week containing `instant`."""
    today = day_key(instant)
    return start_of_day(today - timedelta(days=today.weekday()))


def start_of_month(instant: datetime) -> datetime:
    return start_of_day(day_key(instant).replace(day=1))


def days_between(earlier: date, later: date) -> int:
    """Whole calendar days from `earlier` to `later` (negative if reversed)."""
    return (later - earlier).days
