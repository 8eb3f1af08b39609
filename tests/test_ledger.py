"""Unit tests for StatisticsLedger rollup, pruning and aggregates."""

from datetime import date, datetime, timedelta

import pytest

from wear_tracker import Device, StatisticsLedger, TimeFrame

HOUR = 3600.0


def at(day: int, hour: int = 0, minute: int = 0, month: int = 6) -> datetime:
    return datetime(2026, month, day, hour, minute).astimezone()


@pytest.fixture
def ledger():
    return StatisticsLedger()


# ---- Day change ----

class TestDayChange:
    def test_same_day(self, ledger):
        assert not ledger.day_changed(at(1, 0, 1), at(1, 23, 59))

    def test_crossed_midnight(self, ledger):
        assert ledger.day_changed(at(1, 23, 59), at(2, 0, 1))

    def test_no_rollup_within_day(self, ledger):
        device = Device(name="Retainer", total_time_today=HOUR)
        assert ledger.roll_over(device, at(1, 8), at(1, 20)) == []
        assert device.total_time_today == HOUR
        assert device.weekly_stats == {}

    def test_rollup_is_idempotent(self, ledger):
        device = Device(name="Retainer", total_time_today=HOUR)
        assert ledger.roll_over(device, at(1, 22), at(2, 1)) == [date(2026, 6, 1)]
        assert ledger.roll_over(device, at(2, 1), at(2, 1)) == []
        assert device.weekly_stats == {date(2026, 6, 1): HOUR}

    def test_earlier_now_is_noop(self, ledger):
        device = Device(name="Retainer", total_time_today=HOUR)
        assert ledger.roll_over(device, at(2, 1), at(1, 23)) == []
        assert device.total_time_today == HOUR


# ---- Rollup ----

class TestRollOver:
    def test_records_value_before_reset(self, ledger):
        device = Device(name="Retainer", total_time_today=2 * HOUR)
        ledger.roll_over(device, at(1, 21), at(2, 7))
        assert device.weekly_stats == {date(2026, 6, 1): 2 * HOUR}
        assert device.monthly_stats == {date(2026, 6, 1): 2 * HOUR}
        assert device.total_time_today == 0

    def test_running_session_split_at_midnight(self, ledger):
        """Day-1 bucket gets the time up to midnight; the session continues into day 2."""
        device = Device(name="Retainer")
        device.start(at(1, 20))
        now = at(2, 0, 10)
        ledger.roll_over(device, at(1, 20), now)

        assert device.weekly_stats[date(2026, 6, 1)] == 4 * HOUR
        assert device.is_running
        assert device.session_start_time == at(2)
        assert device.total_time_today == 0
        assert device.total_time(now) == 600

    def test_session_started_before_midnight_adds_to_existing_total(self, ledger):
        device = Device(name="Retainer", total_time_today=HOUR)
        device.start(at(1, 23))
        ledger.roll_over(device, at(1, 23, 30), at(2, 6))
        assert device.weekly_stats[date(2026, 6, 1)] == 2 * HOUR

    def test_gap_records_closing_day_only_when_idle(self, ledger):
        device = Device(name="Retainer", total_time_today=HOUR)
        written = ledger.roll_over(device, at(1, 12), at(4, 12))
        assert written == [date(2026, 6, 1)]
        assert device.weekly_stats == {date(2026, 6, 1): HOUR}

    def test_gap_records_every_day_of_running_session(self, ledger):
        device = Device(name="Retainer")
        device.start(at(1, 18))
        written = ledger.roll_over(device, at(1, 18), at(4, 12))
        assert written == [date(2026, 6, 1), date(2026, 6, 2), date(2026, 6, 3)]
        assert device.weekly_stats[date(2026, 6, 1)] == 6 * HOUR
        assert device.weekly_stats[date(2026, 6, 2)] == 24 * HOUR
        assert device.weekly_stats[date(2026, 6, 3)] == 24 * HOUR
        assert device.total_time(at(4, 12)) == 12 * HOUR

    def test_zero_day_is_still_recorded(self, ledger):
        device = Device(name="Retainer")
        assert ledger.roll_over(device, at(1, 12), at(2, 12)) == [date(2026, 6, 1)]
        assert device.weekly_stats == {date(2026, 6, 1): 0.0}


# ---- Retention ----

class TestRetention:
    def test_forty_rollovers_keep_most_recent_days(self, ledger):
        device = Device(name="Retainer")
        start = date(2026, 6, 1)
        previous = datetime(2026, 6, 1, 12).astimezone()
        for offset in range(1, 41):
            device.total_time_today = float(offset)
            now = datetime.combine(start + timedelta(days=offset), datetime.min.time()).astimezone() + timedelta(hours=12)
            ledger.roll_over(device, previous, now)
            previous = now

        today = start + timedelta(days=40)
        assert len(device.weekly_stats) == 7
        assert len(device.monthly_stats) == 30
        assert set(device.weekly_stats) == {today - timedelta(days=n) for n in range(1, 8)}
        assert set(device.monthly_stats) == {today - timedelta(days=n) for n in range(1, 31)}
        assert device.weekly_stats[today - timedelta(days=1)] == 40.0

    def test_prune_boundary_is_inclusive(self, ledger):
        today = date(2026, 6, 30)
        device = Device(
            name="Retainer",
            weekly_stats={today - timedelta(days=7): 1.0, today - timedelta(days=8): 1.0},
            monthly_stats={today - timedelta(days=30): 1.0, today - timedelta(days=31): 1.0},
        )
        ledger.prune(device, today)
        assert list(device.weekly_stats) == [today - timedelta(days=7)]
        assert list(device.monthly_stats) == [today - timedelta(days=30)]


# ---- Aggregates ----

class TestAggregates:
    def test_average_over_recorded_days(self, ledger):
        """Three recorded days of 1h, 2h, 3h average to 2h, not 6h / 7."""
        device = Device(
            name="Retainer",
            weekly_stats={date(2026, 6, 1): HOUR, date(2026, 6, 2): 2 * HOUR, date(2026, 6, 3): 3 * HOUR},
        )
        assert ledger.average_time_per_day(device, TimeFrame.WEEK) == 2 * HOUR
        assert ledger.total_time(device, TimeFrame.WEEK) == 6 * HOUR

    def test_average_with_no_history_is_zero(self, ledger):
        device = Device(name="Retainer")
        assert ledger.average_time_per_day(device, TimeFrame.MONTH) == 0
        assert ledger.total_time(device, TimeFrame.MONTH) == 0

    def test_summary_history_sorted(self, ledger):
        device = Device(
            name="Retainer",
            monthly_stats={date(2026, 6, 3): 3.0, date(2026, 6, 1): 1.0},
        )
        summary = ledger.summary(device, TimeFrame.MONTH)
        assert summary.days == [(date(2026, 6, 1), 1.0), (date(2026, 6, 3), 3.0)]
        assert summary.total == 4.0
        assert summary.average_per_day == 2.0


# ---- Daylight saving ----

@pytest.mark.usefixtures("new_york")
class TestDaylightSaving:
    def test_spring_forward_day_is_23_hours(self, ledger):
        device = Device(name="Retainer")
        device.start(at(7, 18, month=3))
        now = at(9, 12, month=3)
        written = ledger.roll_over(device, at(7, 18, month=3), now)

        assert written == [date(2026, 3, 7), date(2026, 3, 8)]
        assert device.weekly_stats == {date(2026, 3, 7): 6 * HOUR, date(2026, 3, 8): 23 * HOUR}
        assert device.total_time(now) == 12 * HOUR

    def test_fall_back_day_is_25_hours(self, ledger):
        device = Device(name="Retainer")
        device.start(at(31, 20, month=10))
        now = at(2, 6, month=11)
        ledger.roll_over(device, at(31, 20, month=10), now)

        assert device.weekly_stats[date(2026, 11, 1)] == 25 * HOUR
        assert device.total_time(now) == 6 * HOUR

    def test_prune_window_spanning_transition(self, ledger):
        device = Device(
            name="Retainer",
            weekly_stats={date(2026, 3, 4): 1.0, date(2026, 3, 5): 1.0, date(2026, 3, 8): 1.0},
        )
        ledger.roll_over(device, at(11, 12, month=3), at(12, 8, month=3))
        assert sorted(device.weekly_stats) == [date(2026, 3, 5), date(2026, 3, 8), date(2026, 3, 11)]
