"""Tests for schedule time calculation and validation."""

from datetime import datetime, timedelta, timezone

import pytest

from mentorhub.enums import EmailJobType
from mentorhub.notifications.schedule_times import (
    calculate_schedule_times,
    hours_until,
    is_valid_schedule_time,
)


START = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)


class TestCalculateScheduleTimes:
    @pytest.mark.parametrize("duration", [15, 45, 60, 90, 240])
    def test_offsets_are_exact_for_any_duration(self, duration):
        times = calculate_schedule_times(START, duration)

        assert times.prep_48h == START - timedelta(hours=48)
        assert times.prep_24h == START - timedelta(hours=24)
        assert times.feedback_immediate == START + timedelta(minutes=duration)

    def test_missing_duration_defaults_to_one_hour(self):
        times = calculate_schedule_times(START, None)
        assert times.feedback_immediate == START + timedelta(minutes=60)

    def test_naive_start_treated_as_utc(self):
        naive = datetime(2026, 3, 10, 18, 0)
        times = calculate_schedule_times(naive, 60)
        assert times.prep_24h == START - timedelta(hours=24)

    def test_for_type_maps_each_reminder(self):
        times = calculate_schedule_times(START, 30)
        assert times.for_type(EmailJobType.prep_48h) == times.prep_48h
        assert times.for_type(EmailJobType.prep_24h) == times.prep_24h
        assert times.for_type(EmailJobType.feedback_immediate) == times.feedback_immediate

    def test_for_type_rejects_update_notifications(self):
        times = calculate_schedule_times(START, 30)
        with pytest.raises(ValueError):
            times.for_type(EmailJobType.session_update)


class TestIsValidScheduleTime:
    def test_rejects_the_present_instant(self):
        assert is_valid_schedule_time(START, now=START) is False

    def test_rejects_the_past(self):
        assert is_valid_schedule_time(START - timedelta(seconds=1), now=START) is False

    def test_accepts_one_second_ahead(self):
        assert is_valid_schedule_time(START + timedelta(seconds=1), now=START) is True

    def test_accepts_up_to_the_horizon(self):
        horizon = START + timedelta(days=30)
        assert is_valid_schedule_time(horizon - timedelta(seconds=1), now=START) is True
        assert is_valid_schedule_time(horizon, now=START) is True

    def test_rejects_beyond_the_horizon(self):
        beyond = START + timedelta(days=30, seconds=1)
        assert is_valid_schedule_time(beyond, now=START) is False

    def test_defaults_to_current_time(self):
        soon = datetime.now(timezone.utc) + timedelta(hours=1)
        assert is_valid_schedule_time(soon) is True


class TestHoursUntil:
    def test_future(self):
        assert hours_until(START + timedelta(hours=30), now=START) == pytest.approx(30)

    def test_past_is_negative(self):
        assert hours_until(START - timedelta(hours=2), now=START) == pytest.approx(-2)
