"""Tests for email timezone formatting."""

from datetime import datetime, timezone

import pytz


class TestFormatDateForEmail:
    def test_formats_full_date_in_eastern(self):
        from mentorhub.timezone import format_date_for_email

        utc_dt = datetime(2025, 12, 8, 18, 0, tzinfo=timezone.utc)

        assert format_date_for_email(utc_dt) == "Monday, December 8, 2025"

    def test_date_changes_when_utc_is_past_midnight(self):
        """01:00 UTC Tuesday is still Monday evening in New York."""
        from mentorhub.timezone import format_date_for_email

        utc_dt = datetime(2025, 12, 9, 1, 0, tzinfo=timezone.utc)

        assert format_date_for_email(utc_dt) == "Monday, December 8, 2025"


class TestFormatTimeForEmail:
    def test_winter_offset(self):
        from mentorhub.timezone import format_time_for_email

        assert format_time_for_email(datetime(2025, 12, 8, 18, 0, tzinfo=timezone.utc)) == "1:00 PM ET"

    def test_summer_offset(self):
        from mentorhub.timezone import format_time_for_email

        assert format_time_for_email(datetime(2025, 7, 1, 18, 30, tzinfo=timezone.utc)) == "2:30 PM ET"

    def test_naive_datetime_is_treated_as_utc(self):
        from mentorhub.timezone import format_time_for_email

        assert format_time_for_email(datetime(2025, 12, 8, 18, 0)) == "1:00 PM ET"

    def test_other_timezone_uses_its_abbreviation(self):
        from mentorhub.timezone import format_time_for_email

        result = format_time_for_email(
            datetime(2025, 12, 8, 18, 0, tzinfo=timezone.utc), "America/Los_Angeles"
        )
        assert result == "10:00 AM PST"

    def test_invalid_timezone_falls_back_to_utc(self):
        from mentorhub.timezone import format_time_for_email

        result = format_time_for_email(
            datetime(2025, 12, 8, 18, 0, tzinfo=timezone.utc), "Invalid/Timezone"
        )
        assert result == "6:00 PM UTC"


def test_ensure_utc_converts_aware_datetimes():
    from mentorhub.timezone import ensure_utc

    eastern = pytz.timezone("America/New_York").localize(datetime(2025, 12, 8, 13, 0))

    assert ensure_utc(eastern) == datetime(2025, 12, 8, 18, 0, tzinfo=timezone.utc)


def test_format_datetime_for_email():
    from mentorhub.timezone import format_datetime_for_email

    assert (
        format_datetime_for_email(datetime(2025, 12, 8, 18, 0, tzinfo=timezone.utc))
        == "Monday, December 8, 2025 at 1:00 PM ET"
    )
