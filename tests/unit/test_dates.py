"""
Unit tests for date normalisation and days-remaining.
"""
from datetime import date, datetime

import pytest

from pipeline.dates import (
    SERIAL_EPOCH_OFFSET,
    days_remaining,
    days_until,
    format_display_date,
    parse_date,
    serial_to_date,
)

TODAY = date(2025, 5, 1)


@pytest.mark.unit
class TestParseDate:

    def test_serial_epoch_is_unix_epoch(self):
        assert serial_to_date(SERIAL_EPOCH_OFFSET) == date(1970, 1, 1)

    def test_serial_number(self):
        assert parse_date(45658) == date(2025, 1, 1)

    def test_fractional_serial_keeps_calendar_day(self):
        # 18:00 on 2025-01-01
        assert parse_date(45658.75) == date(2025, 1, 1)

    def test_serial_round_trip(self):
        d = date(2025, 5, 11)
        serial = SERIAL_EPOCH_OFFSET + (d - date(1970, 1, 1)).days
        assert parse_date(serial) == d
        assert parse_date(float(serial)) == d

    def test_dotted_string(self):
        assert parse_date("15.05.2025") == date(2025, 5, 15)
        assert parse_date(" 1.6.2025 ") == date(2025, 6, 1)

    def test_invalid_dotted_date_does_not_roll_over(self):
        assert parse_date("31.02.2025") is None

    def test_iso_string(self):
        assert parse_date("2025-05-15") == date(2025, 5, 15)

    def test_datetime_and_date_objects(self):
        assert parse_date(datetime(2025, 5, 15, 23, 59)) == date(2025, 5, 15)
        assert parse_date(date(2025, 5, 15)) == date(2025, 5, 15)

    @pytest.mark.parametrize("value", [None, "", "   ", 0, float("nan"), True, "yakında"])
    def test_blank_or_unreadable(self, value):
        assert parse_date(value) is None


@pytest.mark.unit
class TestFormatDisplayDate:

    def test_dotted_string_kept_verbatim(self):
        assert format_display_date("1.6.2025") == "1.6.2025"

    def test_serial_formatted(self):
        assert format_display_date(45658) == "01.01.2025"

    def test_datetime_formatted(self):
        assert format_display_date(datetime(2025, 6, 30)) == "30.06.2025"

    def test_unreadable_text_returned_unchanged(self):
        assert format_display_date("teyit bekleniyor") == "teyit bekleniyor"

    def test_blank_is_none(self):
        assert format_display_date(None) is None
        assert format_display_date("") is None


@pytest.mark.unit
class TestDaysRemaining:

    def test_future_date(self):
        assert days_until(date(2025, 5, 11), TODAY) == 10

    def test_today_is_zero(self):
        assert days_until(TODAY, TODAY) == 0

    def test_overdue_is_negative(self):
        assert days_until(date(2025, 4, 28), TODAY) == -3

    def test_time_of_day_is_ignored(self):
        assert days_remaining(datetime(2025, 5, 2, 23, 30), TODAY) == 1

    def test_across_dst_change_is_whole_days(self):
        assert days_until(date(2025, 11, 1), date(2025, 10, 1)) == 31

    def test_unparseable_is_none(self):
        assert days_remaining("yakında", TODAY) is None
        assert days_remaining(None, TODAY) is None
