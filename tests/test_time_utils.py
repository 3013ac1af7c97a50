from datetime import datetime

import pytest

from core.time_utils import (
    duration_to_ms,
    format_elapsed,
    ms_until_clock_time,
    sanitize_time_input,
    to_24_hour,
)

HOUR = 60 * 60 * 1000


class TestDurationToMs:
    @pytest.mark.parametrize(
        "amount,unit,expected",
        [
            (5, "seconds", 5000),
            (2, "minutes", 120000),
            (1.5, "hours", 1.5 * HOUR),
            (1, "days", 24 * HOUR),
        ],
    )
    def test_units(self, amount, unit, expected):
        assert duration_to_ms(amount, unit) == expected

    def test_non_positive_or_missing_amount_is_zero(self):
        assert duration_to_ms(0, "seconds") == 0
        assert duration_to_ms(-3, "minutes") == 0
        assert duration_to_ms(None, "hours") == 0

    def test_unknown_unit_counts_as_seconds(self):
        assert duration_to_ms(4, "fortnights") == 4000


class TestClockTime:
    def test_to_24_hour_edges(self):
        assert to_24_hour("12:30", "AM") == (0, 30)
        assert to_24_hour("12:15", "PM") == (12, 15)
        assert to_24_hour("7:05", "PM") == (19, 5)

    def test_later_today(self):
        now = datetime(2024, 3, 1, 6, 0, 0)
        assert ms_until_clock_time("7:00", "AM", now=now) == HOUR

    def test_earlier_time_rolls_to_tomorrow(self):
        now = datetime(2024, 3, 1, 8, 0, 0)
        assert ms_until_clock_time("7:00", "AM", now=now) == 23 * HOUR

    def test_exact_current_minute_rolls_to_tomorrow(self):
        now = datetime(2024, 3, 1, 19, 0, 0)
        assert ms_until_clock_time("7:00", "PM", now=now) == 24 * HOUR

    def test_result_is_always_positive(self):
        assert ms_until_clock_time("11:59", "PM") > 0


class TestSanitizeTimeInput:
    @pytest.mark.parametrize("value,expected", [("9:05", "9:05"), ("09:05", "9:05"), (" 12:00 ", "12:00")])
    def test_valid(self, value, expected):
        assert sanitize_time_input(value, "7:00") == expected

    @pytest.mark.parametrize("value", ["13:00", "0:30", "12:60", "7:5", "seven", "", None, "7:00:00"])
    def test_invalid_returns_fallback(self, value):
        assert sanitize_time_input(value, "7:00") == "7:00"


def test_format_elapsed():
    assert format_elapsed(0) == "00:00"
    assert format_elapsed(61_500) == "01:01"
    assert format_elapsed(3_661_000) == "01:01:01"
