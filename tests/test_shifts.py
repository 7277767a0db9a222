"""
Tests for the shift calendar.

Run: python -m pytest tests/test_shifts.py -v
"""

import pytest

from errors import ValidationError
from models import ShiftDefinition
from shifts import hours_in_shift, hours_to_update, parse_hour, shift_containing

DAY = ShiftDefinition("A", "06:00", "14:00")
EVENING = ShiftDefinition("B", "14:00", "22:00")
NIGHT = ShiftDefinition("C", "22:00", "06:00")
SHIFTS = [DAY, EVENING, NIGHT]


class TestParseHour:

    def test_minutes_are_ignored(self):
        assert parse_hour("06:45") == 6
        assert parse_hour("22:00") == 22

    @pytest.mark.parametrize("value", ["", "ab:00", "25:00"])
    def test_malformed_time_is_rejected(self, value):
        with pytest.raises(ValidationError):
            parse_hour(value)


class TestShiftContaining:

    def test_same_day_shift_is_half_open(self):
        assert shift_containing(SHIFTS, 6) is DAY
        assert shift_containing(SHIFTS, 13) is DAY
        assert shift_containing(SHIFTS, 14) is EVENING

    def test_midnight_crossing_shift_covers_both_sides(self):
        assert shift_containing(SHIFTS, 22) is NIGHT
        assert shift_containing(SHIFTS, 23) is NIGHT
        assert shift_containing(SHIFTS, 0) is NIGHT
        assert shift_containing(SHIFTS, 5) is NIGHT

    def test_no_match(self):
        assert shift_containing([DAY], 20) is None


class TestHoursInShift:

    def test_same_day_expansion(self):
        assert hours_in_shift(DAY, 9) == list(range(6, 14))

    def test_night_shift_late_anchor_stays_on_current_day(self):
        """Edit at 23:00 touches 22 and 23 only, never the next day's 0-5."""
        assert hours_in_shift(NIGHT, 23) == [22, 23]

    def test_night_shift_early_anchor_stays_on_current_day(self):
        assert hours_in_shift(NIGHT, 2) == [0, 1, 2, 3, 4, 5]


class TestHoursToUpdate:

    def test_single_hour_without_apply_to_shift(self):
        assert hours_to_update(SHIFTS, 9, False) == [9]

    def test_whole_shift(self):
        assert hours_to_update(SHIFTS, 15, True) == list(range(14, 22))

    def test_falls_back_to_single_hour_when_no_shift_matches(self):
        assert hours_to_update([DAY], 3, True) == [3]
        assert hours_to_update([], 3, True) == [3]
