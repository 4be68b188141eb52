"""Unit tests for the working-hours model."""

from datetime import date, time

import pytest

from booking.errors import ConfigurationError
from booking.schema import BreakWindow, DaySchedule
from booking.working_hours import TimeRange, WorkingHours, day_key

TUESDAY = date(2025, 7, 8)
SUNDAY = date(2025, 7, 6)


def test_disabled_day_blocks_everything_without_labels(working_hours):
    """Sunday has breaks configured but is disabled: no hour is open, no label shown."""
    for hour in range(0, 24):
        assert working_hours.is_within_working_hours(SUNDAY, hour) is False
        assert working_hours.break_label_at(SUNDAY, hour) is None
    assert working_hours.open_intervals(SUNDAY) == []


def test_missing_day_is_disabled(working_hours):
    """Days with no entry are days off, not errors."""
    assert working_hours.is_enabled("monday") is False
    assert working_hours.is_within_working_hours("monday", 10) is False
    assert working_hours.break_label_at("monday", 12) is None


def test_lunch_break_label_inside_hours(working_hours):
    assert working_hours.is_within_working_hours(TUESDAY, time(12, 30)) is False
    assert working_hours.break_label_at(TUESDAY, time(12, 30)) == "Lunch Break"


def test_outside_hours_blocked_without_label(working_hours):
    assert working_hours.is_within_working_hours(TUESDAY, time(8, 0)) is False
    assert working_hours.break_label_at(TUESDAY, time(8, 0)) is None


def test_working_hours_bounds_are_inclusive(working_hours):
    assert working_hours.is_within_working_hours(TUESDAY, time(9, 0)) is True
    assert working_hours.is_within_working_hours(TUESDAY, time(17, 0)) is True
    assert working_hours.is_within_working_hours(TUESDAY, time(17, 1)) is False


def test_break_ending_on_the_hour_frees_that_hour():
    wh = WorkingHours(
        {"wednesday": DaySchedule(enabled=True, breaks=[BreakWindow(start="13:00", end="14:00")])}
    )
    assert wh.is_within_working_hours("wednesday", 14) is True
    assert wh.break_label_at("wednesday", 14) is None


def test_break_ending_past_the_hour_blocks_through_that_hour():
    wh = WorkingHours(
        {"wednesday": DaySchedule(enabled=True, breaks=[BreakWindow(start="13:00", end="14:30")])}
    )
    assert wh.is_within_working_hours("wednesday", 14) is False
    assert wh.break_label_at("wednesday", 14) == "Break"
    assert wh.is_within_working_hours("wednesday", 15) is True


def test_overlapping_breaks_first_declared_wins():
    wh = WorkingHours(
        {
            "thursday": DaySchedule(
                enabled=True,
                breaks=[
                    BreakWindow(start="12:00", end="14:00", label="Long Lunch"),
                    BreakWindow(start="13:00", end="14:00", label="Team Meeting"),
                ],
            )
        }
    )
    assert wh.break_label_at("thursday", time(13, 30)) == "Long Lunch"


def test_empty_label_defaults_to_break():
    wh = WorkingHours(
        {"friday": {"enabled": True, "breaks": [{"start": "15:00", "end": "16:00", "label": ""}]}}
    )
    assert wh.break_label_at("friday", 15) == "Break"


def test_break_outside_hours_has_no_label():
    wh = WorkingHours(
        {
            "friday": DaySchedule(
                enabled=True,
                start="09:00",
                end="12:00",
                breaks=[BreakWindow(start="18:00", end="19:00", label="Gym")],
            )
        }
    )
    assert wh.break_label_at("friday", 18) is None
    assert wh.is_within_working_hours("friday", 18) is False


def test_open_intervals_subtract_unsorted_breaks():
    wh = WorkingHours(
        {
            "monday": DaySchedule(
                enabled=True,
                start="08:00",
                end="18:00",
                breaks=[
                    BreakWindow(start="15:00", end="15:30", label="Afternoon Break"),
                    BreakWindow(start="10:00", end="10:15", label="Coffee Break"),
                    BreakWindow(start="12:00", end="13:00", label="Lunch Break"),
                ],
            )
        }
    )
    assert wh.open_intervals("monday") == [
        TimeRange(8 * 60, 10 * 60),
        TimeRange(11 * 60, 12 * 60),
        TimeRange(13 * 60, 15 * 60),
        TimeRange(16 * 60, 18 * 60),
    ]


def test_first_blocked_minute_reports_break_label(working_hours):
    blocked = working_hours.first_blocked_minute(TUESDAY, 11 * 60 + 30, 12 * 60 + 30)
    assert blocked is not None
    assert blocked.minute == 12 * 60
    assert blocked.break_label == "Lunch Break"


def test_first_blocked_minute_past_end_of_day(working_hours):
    blocked = working_hours.first_blocked_minute(TUESDAY, 16 * 60 + 30, 17 * 60 + 30)
    assert blocked is not None
    assert blocked.minute == 17 * 60
    assert blocked.break_label is None


def test_first_blocked_minute_none_when_open(working_hours):
    assert working_hours.first_blocked_minute(TUESDAY, 13 * 60, 17 * 60) is None


@pytest.mark.parametrize("bad", ["9:00", "25:00", "12:60", "noon", ""])
def test_malformed_time_raises_configuration_error(bad):
    with pytest.raises(ConfigurationError):
        WorkingHours({"monday": {"enabled": True, "start": bad, "end": "17:00"}})


def test_start_after_end_raises_configuration_error():
    with pytest.raises(ConfigurationError, match="monday"):
        WorkingHours({"monday": {"enabled": True, "start": "17:00", "end": "09:00"}})


def test_unknown_weekday_raises_configuration_error():
    with pytest.raises(ConfigurationError):
        WorkingHours({"funday": {"enabled": True}})


def test_day_key_accepts_dates_indexes_and_names():
    assert day_key(TUESDAY) == "tuesday"
    assert day_key(6) == "sunday"
    assert day_key("Monday") == "monday"


def test_default_hours_close_sunday():
    wh = WorkingHours.default()
    assert wh.is_enabled("saturday") is True
    assert wh.is_enabled("sunday") is False


def test_day_view_rows(working_hours):
    """Calendar rows from 8 AM to 8 PM with the lunch label at noon."""
    rows = working_hours.day_view(TUESDAY)
    assert [r.hour for r in rows] == list(range(8, 21))
    by_hour = {r.hour: r for r in rows}
    assert by_hour[8].is_blocked and by_hour[8].break_label is None
    assert by_hour[9].is_within_working_hours
    assert by_hour[12].label == "12 PM"
    assert by_hour[12].break_label == "Lunch Break"
    assert by_hour[13].is_within_working_hours
    assert by_hour[18].is_blocked


def test_to_dict_round_trips(working_hours):
    rebuilt = WorkingHours(working_hours.to_dict())
    assert rebuilt.open_intervals(TUESDAY) == working_hours.open_intervals(TUESDAY)


def test_day_view_blocks_row_for_break_starting_mid_hour():
    wh = WorkingHours(
        {
            "tuesday": DaySchedule(
                enabled=True,
                start="09:00",
                end="17:00",
                breaks=[BreakWindow(start="12:30", end="13:00", label="Call")],
            )
        }
    )
    by_hour = {r.hour: r for r in wh.day_view(TUESDAY)}
    assert by_hour[12].is_blocked
    assert by_hour[12].break_label == "Call"
    assert by_hour[11].break_label is None
    assert by_hour[13].is_within_working_hours
