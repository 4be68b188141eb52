"""Per-weekday working hours with named breaks."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Mapping, NamedTuple, Optional, Union

from pydantic import ValidationError

from booking.errors import ConfigurationError
from booking.schema import DaySchedule, HourSlot

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")

DayRef = Union[str, int, date]
At = Union[time, int]


class TimeRange(NamedTuple):
    """Half-open range of minutes since midnight."""

    start: int
    end: int

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end

    def __str__(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


def format_minutes(minutes: int) -> str:
    """Minutes since midnight to HH:MM."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(value: str, day: str, field: str) -> int:
    """Parse HH:MM to minutes since midnight."""
    match = _TIME_RE.match(value or "")
    if not match:
        raise ConfigurationError(f"Invalid {field} time {value!r} on {day}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ConfigurationError(f"Invalid {field} time {value!r} on {day}, expected HH:MM")
    return hours * 60 + minutes


def _minute_of(at: At) -> int:
    if isinstance(at, time):
        return at.hour * 60 + at.minute
    return int(at) * 60


@dataclass(frozen=True)
class _Break:
    start: int
    # End of the blocked range. A break ending past the top of the hour
    # blocks through that whole hour.
    end: int
    label: str


@dataclass(frozen=True)
class _Day:
    enabled: bool
    start: int
    end: int
    breaks: tuple[_Break, ...]


@dataclass(frozen=True)
class BlockedMinute:
    """First minute of a range that cannot be booked."""

    minute: int
    break_label: Optional[str] = None


def _effective_break_end(end: int) -> int:
    if end % 60 == 0:
        return end
    return min((end // 60 + 1) * 60, MINUTES_PER_DAY)


def _compile_day(name: str, schedule: DaySchedule) -> _Day:
    start = _parse_time(schedule.start, name, "start")
    end = _parse_time(schedule.end, name, "end")
    if schedule.enabled and start >= end:
        raise ConfigurationError(
            f"Working hours on {name} must start before they end ({schedule.start}-{schedule.end})"
        )
    breaks = []
    for window in schedule.breaks:
        break_start = _parse_time(window.start, name, "break start")
        break_end = _parse_time(window.end, name, "break end")
        if break_start >= break_end:
            raise ConfigurationError(
                f"Break {window.label!r} on {name} must start before it ends "
                f"({window.start}-{window.end})"
            )
        breaks.append(_Break(break_start, _effective_break_end(break_end), window.label))
    return _Day(schedule.enabled, start, end, tuple(breaks))


def day_key(day: DayRef) -> str:
    """Normalize a weekday name, index (0=Monday) or date to a weekday name."""
    if isinstance(day, (date, datetime)):
        return WEEKDAYS[day.weekday()]
    if isinstance(day, int):
        if not 0 <= day <= 6:
            raise ValueError(f"Weekday index out of range: {day}")
        return WEEKDAYS[day]
    key = day.strip().lower()
    if key not in WEEKDAYS:
        raise ValueError(f"Unknown weekday: {day!r}")
    return key


def _hour_label(hour: int) -> str:
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


class WorkingHours:
    """Working hours keyed by weekday name.

    Missing days are treated as disabled. Breaks keep their declared order:
    when breaks overlap, the first declared one names the blocked time.
    """

    def __init__(self, days: Optional[Mapping[str, Union[DaySchedule, Mapping[str, Any]]]] = None) -> None:
        self._schedules: dict[str, DaySchedule] = {}
        self._days: dict[str, _Day] = {}
        for raw_key, raw_schedule in (days or {}).items():
            try:
                key = day_key(raw_key)
            except ValueError as e:
                raise ConfigurationError(str(e)) from None
            if isinstance(raw_schedule, DaySchedule):
                schedule = raw_schedule
            else:
                try:
                    schedule = DaySchedule.model_validate(raw_schedule)
                except ValidationError as e:
                    raise ConfigurationError(f"Invalid working hours for {key}: {e}") from None
            self._schedules[key] = schedule
            self._days[key] = _compile_day(key, schedule)

    @classmethod
    def default(cls) -> "WorkingHours":
        """Monday to Saturday 09:00-17:00, Sunday off."""
        days = {name: DaySchedule(enabled=True) for name in WEEKDAYS[:6]}
        days["sunday"] = DaySchedule(enabled=False)
        return cls(days)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {name: schedule.model_dump() for name, schedule in self._schedules.items()}

    def is_enabled(self, day: DayRef) -> bool:
        compiled = self._days.get(day_key(day))
        return compiled is not None and compiled.enabled

    def _enabled_day(self, day: DayRef) -> Optional[_Day]:
        compiled = self._days.get(day_key(day))
        if compiled is None or not compiled.enabled:
            return None
        return compiled

    @staticmethod
    def _break_at(compiled: _Day, minute: int) -> Optional[_Break]:
        for window in compiled.breaks:
            if window.start <= minute < window.end:
                return window
        return None

    def is_within_working_hours(self, day: DayRef, at: At) -> bool:
        """True when `at` is inside the day's hours (end inclusive) and in no break."""
        compiled = self._enabled_day(day)
        if compiled is None:
            return False
        minute = _minute_of(at)
        if not compiled.start <= minute <= compiled.end:
            return False
        return self._break_at(compiled, minute) is None

    def break_label_at(self, day: DayRef, at: At) -> Optional[str]:
        """Label of the break covering `at`, or None outside breaks and outside hours."""
        compiled = self._enabled_day(day)
        if compiled is None:
            return None
        minute = _minute_of(at)
        if not compiled.start <= minute <= compiled.end:
            return None
        window = self._break_at(compiled, minute)
        return window.label if window else None

    def hours(self, day: DayRef) -> Optional[TimeRange]:
        compiled = self._enabled_day(day)
        if compiled is None:
            return None
        return TimeRange(compiled.start, compiled.end)

    def open_intervals(self, day: DayRef) -> list[TimeRange]:
        """Working hours minus breaks, sorted and non-overlapping."""
        compiled = self._enabled_day(day)
        if compiled is None:
            return []
        blocked = sorted(
            (max(w.start, compiled.start), min(w.end, compiled.end))
            for w in compiled.breaks
            if w.end > compiled.start and w.start < compiled.end
        )
        intervals: list[TimeRange] = []
        cursor = compiled.start
        for block_start, block_end in blocked:
            if block_start > cursor:
                intervals.append(TimeRange(cursor, block_start))
            cursor = max(cursor, block_end)
        if cursor < compiled.end:
            intervals.append(TimeRange(cursor, compiled.end))
        return intervals

    def first_blocked_minute(self, day: DayRef, start: int, end: int) -> Optional[BlockedMinute]:
        """First minute of [start, end) that is outside hours or inside a break.

        Each minute occupies [m, m + 1), so a booking must finish by the
        day's end. Returns None when the whole range is open.
        """
        compiled = self._enabled_day(day)
        if compiled is None:
            return BlockedMinute(start)
        if any(interval.contains(start, end) for interval in self.open_intervals(day)):
            return None
        for minute in range(start, end):
            if not compiled.start <= minute < compiled.end:
                return BlockedMinute(minute)
            window = self._break_at(compiled, minute)
            if window is not None:
                return BlockedMinute(minute, window.label)
        return None

    def day_view(self, day: DayRef, first_hour: int = 8, last_hour: int = 20) -> list[HourSlot]:
        """Hourly rows for the calendar, first_hour to last_hour inclusive.

        A row belongs to a break when the break touches any minute of that
        hour, so a 12:30 break blocks the 12 PM row.
        """
        compiled = self._enabled_day(day)
        slots = []
        for hour in range(first_hour, last_hour + 1):
            row_start = hour * 60
            in_hours = compiled is not None and compiled.start <= row_start <= compiled.end
            window = None
            if in_hours:
                window = next(
                    (w for w in compiled.breaks if w.start < row_start + 60 and row_start < w.end),
                    None,
                )
            within = in_hours and window is None
            slots.append(
                HourSlot(
                    hour=hour,
                    label=_hour_label(hour),
                    is_within_working_hours=within,
                    is_blocked=not within,
                    break_label=window.label if window else None,
                )
            )
        return slots
