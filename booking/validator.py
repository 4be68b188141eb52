"""Admit/reject decisions for proposed bookings, with travel-time awareness."""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from booking.errors import ConflictReason
from booking.schema import (
    ProposedBooking,
    TravelBuffer,
    TravelProfile,
    TravelStatus,
    ValidationResult,
)
from booking.timeline import AppointmentTimeline, to_local
from booking.travel import TravelTimeEstimator
from booking.working_hours import WorkingHours, day_key, format_minutes

logger = logging.getLogger(__name__)


def _reject(reason: ConflictReason, message: str, **extra) -> ValidationResult:
    logger.info("Booking rejected (%s): %s", reason.value, message)
    return ValidationResult(
        is_valid=False,
        conflict_message=message,
        conflict_reason=reason,
        **extra,
    )


def _minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


class SchedulingValidator:
    """Checks working hours, then overlaps, then travel time.

    The first failing check decides the rejection. Business-rule failures
    are returned as data; only malformed configuration raises (while the
    WorkingHours is being built, before it reaches this class).
    A failed travel lookup skips the travel check instead of rejecting.
    """

    def __init__(self, estimator: TravelTimeEstimator) -> None:
        self.estimator = estimator

    async def validate(
        self,
        proposed: ProposedBooking,
        working_hours: WorkingHours,
        travel_profile: TravelProfile,
        timeline: AppointmentTimeline,
        tz: tzinfo = timezone.utc,
    ) -> ValidationResult:
        start = to_local(proposed.start, tz)
        end = start + timedelta(minutes=proposed.duration_minutes)
        local_timeline = timeline.localized(tz)

        rejection = self._check_working_hours(start, proposed.duration_minutes, working_hours)
        if rejection is not None:
            return rejection

        rejection = self._check_overlap(start, end, local_timeline, proposed.appointment_id)
        if rejection is not None:
            return rejection

        return await self._check_travel(start, proposed, travel_profile, local_timeline)

    @staticmethod
    def _check_working_hours(
        start: datetime,
        duration_minutes: int,
        working_hours: WorkingHours,
    ) -> Optional[ValidationResult]:
        day = start.date()
        day_name = day_key(day).capitalize()
        if not working_hours.is_enabled(day):
            return _reject(ConflictReason.WORKING_HOURS, f"Outside working hours: {day_name} is not a working day")

        start_minute = _minute_of_day(start)
        blocked = working_hours.first_blocked_minute(day, start_minute, start_minute + duration_minutes)
        if blocked is None:
            return None
        if blocked.break_label is not None:
            return _reject(
                ConflictReason.BREAK,
                f"Overlaps {blocked.break_label} on {day_name} at {format_minutes(blocked.minute)}",
            )
        return _reject(
            ConflictReason.WORKING_HOURS,
            f"Outside working hours: {day_name} hours are {working_hours.hours(day)}",
        )

    @staticmethod
    def _check_overlap(
        start: datetime,
        end: datetime,
        timeline: AppointmentTimeline,
        exclude_id: Optional[int],
    ) -> Optional[ValidationResult]:
        clashes = timeline.overlapping(start, end, exclude_id=exclude_id)
        if not clashes:
            return None
        clash = clashes[0]
        return _reject(
            ConflictReason.OVERLAP,
            f"Conflicts with an existing appointment at "
            f"{clash.scheduled_at:%H:%M}-{clash.ends_at:%H:%M}",
        )

    async def _check_travel(
        self,
        start: datetime,
        proposed: ProposedBooking,
        profile: TravelProfile,
        timeline: AppointmentTimeline,
    ) -> ValidationResult:
        destination = (proposed.destination_address or "").strip()
        if not destination:
            return ValidationResult(is_valid=True)

        origin = timeline.origin_for_proposed_start(
            start, profile.home_base_address, exclude_id=proposed.appointment_id
        )
        if not origin.address:
            return ValidationResult(is_valid=True)

        result = await self.estimator.calculate_travel_time(
            origin.address, destination, profile.transportation_mode
        )
        if result.status != TravelStatus.OK:
            logger.warning(
                "Travel time unknown from %r to %r (%s), skipping travel check",
                origin.address,
                destination,
                result.error_message,
            )
            return ValidationResult(is_valid=True, travel_time_known=False)

        buffer = result.duration_minutes + profile.grace_minutes
        travel = {
            "travel_buffer_minutes": buffer,
            "travel_minutes": result.duration_minutes,
            "grace_minutes": profile.grace_minutes,
            "origin_address": origin.address,
            "origin_source": origin.source,
            "travel_time_known": True,
        }
        if origin.appointment is not None:
            available = (start - origin.appointment.ends_at).total_seconds() / 60
            if available < buffer:
                earliest = origin.appointment.ends_at + timedelta(minutes=buffer)
                return _reject(
                    ConflictReason.TRAVEL_BUFFER,
                    f"Travel time from the previous appointment is {buffer} mins - "
                    f"try {earliest:%H:%M} or later, or a different location",
                    **travel,
                )
        return ValidationResult(is_valid=True, **travel)


def to_travel_buffers(result: ValidationResult, destination: Optional[str]) -> list[TravelBuffer]:
    """Travel lines for the UI. Empty when no travel time is known."""
    if not result.travel_time_known or result.origin_address is None or not destination:
        return []
    return [
        TravelBuffer(
            origin=result.origin_address,
            origin_source=result.origin_source,
            destination=destination.strip(),
            travel_minutes=result.travel_minutes,
            grace_minutes=result.grace_minutes,
            total_buffer_minutes=result.travel_buffer_minutes,
            enforced=result.origin_source == "previous-appointment",
        )
    ]
