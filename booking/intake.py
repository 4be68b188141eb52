"""Booking flows: validate a proposed time, then persist it."""

import logging
import math
from datetime import datetime
from typing import Optional

from booking.errors import ConflictError, ConflictReason
from booking.schema import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    BookingRequestCreate,
    ProposedBooking,
    ValidateSchedulingRequest,
    ValidateSchedulingResponse,
    ValidationResult,
)
from booking.store import InMemoryStore
from booking.timeline import to_local
from booking.travel import fallback_buffer_minutes
from booking.validator import SchedulingValidator, to_travel_buffers

logger = logging.getLogger(__name__)


def normalize_phone(raw: str) -> str:
    """Strip formatting from a client phone number, keeping an international +."""
    digits = "".join(ch for ch in raw if ch in "0123456789")
    return f"+{digits}" if raw.lstrip().startswith("+") else digits


class BookingIntake:
    """Entry point for every flow that creates an appointment.

    Validation is advisory: the store re-checks overlaps when saving and
    raises RaceConflictError, a ConflictError, so callers see one kind of
    failure whichever step caught it. Nothing is written before the save,
    so cancelling an in-flight call leaves no trace.
    """

    def __init__(self, store: InMemoryStore, validator: SchedulingValidator) -> None:
        self.store = store
        self.validator = validator

    async def _validate(
        self,
        provider_id: str,
        start: datetime,
        duration_minutes: int,
        address: Optional[str],
        appointment_id: Optional[int] = None,
    ) -> ValidationResult:
        record = self.store.provider(provider_id)
        tz = record.tz
        local_start = to_local(start, tz)
        proposed = ProposedBooking(
            start=local_start,
            duration_minutes=duration_minutes,
            destination_address=address,
            appointment_id=appointment_id,
        )
        timeline = self.store.timeline_for_day(provider_id, local_start.date())
        return await self.validator.validate(
            proposed, record.working_hours, record.travel_profile, timeline, tz
        )

    async def validate_scheduling(
        self,
        provider_id: str,
        request: ValidateSchedulingRequest,
    ) -> ValidateSchedulingResponse:
        duration = math.ceil((request.proposed_end - request.proposed_start).total_seconds() / 60)
        result = await self._validate(
            provider_id,
            request.proposed_start,
            duration,
            request.client_address,
            appointment_id=request.appointment_id,
        )
        fallback = None
        if result.travel_time_known is False:
            profile = self.store.provider(provider_id).travel_profile
            fallback = fallback_buffer_minutes(profile.transportation_mode, profile.grace_minutes)
        return ValidateSchedulingResponse(
            is_valid=result.is_valid,
            conflict_message=result.conflict_message,
            conflict_reason=result.conflict_reason,
            travel_buffers=to_travel_buffers(result, request.client_address),
            travel_time_known=result.travel_time_known,
            fallback_buffer_minutes=fallback,
        )

    @staticmethod
    def _raise_if_rejected(result: ValidationResult) -> None:
        if not result.is_valid:
            raise ConflictError(
                result.conflict_reason or ConflictReason.OVERLAP,
                result.conflict_message or "Requested time is not available",
            )

    async def create_appointment(self, provider_id: str, form: AppointmentCreate) -> Appointment:
        """Provider's own booking: saved as confirmed."""
        result = await self._validate(provider_id, form.scheduled_at, form.duration_minutes, form.address)
        self._raise_if_rejected(result)
        return self.store.add_appointment(
            provider_id,
            scheduled_at=form.scheduled_at,
            duration_minutes=form.duration_minutes,
            address=form.address,
            status=AppointmentStatus.CONFIRMED,
            client_name=form.client_name,
            notes=form.notes,
        )

    async def submit_booking_request(self, provider_id: str, request: BookingRequestCreate) -> Appointment:
        """Client request from the public booking link: saved as pending."""
        result = await self._validate(
            provider_id, request.scheduled_at, request.duration_minutes, request.address
        )
        self._raise_if_rejected(result)
        appointment = self.store.add_appointment(
            provider_id,
            scheduled_at=request.scheduled_at,
            duration_minutes=request.duration_minutes,
            address=request.address,
            status=AppointmentStatus.PENDING,
            client_name=request.client_name.strip(),
            client_phone=normalize_phone(request.client_phone),
            notes=request.notes,
        )
        logger.info("Booking request %s received for provider %s", appointment.id, provider_id)
        return appointment
