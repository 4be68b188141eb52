"""Pydantic models for provider configuration, appointments and API payloads."""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from booking.errors import ConflictReason


# --- Provider configuration ---


class BreakWindow(BaseModel):
    """Named break inside a working day, times in HH:MM."""

    start: str = Field(..., description="Break start HH:MM")
    end: str = Field(..., description="Break end HH:MM")
    label: str = Field(default="Break", description="Shown on the calendar")

    @field_validator("label", mode="before")
    @classmethod
    def default_label(cls, value: Optional[str]) -> str:
        if value is None or not str(value).strip():
            return "Break"
        return str(value).strip()


class DaySchedule(BaseModel):
    """Working hours for one weekday.

    Times stay as strings here; WorkingHours parses them and reports
    malformed values as ConfigurationError.
    """

    enabled: bool = False
    start: str = Field(default="09:00", description="Day start HH:MM")
    end: str = Field(default="17:00", description="Day end HH:MM")
    breaks: list[BreakWindow] = Field(default_factory=list)


class TransportationMode(str, Enum):
    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"
    TRANSIT = "transit"


class TravelProfile(BaseModel):
    """How the provider gets between clients."""

    home_base_address: Optional[str] = Field(
        default=None, description="Starting point for the first appointment of a day"
    )
    transportation_mode: TransportationMode = TransportationMode.DRIVING
    grace_minutes: int = Field(default=0, ge=0, le=240, description="Added on top of travel time")


# --- Appointments ---


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    NO_SHOW = "no_show"


class Appointment(BaseModel):
    """A provider's appointment as seen by the timeline."""

    id: int
    scheduled_at: datetime
    duration_minutes: int = Field(..., gt=0)
    address: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)


class ProposedBooking(BaseModel):
    """Booking under validation. Never persisted."""

    start: datetime
    duration_minutes: int = Field(..., gt=0)
    destination_address: Optional[str] = None
    appointment_id: Optional[int] = Field(
        default=None, description="Existing appointment being rescheduled, ignored for overlap"
    )


# --- Travel ---


class TravelStatus(str, Enum):
    OK = "OK"
    ERROR = "ERROR"


class TravelTimeResult(BaseModel):
    """Outcome of one travel-time lookup."""

    status: TravelStatus
    duration_minutes: Optional[int] = None
    distance_meters: Optional[float] = None
    error_message: Optional[str] = None


OriginSource = Literal["previous-appointment", "home-base"]


class TravelOrigin(BaseModel):
    """Where the provider travels from to reach a proposed booking."""

    address: Optional[str] = None
    source: OriginSource
    appointment: Optional[Appointment] = None


class TravelBuffer(BaseModel):
    """Travel requirement between a neighbouring commitment and a booking."""

    direction: Literal["before"] = "before"
    origin: str
    origin_source: OriginSource
    destination: str
    travel_minutes: int
    grace_minutes: int
    total_buffer_minutes: int
    enforced: bool = Field(..., description="False for home-base origins (informational only)")


# --- Validation ---


class ValidationResult(BaseModel):
    """Admit/reject decision for a proposed booking."""

    is_valid: bool
    conflict_message: Optional[str] = None
    conflict_reason: Optional[ConflictReason] = None
    travel_buffer_minutes: Optional[int] = None
    travel_minutes: Optional[int] = None
    grace_minutes: Optional[int] = None
    origin_address: Optional[str] = None
    origin_source: Optional[OriginSource] = None
    travel_time_known: Optional[bool] = Field(
        default=None,
        description="None when no travel lookup was made, False when the lookup failed",
    )


# --- Request / Response ---


class ValidateSchedulingRequest(BaseModel):
    """Request body for POST /providers/{id}/appointments/validate-scheduling."""

    proposed_start: datetime
    proposed_end: datetime
    client_address: Optional[str] = None
    appointment_id: Optional[int] = None

    @model_validator(mode="after")
    def end_after_start(self) -> "ValidateSchedulingRequest":
        if (self.proposed_start.tzinfo is None) != (self.proposed_end.tzinfo is None):
            raise ValueError("proposed_start and proposed_end must both carry a UTC offset or neither")
        if self.proposed_end <= self.proposed_start:
            raise ValueError("proposed_end must be after proposed_start")
        return self


class ValidateSchedulingResponse(BaseModel):
    """Response from validate-scheduling."""

    is_valid: bool
    conflict_message: Optional[str] = None
    conflict_reason: Optional[ConflictReason] = None
    travel_buffers: list[TravelBuffer] = Field(default_factory=list)
    travel_time_known: Optional[bool] = None
    fallback_buffer_minutes: Optional[int] = Field(
        default=None,
        description="Suggested buffer for the travel mode when the lookup failed, display only",
    )


class AppointmentCreate(BaseModel):
    """Provider's new-appointment form."""

    scheduled_at: datetime
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    address: Optional[str] = None
    client_name: Optional[str] = None
    notes: Optional[str] = None


class BookingRequestCreate(BaseModel):
    """Public booking-link request from a client."""

    client_name: str = Field(..., min_length=1)
    client_phone: str = Field(..., min_length=7)
    scheduled_at: datetime
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    address: Optional[str] = None
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class TravelTimeRequest(BaseModel):
    """Request body for POST /travel-time/calculate."""

    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    mode: TransportationMode = TransportationMode.DRIVING


class HourSlot(BaseModel):
    """One row of the provider's hourly calendar."""

    hour: int
    label: str
    is_within_working_hours: bool
    is_blocked: bool
    break_label: Optional[str] = None


class DayView(BaseModel):
    day: date
    weekday: str
    enabled: bool
    slots: list[HourSlot]
    appointments: list[Appointment] = Field(default_factory=list)
