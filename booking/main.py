"""FastAPI application for travel-aware appointment booking."""

import logging
from datetime import date

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from booking.config import configure_logging, get_settings
from booking.errors import (
    ConfigurationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
)
from booking.intake import BookingIntake
from booking.schema import (
    Appointment,
    AppointmentCreate,
    BookingRequestCreate,
    DaySchedule,
    DayView,
    StatusUpdate,
    TravelProfile,
    TravelTimeRequest,
    TravelTimeResult,
    ValidateSchedulingRequest,
    ValidateSchedulingResponse,
)
from booking.store import InMemoryStore
from booking.travel import MapboxClient
from booking.validator import SchedulingValidator
from booking.working_hours import WorkingHours, day_key

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Mobile Booking Scheduler", version="0.1.0")

store = InMemoryStore(default_timezone=get_settings().default_timezone)


def _intake() -> BookingIntake:
    return BookingIntake(store, SchedulingValidator(MapboxClient()))


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.warning("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": f"Please fix your working hours: {exc}"},
    )


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "is_valid": False,
            "conflict_message": exc.message,
            "conflict_reason": exc.reason.value,
        },
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# --- Provider settings ---


@app.get("/providers/{provider_id}/working-hours")
def get_working_hours(provider_id: str) -> dict[str, DaySchedule]:
    """Current working hours, keyed by weekday name."""
    return store.provider(provider_id).working_hours.to_dict()


@app.put("/providers/{provider_id}/working-hours")
def put_working_hours(provider_id: str, days: dict[str, DaySchedule] = Body(...)) -> dict[str, DaySchedule]:
    """Replace working hours. Days left out are treated as days off."""
    working_hours = WorkingHours(days)
    store.put_working_hours(provider_id, working_hours)
    return working_hours.to_dict()


@app.get("/providers/{provider_id}/travel-profile", response_model=TravelProfile)
def get_travel_profile(provider_id: str) -> TravelProfile:
    return store.provider(provider_id).travel_profile


@app.put("/providers/{provider_id}/travel-profile", response_model=TravelProfile)
def put_travel_profile(provider_id: str, profile: TravelProfile) -> TravelProfile:
    return store.put_travel_profile(provider_id, profile)


@app.put("/providers/{provider_id}/timezone")
def put_timezone(provider_id: str, timezone: str = Body(..., embed=True)) -> dict[str, str]:
    """Set the IANA timezone working hours are expressed in."""
    return {"timezone": store.put_timezone(provider_id, timezone)}


@app.get("/providers/{provider_id}/calendar/{day}", response_model=DayView)
def get_calendar_day(provider_id: str, day: date) -> DayView:
    """Hourly calendar rows with working-hours blocking and break labels."""
    settings = get_settings()
    working_hours = store.provider(provider_id).working_hours
    return DayView(
        day=day,
        weekday=day_key(day),
        enabled=working_hours.is_enabled(day),
        slots=working_hours.day_view(day, settings.calendar_first_hour, settings.calendar_last_hour),
        appointments=store.appointments_for_day(provider_id, day),
    )


# --- Appointments ---


@app.get("/providers/{provider_id}/appointments", response_model=list[Appointment])
def list_appointments(provider_id: str, day: date) -> list[Appointment]:
    return store.appointments_for_day(provider_id, day)


@app.post("/providers/{provider_id}/appointments", response_model=Appointment, status_code=201)
async def create_appointment(provider_id: str, form: AppointmentCreate) -> Appointment:
    """New appointment from the provider. Saved as confirmed when it validates."""
    return await _intake().create_appointment(provider_id, form)


@app.patch("/providers/{provider_id}/appointments/{appointment_id}/status", response_model=Appointment)
def update_appointment_status(provider_id: str, appointment_id: int, update: StatusUpdate) -> Appointment:
    return store.update_status(provider_id, appointment_id, update.status)


@app.post(
    "/providers/{provider_id}/appointments/validate-scheduling",
    response_model=ValidateSchedulingResponse,
)
async def validate_scheduling(provider_id: str, request: ValidateSchedulingRequest) -> ValidateSchedulingResponse:
    """
    Check a proposed time against working hours, breaks, existing
    appointments and travel time from the previous stop.
    """
    return await _intake().validate_scheduling(provider_id, request)


@app.post("/providers/{provider_id}/booking-requests", response_model=Appointment, status_code=201)
async def submit_booking_request(provider_id: str, request: BookingRequestCreate) -> Appointment:
    """Public booking link. Saved as pending for the provider to confirm."""
    return await _intake().submit_booking_request(provider_id, request)


# --- Travel ---


@app.post("/travel-time/calculate", response_model=TravelTimeResult)
async def calculate_travel_time(request: TravelTimeRequest) -> TravelTimeResult:
    if request.origin.strip() == request.destination.strip():
        raise HTTPException(status_code=422, detail="origin and destination must differ")
    return await MapboxClient().calculate_travel_time(request.origin, request.destination, request.mode)


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
