"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest

from booking.schema import (
    Appointment,
    AppointmentStatus,
    BreakWindow,
    DaySchedule,
    TransportationMode,
    TravelProfile,
    TravelStatus,
    TravelTimeResult,
)
from booking.timeline import AppointmentTimeline
from booking.working_hours import WorkingHours

# 2025-07-08 is a Tuesday.
TUESDAY = datetime(2025, 7, 8)


def at(hour: int, minute: int = 0, day: datetime = TUESDAY) -> datetime:
    return day.replace(hour=hour, minute=minute)


class StubEstimator:
    """Travel-time estimator returning a canned result and recording calls."""

    def __init__(self, result: TravelTimeResult | None = None) -> None:
        self.result = result or TravelTimeResult(
            status=TravelStatus.OK, duration_minutes=20, distance_meters=8000
        )
        self.calls: list[tuple[str, str, TransportationMode]] = []

    async def calculate_travel_time(
        self,
        origin: str,
        destination: str,
        mode: TransportationMode = TransportationMode.DRIVING,
    ) -> TravelTimeResult:
        self.calls.append((origin, destination, mode))
        return self.result


@pytest.fixture
def working_hours() -> WorkingHours:
    """Tuesday 09:00-17:00 with lunch, Sunday configured but disabled."""
    return WorkingHours(
        {
            "tuesday": DaySchedule(
                enabled=True,
                start="09:00",
                end="17:00",
                breaks=[BreakWindow(start="12:00", end="13:00", label="Lunch Break")],
            ),
            "sunday": DaySchedule(
                enabled=False,
                start="09:00",
                end="17:00",
                breaks=[BreakWindow(start="12:00", end="13:00", label="Lunch Break")],
            ),
        }
    )


@pytest.fixture
def travel_profile() -> TravelProfile:
    return TravelProfile(home_base_address="123 Main St", grace_minutes=5)


@pytest.fixture
def oak_street_appointment() -> Appointment:
    return Appointment(
        id=1,
        scheduled_at=at(10),
        duration_minutes=30,
        address="100 Oak St",
        status=AppointmentStatus.CONFIRMED,
    )


@pytest.fixture
def timeline(oak_street_appointment) -> AppointmentTimeline:
    return AppointmentTimeline([oak_street_appointment])


@pytest.fixture
def estimator() -> StubEstimator:
    return StubEstimator()
