"""In-memory persistence for provider settings and appointments.

Stands in for the real database. It enforces the same overlap rule as
the validator at commit time, since two bookings can both pass validation
before either is saved.
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking.errors import ConfigurationError, InvalidTransitionError, NotFoundError, RaceConflictError
from booking.schema import Appointment, AppointmentStatus, TravelProfile
from booking.timeline import AppointmentTimeline, to_local
from booking.working_hours import WorkingHours

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.PENDING: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.EXPIRED,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
}


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(f"Unknown timezone {name!r}") from None


@dataclass
class ProviderRecord:
    working_hours: WorkingHours = field(default_factory=WorkingHours.default)
    travel_profile: TravelProfile = field(default_factory=TravelProfile)
    timezone: str = "UTC"

    @property
    def tz(self) -> ZoneInfo:
        return load_zone(self.timezone)


class InMemoryStore:
    def __init__(self, default_timezone: str = "UTC") -> None:
        load_zone(default_timezone)
        self.default_timezone = default_timezone
        self._lock = threading.Lock()
        self._providers: dict[str, ProviderRecord] = {}
        self._appointments: dict[str, dict[int, Appointment]] = {}
        self._ids = itertools.count(1)

    def clear(self) -> None:
        with self._lock:
            self._providers.clear()
            self._appointments.clear()
            self._ids = itertools.count(1)

    # --- Provider configuration ---

    def provider(self, provider_id: str) -> ProviderRecord:
        with self._lock:
            if provider_id not in self._providers:
                self._providers[provider_id] = ProviderRecord(timezone=self.default_timezone)
            return self._providers[provider_id]

    def put_working_hours(self, provider_id: str, working_hours: WorkingHours) -> WorkingHours:
        self.provider(provider_id).working_hours = working_hours
        return working_hours

    def put_travel_profile(self, provider_id: str, profile: TravelProfile) -> TravelProfile:
        self.provider(provider_id).travel_profile = profile
        return profile

    def put_timezone(self, provider_id: str, name: str) -> str:
        load_zone(name)
        self.provider(provider_id).timezone = name
        return name

    # --- Appointments ---

    def get_appointment(self, provider_id: str, appointment_id: int) -> Appointment:
        appointment = self._appointments.get(provider_id, {}).get(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    def appointments_for_day(self, provider_id: str, day: date) -> list[Appointment]:
        """Appointments starting on `day` in the provider's timezone, any status."""
        tz = self.provider(provider_id).tz
        day_start = datetime(day.year, day.month, day.day, tzinfo=tz)
        day_end = day_start + timedelta(days=1)
        with self._lock:
            appointments = list(self._appointments.get(provider_id, {}).values())
        return sorted(
            (a for a in appointments if day_start <= a.scheduled_at < day_end),
            key=lambda a: (a.scheduled_at, a.id),
        )

    def timeline_for_day(self, provider_id: str, day: date) -> AppointmentTimeline:
        return AppointmentTimeline(self.appointments_for_day(provider_id, day))

    def _assert_free(self, provider_id: str, candidate: Appointment) -> None:
        # Caller holds the lock.
        timeline = AppointmentTimeline(self._appointments.get(provider_id, {}).values())
        clashes = timeline.overlapping(candidate.scheduled_at, candidate.ends_at, exclude_id=candidate.id)
        if clashes:
            clash = clashes[0]
            logger.warning(
                "Commit-time overlap for provider %s: %s clashes with appointment %s",
                provider_id,
                candidate.scheduled_at.isoformat(),
                clash.id,
            )
            raise RaceConflictError(
                f"Conflicts with an existing appointment at "
                f"{clash.scheduled_at:%H:%M}-{clash.ends_at:%H:%M}"
            )

    def add_appointment(
        self,
        provider_id: str,
        scheduled_at: datetime,
        duration_minutes: int,
        address: Optional[str] = None,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        client_name: Optional[str] = None,
        client_phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        tz = self.provider(provider_id).tz
        with self._lock:
            appointment = Appointment(
                id=next(self._ids),
                scheduled_at=to_local(scheduled_at, tz),
                duration_minutes=duration_minutes,
                address=address,
                status=status,
                client_name=client_name,
                client_phone=client_phone,
                notes=notes,
            )
            if status == AppointmentStatus.CONFIRMED:
                self._assert_free(provider_id, appointment)
            self._appointments.setdefault(provider_id, {})[appointment.id] = appointment
        logger.info("Saved %s appointment %s for provider %s", status.value, appointment.id, provider_id)
        return appointment

    def update_status(
        self,
        provider_id: str,
        appointment_id: int,
        status: AppointmentStatus,
    ) -> Appointment:
        with self._lock:
            current = self._appointments.get(provider_id, {}).get(appointment_id)
            if current is None:
                raise NotFoundError(f"Appointment {appointment_id} not found")
            if status not in ALLOWED_TRANSITIONS.get(current.status, set()):
                raise InvalidTransitionError(
                    f"Cannot change appointment {appointment_id} from {current.status.value} to {status.value}"
                )
            updated = current.model_copy(update={"status": status})
            if status == AppointmentStatus.CONFIRMED:
                self._assert_free(provider_id, updated)
            self._appointments[provider_id][appointment_id] = updated
        return updated
