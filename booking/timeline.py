"""A provider's appointments for one day, as used for overlap and travel origins."""

from datetime import datetime, tzinfo
from typing import Iterable, Optional

from booking.schema import Appointment, AppointmentStatus, TravelOrigin


def to_local(dt: datetime, tz: tzinfo) -> datetime:
    """Interpret naive datetimes as provider-local, convert aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


class AppointmentTimeline:
    """Ordered view over a snapshot of appointments.

    Only confirmed appointments take part in overlap checks and travel
    origin selection. Cancelled ones drop out as soon as their status changes.
    """

    def __init__(self, appointments: Iterable[Appointment] = ()) -> None:
        self._appointments = sorted(appointments, key=lambda a: (a.scheduled_at, a.id))

    def __iter__(self):
        return iter(self._appointments)

    def localized(self, tz: tzinfo) -> "AppointmentTimeline":
        """Copy with every scheduled_at expressed in tz."""
        return AppointmentTimeline(
            a.model_copy(update={"scheduled_at": to_local(a.scheduled_at, tz)})
            for a in self._appointments
        )

    def confirmed(self) -> list[Appointment]:
        return [a for a in self._appointments if a.status == AppointmentStatus.CONFIRMED]

    def previous_confirmed(
        self,
        proposed_start: datetime,
        exclude_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        """Most recent confirmed appointment starting strictly before proposed_start.

        Equal start times resolve to the highest appointment id.
        """
        candidates = [
            a for a in self.confirmed() if a.id != exclude_id and a.scheduled_at < proposed_start
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda a: (a.scheduled_at, a.id))

    def origin_for_proposed_start(
        self,
        proposed_start: datetime,
        home_base_address: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> TravelOrigin:
        """Where the provider sets off from to reach a booking at proposed_start."""
        previous = self.previous_confirmed(proposed_start, exclude_id=exclude_id)
        if previous is not None and previous.address and previous.address.strip():
            return TravelOrigin(
                address=previous.address.strip(),
                source="previous-appointment",
                appointment=previous,
            )
        home = home_base_address.strip() if home_base_address else None
        return TravelOrigin(address=home or None, source="home-base")

    def overlapping(
        self,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> list[Appointment]:
        """Confirmed appointments sharing time with [start, end). Touching ends do not overlap."""
        return [
            a
            for a in self.confirmed()
            if a.id != exclude_id and start < a.ends_at and a.scheduled_at < end
        ]
