"""Exception taxonomy for booking validation and persistence."""

from enum import Enum


class ConflictReason(str, Enum):
    """Which scheduling rule rejected a booking."""

    WORKING_HOURS = "working_hours"
    BREAK = "break"
    OVERLAP = "overlap"
    TRAVEL_BUFFER = "travel_buffer"


class BookingError(Exception):
    """Base class for all booking errors."""


class ConfigurationError(BookingError):
    """Provider configuration (working hours, travel profile) is malformed."""


class ConflictError(BookingError):
    """A proposed booking breaks a scheduling rule."""

    def __init__(self, reason: ConflictReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


class RaceConflictError(ConflictError):
    """Overlap detected at commit time, after validation had passed."""

    def __init__(self, message: str) -> None:
        super().__init__(ConflictReason.OVERLAP, message)


class TravelLookupError(BookingError):
    """The geocoding or directions service could not produce a route."""


class NotFoundError(BookingError):
    """Unknown provider or appointment."""


class InvalidTransitionError(BookingError):
    """Appointment status change not allowed from its current status."""
