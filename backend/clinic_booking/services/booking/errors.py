"""
Booking engine exceptions.

Business-rule failures are normally returned as structured results
(ValidationResult, CancellationCheck). These exceptions are raised where a
flow has to stop: by the service layer when it turns a rejection into an
error, and by collaborators for genuinely exceptional conditions.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for booking engine errors."""


class ConfigurationError(BookingError):
    """Malformed service availability or staff working hours."""


class ValidationRejected(BookingError):
    """A booking request or cancellation broke a business rule."""

    def __init__(
        self,
        reason: str,
        code: str = "REJECTED",
        hours_remaining: Optional[int] = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.code = code
        self.hours_remaining = hours_remaining


class CancellationRejected(ValidationRejected):
    """Cancellation requested inside the cancellation window."""

    def __init__(self, reason: str, hours_remaining: int):
        super().__init__(reason, code="CANCELLATION_WINDOW", hours_remaining=hours_remaining)


class SlotConflictError(BookingError):
    """The slot was taken between validation and insert."""


class BookingNotFound(BookingError):
    """No such booking (or not visible to the caller)."""


class NotificationFailure(BookingError):
    """The notification collaborator could not deliver a reminder."""
