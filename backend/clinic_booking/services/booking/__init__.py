# backend/clinic_booking/services/booking/__init__.py
"""
Booking validation & slot-scheduling engine.

PolicyStore → BookingValidator → AvailabilityResolver → accept/reject.
Reservation happens in the store (conflict-checked insert).
"""

from .config import SlotGridConfig, get_slot_grid_config, reminder_window
from .errors import (
    BookingError,
    BookingNotFound,
    CancellationRejected,
    ConfigurationError,
    NotificationFailure,
    SlotConflictError,
    ValidationRejected,
)
from .store import BookingStore, SettingsSource, SqlBookingStore
from .policy import PolicyStore, limits_message, parse_policy
from .availability import AvailabilityResolver, SlotCheck
from .validator import BookingValidator
from .cancellation import CancellationPolicy
from .service import BookingService

__all__ = [
    "SlotGridConfig",
    "get_slot_grid_config",
    "reminder_window",
    "BookingError",
    "BookingNotFound",
    "CancellationRejected",
    "ConfigurationError",
    "NotificationFailure",
    "SlotConflictError",
    "ValidationRejected",
    "BookingStore",
    "SettingsSource",
    "SqlBookingStore",
    "PolicyStore",
    "limits_message",
    "parse_policy",
    "AvailabilityResolver",
    "SlotCheck",
    "BookingValidator",
    "CancellationPolicy",
    "BookingService",
]
