# backend/clinic_booking/schemas/settings.py

from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class BookingPolicy(BaseModel):
    """
    Clinic-wide booking policy.

    Stored as JSON in studio_settings.booking_settings with camelCase keys;
    snake_case names are accepted too. Unknown keys are ignored.
    """
    max_advance_days: int = Field(
        60, ge=0,
        validation_alias=AliasChoices("maxAdvanceBookingDays", "max_advance_days"),
    )
    min_advance_hours: int = Field(
        2, ge=0,
        validation_alias=AliasChoices("minAdvanceBookingHours", "min_advance_hours"),
    )
    cancellation_hours: int = Field(
        24, ge=0,
        validation_alias=AliasChoices("cancellationHours", "cancellation_hours"),
    )
    allow_online_booking: bool = Field(
        True,
        validation_alias=AliasChoices("allowOnlineBooking", "allow_online_booking"),
    )
    send_reminder_email: bool = Field(
        True,
        validation_alias=AliasChoices("sendReminderEmail", "send_reminder_email"),
    )
    reminder_hours: int = Field(
        24, ge=1, le=168,
        validation_alias=AliasChoices("reminderHours", "reminder_hours"),
    )

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


DEFAULT_BOOKING_POLICY = BookingPolicy()


class BookingWindow(BaseModel):
    """Earliest/latest bookable instants for the current policy."""
    min_instant: datetime
    max_instant: datetime
    allow_online_booking: bool


class BookingLimitsResponse(BaseModel):
    message: str
    window: BookingWindow
    policy: BookingPolicy
