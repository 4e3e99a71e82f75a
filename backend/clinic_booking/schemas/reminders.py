# backend/clinic_booking/schemas/reminders.py

from typing import Optional

from pydantic import BaseModel

from .bookings import BookingRead


class Recipient(BaseModel):
    user_id: int
    email: str
    first_name: str

    model_config = {"from_attributes": True}


class ReminderCandidate(BaseModel):
    """A booking joined with what a reminder needs to mention."""
    booking: BookingRead
    recipient: Recipient
    service_name: str
    staff_name: str
    duration_min: int


class ReminderStats(BaseModel):
    total_bookings: int
    reminders_sent: int
    pending_reminders: int


class ScanReport(BaseModel):
    candidates: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    disabled: bool = False
    # Another scan held the lock; nothing was looked at
    busy: bool = False


class ManualReminderResponse(BaseModel):
    booking_id: int
    reminder_sent: bool
    detail: Optional[str] = None
