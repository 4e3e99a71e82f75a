# backend/clinic_booking/schemas/bookings.py

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.clock import time_str_to_minutes


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class RejectionCode(str, Enum):
    ONLINE_BOOKING_DISABLED = "ONLINE_BOOKING_DISABLED"
    TOO_SOON = "TOO_SOON"
    TOO_FAR = "TOO_FAR"
    PAST_DATE = "PAST_DATE"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    STAFF_NOT_FOUND = "STAFF_NOT_FOUND"
    DAY_UNAVAILABLE = "DAY_UNAVAILABLE"
    TIME_UNAVAILABLE = "TIME_UNAVAILABLE"
    STAFF_UNAVAILABLE = "STAFF_UNAVAILABLE"
    SLOT_CONFLICT = "SLOT_CONFLICT"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class BookingRequest(BaseModel):
    service_id: int
    staff_id: int
    date: date
    start_time: str = Field(description="HH:MM, local clinic time")
    notes: Optional[str] = None

    @field_validator("start_time")
    @classmethod
    def _check_start_time(cls, value: str) -> str:
        time_str_to_minutes(value)
        return value

    model_config = {"from_attributes": True}


class BookingCreate(BookingRequest):
    # Issued by the (external) auth layer
    user_id: int


class BookingRead(BaseModel):
    id: int

    user_id: int
    service_id: int
    staff_id: int

    date: date
    start_time: str
    end_time: str

    status: BookingStatus
    reminder_sent: bool = False
    notes: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ServiceRecord(BaseModel):
    id: int
    name: str
    duration_min: int
    is_active: bool = True
    availability: Optional[str] = None  # raw JSON, parsed by the availability resolver

    model_config = {"from_attributes": True}


class StaffRecord(BaseModel):
    id: int
    first_name: str
    last_name: str
    is_active: bool = True
    working_hours: Optional[str] = None  # raw JSON

    model_config = {"from_attributes": True}

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ValidationResult(BaseModel):
    """Outcome of validating a booking request."""
    accepted: bool
    end_time: Optional[str] = None
    code: Optional[RejectionCode] = None
    reason: Optional[str] = None

    @classmethod
    def accept(cls, end_time: str) -> "ValidationResult":
        return cls(accepted=True, end_time=end_time)

    @classmethod
    def reject(cls, code: RejectionCode, reason: str) -> "ValidationResult":
        return cls(accepted=False, code=code, reason=reason)


class CancellationCheck(BaseModel):
    can_cancel: bool
    hours_remaining: int
    reason: Optional[str] = None


class BookingCancel(BaseModel):
    user_id: int
