# backend/clinic_booking/schemas/availability.py
"""
Weekly schedule formats.

Service availability (per weekday, several windows):
    {"monday": {"enabled": true, "timeSlots": [{"start": "09:00", "end": "12:00"}]}}

Staff working hours (per weekday, a single window):
    {"monday": {"isWorking": true, "startTime": "09:00", "endTime": "17:00"}}

Staff blocks (time off) are rows of staff_blocks, not JSON.
"""

from datetime import date
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.clock import MINUTES_PER_DAY, time_str_to_minutes


class TimeSlot(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_time(cls, value: str) -> str:
        time_str_to_minutes(value)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "TimeSlot":
        if self.start_minutes >= self.end_minutes:
            raise ValueError(f"Slot start {self.start} must be before end {self.end}")
        return self

    @property
    def start_minutes(self) -> int:
        return time_str_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_str_to_minutes(self.end)


class DayAvailability(BaseModel):
    enabled: bool = False
    time_slots: list[TimeSlot] = Field(
        default_factory=list,
        validation_alias=AliasChoices("timeSlots", "time_slots"),
    )

    model_config = ConfigDict(extra="ignore")


class ServiceAvailability(BaseModel):
    sunday: Optional[DayAvailability] = None
    monday: Optional[DayAvailability] = None
    tuesday: Optional[DayAvailability] = None
    wednesday: Optional[DayAvailability] = None
    thursday: Optional[DayAvailability] = None
    friday: Optional[DayAvailability] = None
    saturday: Optional[DayAvailability] = None

    model_config = ConfigDict(extra="ignore")

    def for_day(self, key: str) -> Optional[DayAvailability]:
        return getattr(self, key)


class StaffDayHours(BaseModel):
    is_working: bool = Field(validation_alias=AliasChoices("isWorking", "is_working"))
    start_time: Optional[str] = Field(None, validation_alias=AliasChoices("startTime", "start_time"))
    end_time: Optional[str] = Field(None, validation_alias=AliasChoices("endTime", "end_time"))

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _check_hours(self) -> "StaffDayHours":
        if self.is_working:
            if not self.start_time or not self.end_time:
                raise ValueError("Working day needs startTime and endTime")
            if time_str_to_minutes(self.start_time) >= time_str_to_minutes(self.end_time):
                raise ValueError(f"startTime {self.start_time} must be before endTime {self.end_time}")
        return self

    def as_slot(self) -> Optional[TimeSlot]:
        if not self.is_working:
            return None
        return TimeSlot(start=self.start_time, end=self.end_time)


class StaffWorkingHours(BaseModel):
    sunday: Optional[StaffDayHours] = None
    monday: Optional[StaffDayHours] = None
    tuesday: Optional[StaffDayHours] = None
    wednesday: Optional[StaffDayHours] = None
    thursday: Optional[StaffDayHours] = None
    friday: Optional[StaffDayHours] = None
    saturday: Optional[StaffDayHours] = None

    model_config = ConfigDict(extra="ignore")

    def for_day(self, key: str) -> Optional[StaffDayHours]:
        return getattr(self, key)


class StaffBlock(BaseModel):
    """
    Staff time off from start_time on start_date to end_time on end_date.

    Days strictly between the two dates are blocked entirely.
    """
    id: int
    staff_id: int
    start_date: date
    end_date: date
    start_time: str
    end_time: str
    reason: Optional[str] = None
    type: str = "OTHER"

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        time_str_to_minutes(value)
        return value

    @model_validator(mode="after")
    def _check_range(self) -> "StaffBlock":
        if self.end_date < self.start_date:
            raise ValueError(f"Block ends ({self.end_date}) before it starts ({self.start_date})")
        if self.start_date == self.end_date and (
            time_str_to_minutes(self.start_time) >= time_str_to_minutes(self.end_time)
        ):
            raise ValueError(f"startTime {self.start_time} must be before endTime {self.end_time}")
        return self

    def minutes_on(self, day: date) -> Optional[tuple[int, int]]:
        """Blocked [start, end) minutes on day, or None if day is not covered."""
        if day < self.start_date or day > self.end_date:
            return None
        start = time_str_to_minutes(self.start_time) if day == self.start_date else 0
        end = time_str_to_minutes(self.end_time) if day == self.end_date else MINUTES_PER_DAY
        return start, end


class BookedSlot(BaseModel):
    """An interval already taken by a non-cancelled booking."""
    start_time: str
    end_time: str
    duration: int


class BookedSlotsResponse(BaseModel):
    staff_id: int
    date: date
    booked_slots: list[BookedSlot]


class AvailableTimesResponse(BaseModel):
    service_id: int
    staff_id: int
    date: date
    service_duration_min: int
    slot_step_minutes: int
    available_times: list[str]
