# backend/clinic_booking/services/booking/config.py
"""
Booking engine configuration: slot grid and reminder horizon.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache

from ...utils.clock import MINUTES_PER_DAY, end_of_day, minutes_to_time_str, start_of_day

DEFAULT_REMINDER_HORIZON_HOURS = 24


@dataclass(frozen=True)
class SlotGridConfig:
    """
    Grid used to enumerate bookable start times.

    Attributes:
        step_minutes: Base grid step in minutes (15/30/60)
    """
    step_minutes: int = 30

    def __post_init__(self):
        """Validate configuration."""
        if self.step_minutes not in (15, 30, 60):
            raise ValueError(f"step_minutes must be 15, 30, or 60, got {self.step_minutes}")

    @property
    def slots_per_day(self) -> int:
        """
        Number of grid points in a day.

        - 15 min → 96
        - 30 min → 48
        - 60 min → 24
        """
        return MINUTES_PER_DAY // self.step_minutes

    def slot_to_minutes(self, slot: int) -> int:
        return slot * self.step_minutes

    def format_slot_time(self, slot: int) -> str:
        """Convert grid index to time string "HH:MM"."""
        return minutes_to_time_str(self.slot_to_minutes(slot))


@lru_cache
def get_slot_grid_config() -> SlotGridConfig:
    """Grid configuration from settings (singleton)."""
    from ...config import settings
    return SlotGridConfig(step_minutes=settings.slot_step_minutes)


def reminder_window(
    now: datetime,
    horizon_hours: int = DEFAULT_REMINDER_HORIZON_HOURS,
) -> tuple[datetime, datetime]:
    """
    Calendar-day window of bookings due for a reminder.

    The whole day containing now + horizon, as an inclusive (start, end)
    pair; with the default horizon this is "tomorrow".
    """
    target = now + timedelta(hours=horizon_hours)
    return start_of_day(target), end_of_day(target)
