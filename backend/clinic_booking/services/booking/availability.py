# backend/clinic_booking/services/booking/availability.py
"""
Slot availability.

Takes into account:
- Service weekly availability windows (several per day)
- Staff working hours (one window per day)
- Staff blocks (time off, possibly spanning several days)
- Existing non-cancelled bookings of the staff member

A request is legal only if [start, start + duration] fits entirely inside a
single configured window. Windows are never merged across gaps.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from pydantic import ValidationError

from ...schemas.availability import BookedSlot, ServiceAvailability, StaffWorkingHours, TimeSlot
from ...schemas.bookings import RejectionCode, ServiceRecord, StaffRecord
from ...utils.clock import (
    MINUTES_PER_DAY,
    Weekday,
    add_minutes,
    duration_between,
    intervals_overlap,
    time_str_to_minutes,
)
from .config import SlotGridConfig, get_slot_grid_config
from .errors import ConfigurationError
from .store import BookingStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotCheck:
    """Result of a single availability check."""
    available: bool
    code: Optional[RejectionCode] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "SlotCheck":
        return cls(available=True)

    @classmethod
    def fail(cls, code: RejectionCode, reason: str) -> "SlotCheck":
        return cls(available=False, code=code, reason=reason)


class AvailabilityResolver:
    def __init__(self, store: BookingStore, grid: Optional[SlotGridConfig] = None):
        self.store = store
        self.grid = grid or get_slot_grid_config()

    # ── Booked intervals ─────────────────────────────────────────────────

    def compute_booked_slots(self, staff_id: int, day: date) -> list[BookedSlot]:
        """Intervals taken by non-cancelled bookings of staff on day."""
        bookings = self.store.find_bookings_by_staff_and_date(
            staff_id, day, exclude_cancelled=True
        )
        return [
            BookedSlot(
                start_time=b.start_time,
                end_time=b.end_time,
                duration=duration_between(b.start_time, b.end_time),
            )
            for b in bookings
        ]

    # ── Service windows ──────────────────────────────────────────────────

    def is_slot_available(
        self,
        service: ServiceRecord,
        day: date,
        start_time: str,
    ) -> SlotCheck:
        """
        Check that the service can start at start_time on day.

        Raises:
            ConfigurationError: service availability is malformed
        """
        weekday = Weekday.of(day)
        windows = service_windows(service, weekday)
        if not windows:
            return SlotCheck.fail(
                RejectionCode.DAY_UNAVAILABLE,
                f"The service is not bookable on {weekday.key.capitalize()}.",
            )

        request_start = time_str_to_minutes(start_time)
        request_end = request_start + service.duration_min

        if any(_fits(request_start, request_end, w) for w in windows):
            return SlotCheck.ok()

        return SlotCheck.fail(
            RejectionCode.TIME_UNAVAILABLE,
            f"The selected time {start_time} is not available for this service.",
        )

    # ── Staff hours ──────────────────────────────────────────────────────

    def is_staff_working(
        self,
        staff: StaffRecord,
        day: date,
        start_time: str,
        duration: int,
    ) -> SlotCheck:
        """
        Check the request against the staff member's working hours.

        Staff without configured hours are not restricted.

        Raises:
            ConfigurationError: working hours are malformed
        """
        hours = parse_staff_hours(staff)
        if hours is None:
            return SlotCheck.ok()

        weekday = Weekday.of(day)
        day_hours = hours.for_day(weekday.key)
        window = day_hours.as_slot() if day_hours else None
        if window is None:
            return SlotCheck.fail(
                RejectionCode.STAFF_UNAVAILABLE,
                f"{staff.display_name} does not work on {weekday.key.capitalize()}.",
            )

        request_start = time_str_to_minutes(start_time)
        if _fits(request_start, request_start + duration, window):
            return SlotCheck.ok()

        return SlotCheck.fail(
            RejectionCode.STAFF_UNAVAILABLE,
            f"{staff.display_name} works from {window.start} to {window.end} on that day.",
        )

    # ── Staff blocks ─────────────────────────────────────────────────────

    def compute_blocked_intervals(self, staff_id: int, day: date) -> list[tuple[int, int]]:
        """
        Minutes of day covered by the staff member's active blocks.

        A multi-day block covers its first day from start_time, the days
        in between entirely and its last day until end_time.
        """
        intervals = []
        for block in self.store.find_staff_blocks(staff_id, day):
            minutes = block.minutes_on(day)
            if minutes is not None:
                intervals.append(minutes)
        return intervals

    def is_staff_blocked(
        self,
        staff: StaffRecord,
        day: date,
        start_time: str,
        duration: int,
    ) -> SlotCheck:
        """
        Check the request against the staff member's blocks.

        Raises:
            ConfigurationError: a block is malformed
        """
        request_start = time_str_to_minutes(start_time)
        request_end = request_start + duration
        for block_start, block_end in self.compute_blocked_intervals(staff.id, day):
            if intervals_overlap(request_start, request_end, block_start, block_end):
                return SlotCheck.fail(
                    RejectionCode.STAFF_UNAVAILABLE,
                    f"{staff.display_name} is not available at that time.",
                )
        return SlotCheck.ok()

    # ── Bookable start times ─────────────────────────────────────────────

    def available_start_times(
        self,
        service: ServiceRecord,
        staff: StaffRecord,
        day: date,
    ) -> list[str]:
        """
        Start times on the grid where the whole service fits.

        service windows ∩ staff working hours − staff blocks − booked intervals.

        Raises:
            ConfigurationError: service or staff schedule is malformed
        """
        weekday = Weekday.of(day)
        windows = service_windows(service, weekday)
        if not windows:
            return []

        hours = parse_staff_hours(staff)
        staff_window: Optional[TimeSlot] = None
        if hours is not None:
            day_hours = hours.for_day(weekday.key)
            staff_window = day_hours.as_slot() if day_hours else None
            if staff_window is None:
                return []

        booked = [
            (time_str_to_minutes(b.start_time), time_str_to_minutes(b.end_time))
            for b in self.compute_booked_slots(staff.id, day)
        ]
        busy = booked + self.compute_blocked_intervals(staff.id, day)

        duration = service.duration_min
        times: list[str] = []

        for slot in range(self.grid.slots_per_day):
            start = self.grid.slot_to_minutes(slot)
            end = start + duration
            if end >= MINUTES_PER_DAY:
                break
            if not any(_fits(start, end, w) for w in windows):
                continue
            if staff_window is not None and not _fits(start, end, staff_window):
                continue
            if any(intervals_overlap(start, end, b_start, b_end) for b_start, b_end in busy):
                continue
            times.append(self.grid.format_slot_time(slot))

        return times

    def end_time_for(self, service: ServiceRecord, start_time: str) -> str:
        return add_minutes(start_time, service.duration_min)


# ── Parsing helpers ──────────────────────────────────────────────────────


def parse_service_availability(service: ServiceRecord) -> Optional[ServiceAvailability]:
    """
    Parse the service's availability JSON.

    Returns None when nothing is configured.

    Raises:
        ConfigurationError: the JSON is malformed
    """
    raw = service.availability
    if raw is None or not raw.strip():
        return None
    try:
        return ServiceAvailability.model_validate_json(raw)
    except ValidationError as e:
        logger.error(f"Malformed availability for service {service.id}: {e}")
        raise ConfigurationError(
            f"Service {service.id} has a malformed availability configuration"
        ) from e


def parse_staff_hours(staff: StaffRecord) -> Optional[StaffWorkingHours]:
    """
    Parse the staff member's working hours JSON.

    Returns None when nothing is configured.

    Raises:
        ConfigurationError: the JSON is malformed
    """
    raw = staff.working_hours
    if raw is None or not raw.strip() or raw.strip() == "{}":
        return None
    try:
        return StaffWorkingHours.model_validate_json(raw)
    except ValidationError as e:
        logger.error(f"Malformed working hours for staff {staff.id}: {e}")
        raise ConfigurationError(
            f"Staff {staff.id} has malformed working hours"
        ) from e


def service_windows(service: ServiceRecord, weekday: Weekday) -> list[TimeSlot]:
    """Configured windows of the service on weekday; empty if not bookable."""
    availability = parse_service_availability(service)
    if availability is None:
        return []
    day_config = availability.for_day(weekday.key)
    if day_config is None or not day_config.enabled:
        return []
    return list(day_config.time_slots)


def _fits(start: int, end: int, window: TimeSlot) -> bool:
    return start >= window.start_minutes and end <= window.end_minutes
