"""Tests for AvailabilityResolver."""

import json
from datetime import date

import pytest

from clinic_booking.schemas.bookings import RejectionCode, ServiceRecord, StaffRecord
from clinic_booking.services.booking import ConfigurationError

MONDAY = date(2025, 1, 6)
TUESDAY = date(2025, 1, 7)
SATURDAY = date(2025, 1, 11)


def make_service(availability, duration=60, service_id=99):
    raw = availability if isinstance(availability, str) or availability is None else json.dumps(availability)
    return ServiceRecord(id=service_id, name="Test", duration_min=duration, availability=raw)


def make_staff(working_hours=None, staff_id=1):
    raw = working_hours if isinstance(working_hours, str) or working_hours is None else json.dumps(working_hours)
    return StaffRecord(id=staff_id, first_name="Giulia", last_name="Verdi", working_hours=raw)


MONDAY_MORNING = {"monday": {"enabled": True, "timeSlots": [{"start": "09:00", "end": "12:00"}]}}


class TestServiceWindows:

    def test_request_must_fit_inside_window(self, resolver):
        service = make_service(MONDAY_MORNING)
        assert resolver.is_slot_available(service, MONDAY, "11:00").available
        # 11:30 + 60 = 12:30 ends after the 12:00 window end
        check = resolver.is_slot_available(service, MONDAY, "11:30")
        assert not check.available
        assert check.code == RejectionCode.TIME_UNAVAILABLE

    def test_request_before_window_start(self, resolver):
        service = make_service(MONDAY_MORNING)
        assert not resolver.is_slot_available(service, MONDAY, "08:30").available

    def test_windows_are_not_merged_across_gaps(self, resolver):
        service = make_service({"monday": {"enabled": True, "timeSlots": [
            {"start": "09:00", "end": "10:30"},
            {"start": "10:30", "end": "12:00"},
        ]}})
        # 10:00-11:00 spans both windows but fits in neither
        assert not resolver.is_slot_available(service, MONDAY, "10:00").available
        assert resolver.is_slot_available(service, MONDAY, "10:30").available

    def test_unconfigured_day_is_not_bookable(self, resolver):
        check = resolver.is_slot_available(make_service(MONDAY_MORNING), TUESDAY, "10:00")
        assert check.code == RejectionCode.DAY_UNAVAILABLE

    def test_disabled_day_is_not_bookable(self, resolver):
        service = make_service({"saturday": {"enabled": False, "timeSlots": [{"start": "09:00", "end": "12:00"}]}})
        assert resolver.is_slot_available(service, SATURDAY, "10:00").code == RejectionCode.DAY_UNAVAILABLE

    def test_enabled_day_without_slots_is_not_bookable(self, resolver):
        service = make_service({"monday": {"enabled": True, "timeSlots": []}})
        assert resolver.is_slot_available(service, MONDAY, "10:00").code == RejectionCode.DAY_UNAVAILABLE

    @pytest.mark.parametrize("availability", [None, "", "   "])
    def test_missing_availability_is_not_bookable(self, resolver, availability):
        check = resolver.is_slot_available(make_service(availability), MONDAY, "10:00")
        assert check.code == RejectionCode.DAY_UNAVAILABLE

    @pytest.mark.parametrize("availability", [
        "{broken",
        "[]",
        json.dumps({"monday": {"enabled": True, "timeSlots": [{"start": "12:00", "end": "09:00"}]}}),
        json.dumps({"monday": {"enabled": True, "timeSlots": [{"start": "9am", "end": "12:00"}]}}),
    ])
    def test_malformed_availability_is_a_configuration_error(self, resolver, availability):
        with pytest.raises(ConfigurationError):
            resolver.is_slot_available(make_service(availability), MONDAY, "10:00")


class TestStaffHours:

    def test_staff_without_hours_is_unrestricted(self, resolver):
        assert resolver.is_staff_working(make_staff(None), MONDAY, "07:00", 60).available

    def test_request_inside_working_hours(self, resolver):
        staff = make_staff({"monday": {"isWorking": True, "startTime": "10:00", "endTime": "16:00"}})
        assert resolver.is_staff_working(staff, MONDAY, "10:00", 60).available
        check = resolver.is_staff_working(staff, MONDAY, "09:30", 60)
        assert check.code == RejectionCode.STAFF_UNAVAILABLE

    def test_day_off(self, resolver):
        staff = make_staff({"monday": {"isWorking": False}})
        assert not resolver.is_staff_working(staff, MONDAY, "10:00", 60).available

    def test_missing_day_means_not_working(self, resolver):
        staff = make_staff({"monday": {"isWorking": True, "startTime": "09:00", "endTime": "17:00"}})
        assert not resolver.is_staff_working(staff, TUESDAY, "10:00", 60).available

    def test_malformed_hours_is_a_configuration_error(self, resolver):
        staff = make_staff({"monday": {"isWorking": True, "startTime": "09:00"}})
        with pytest.raises(ConfigurationError):
            resolver.is_staff_working(staff, MONDAY, "10:00", 60)


class TestBookedSlots:

    def test_cancelled_bookings_are_ignored(self, resolver, seed, add_booking):
        add_booking("2025-01-07", "10:00", "11:00")
        add_booking("2025-01-07", "14:00", "15:30", status="PENDING")
        add_booking("2025-01-07", "12:00", "13:00", status="CANCELLED")
        add_booking("2025-01-08", "10:00", "11:00")

        slots = resolver.compute_booked_slots(seed["staff_id"], TUESDAY)

        assert [(s.start_time, s.end_time, s.duration) for s in slots] == [
            ("10:00", "11:00", 60),
            ("14:00", "15:30", 90),
        ]


class TestAvailableStartTimes:

    def test_service_windows_minus_bookings(self, resolver, store, seed, add_booking):
        add_booking("2025-01-06", "10:00", "11:00")
        service = store.find_service_by_id(seed["morning_service_id"])
        staff = store.find_staff_by_id(seed["staff_id"])

        times = resolver.available_start_times(service, staff, MONDAY)

        # 09:00-12:00 window, 60 min service, 10:00-11:00 taken
        assert times == ["09:00", "11:00"]

    def test_intersects_staff_hours(self, resolver, seed):
        service = make_service(MONDAY_MORNING)
        staff = make_staff(
            {"monday": {"isWorking": True, "startTime": "10:30", "endTime": "18:00"}},
            staff_id=seed["staff_id"],
        )
        assert resolver.available_start_times(service, staff, MONDAY) == ["10:30", "11:00"]

    def test_no_times_on_closed_day(self, resolver, seed):
        service = make_service(MONDAY_MORNING)
        assert resolver.available_start_times(service, make_staff(staff_id=seed["staff_id"]), TUESDAY) == []


class TestStaffBlocks:

    def test_single_day_block_removes_start_times(self, resolver, seed, add_block):
        add_block("2025-01-06", "2025-01-06", "10:00", "11:00")
        service = make_service(MONDAY_MORNING)
        staff = make_staff(staff_id=seed["staff_id"])

        assert resolver.available_start_times(service, staff, MONDAY) == ["09:00", "11:00"]

    def test_multi_day_block(self, resolver, seed, add_block):
        # Monday 16:00 through Wednesday 10:00
        add_block("2025-01-06", "2025-01-08", "16:00", "10:00")
        staff_id = seed["staff_id"]

        assert resolver.compute_blocked_intervals(staff_id, MONDAY) == [(960, 1440)]
        assert resolver.compute_blocked_intervals(staff_id, TUESDAY) == [(0, 1440)]
        assert resolver.compute_blocked_intervals(staff_id, date(2025, 1, 8)) == [(0, 600)]
        assert resolver.compute_blocked_intervals(staff_id, date(2025, 1, 9)) == []

    def test_multi_day_block_on_bookable_days(self, resolver, store, seed, add_block):
        add_block("2025-01-06", "2025-01-08", "16:00", "10:00")
        service = store.find_service_by_id(seed["service_id"])
        staff = store.find_staff_by_id(seed["staff_id"])

        monday = resolver.available_start_times(service, staff, MONDAY)
        assert monday[-1] == "15:00"
        assert resolver.available_start_times(service, staff, TUESDAY) == []
        assert resolver.available_start_times(service, staff, date(2025, 1, 8))[0] == "10:00"

    def test_block_check(self, resolver, seed, add_block):
        add_block("2025-01-06", "2025-01-06", "10:00", "11:00")
        staff = make_staff(staff_id=seed["staff_id"])

        check = resolver.is_staff_blocked(staff, MONDAY, "09:30", 60)
        assert check.code == RejectionCode.STAFF_UNAVAILABLE
        # Adjacent to the block
        assert resolver.is_staff_blocked(staff, MONDAY, "11:00", 60).available
        assert resolver.is_staff_blocked(staff, MONDAY, "09:00", 60).available

    def test_inactive_block_is_ignored(self, resolver, seed, add_block):
        add_block("2025-01-06", "2025-01-06", "09:00", "12:00", is_active=False)
        assert resolver.compute_blocked_intervals(seed["staff_id"], MONDAY) == []

    def test_malformed_block_is_a_configuration_error(self, resolver, seed, add_block):
        add_block("2025-01-06", "2025-01-06", "12:00", "09:00")
        with pytest.raises(ConfigurationError):
            resolver.compute_blocked_intervals(seed["staff_id"], MONDAY)
