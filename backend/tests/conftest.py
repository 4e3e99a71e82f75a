"""Shared fixtures for the booking engine tests."""

import json
import os
from datetime import datetime

# Keep the module-level engine in memory; must run before clinic_booking.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REDIS_URL", None)

import pytest

from clinic_booking.database import make_engine, make_session_factory
from clinic_booking.models.generated import Bookings, Base, Services, Staff, StaffBlocks, StudioSettings, Users
from clinic_booking.services.booking import (
    AvailabilityResolver,
    BookingService,
    PolicyStore,
    SlotGridConfig,
    SqlBookingStore,
)

# 2025-01-01 is a Wednesday
NOW = datetime(2025, 1, 1, 10, 0)

WEEKDAY_WINDOWS = {"enabled": True, "timeSlots": [
    {"start": "09:00", "end": "12:00"},
    {"start": "13:00", "end": "18:00"},
]}

THERAPY_AVAILABILITY = {
    "sunday": {"enabled": False, "timeSlots": []},
    "monday": WEEKDAY_WINDOWS,
    "tuesday": WEEKDAY_WINDOWS,
    "wednesday": WEEKDAY_WINDOWS,
    "thursday": WEEKDAY_WINDOWS,
    "friday": WEEKDAY_WINDOWS,
    "saturday": {"enabled": False, "timeSlots": []},
}

MONDAY_MORNING_AVAILABILITY = {
    "monday": {"enabled": True, "timeSlots": [{"start": "09:00", "end": "12:00"}]},
}


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the engine uses."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}
        self.expiry: dict[str, int] = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.expiry[key] = ttl
        return True

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.data:
            return None
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])


class RecordingNotifier:
    """Notifier that records calls and can be told to fail for some bookings."""

    def __init__(self, fail_for=(), refuse_for=()):
        self.sent: list[int] = []
        self.fail_for = set(fail_for)
        self.refuse_for = set(refuse_for)

    def send_reminder(self, recipient, booking):
        booking_id = booking.booking.id
        if booking_id in self.fail_for:
            raise ConnectionError(f"smtp down for {booking_id}")
        if booking_id in self.refuse_for:
            return False
        self.sent.append(booking_id)
        return True


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def seed(session_factory):
    """Client, therapist and two services. Returns their ids."""
    with session_factory() as db:
        user = Users(email="anna@example.com", first_name="Anna", last_name="Rossi")
        other = Users(email="luca@example.com", first_name="Luca", last_name="Bianchi")
        therapist = Staff(first_name="Giulia", last_name="Verdi")
        therapy = Services(
            name="Physiotherapy",
            duration_min=60,
            availability=json.dumps(THERAPY_AVAILABILITY),
        )
        morning = Services(
            name="Morning massage",
            duration_min=60,
            availability=json.dumps(MONDAY_MORNING_AVAILABILITY),
        )
        db.add_all([user, other, therapist, therapy, morning])
        db.commit()
        return {
            "user_id": user.id,
            "other_user_id": other.id,
            "staff_id": therapist.id,
            "service_id": therapy.id,
            "morning_service_id": morning.id,
        }


@pytest.fixture
def store(session_factory):
    return SqlBookingStore(session_factory)


@pytest.fixture
def policy_store(store):
    return PolicyStore(store)


@pytest.fixture
def resolver(store):
    return AvailabilityResolver(store, SlotGridConfig(step_minutes=30))


@pytest.fixture
def booking_service(store, policy_store, resolver):
    return BookingService(store, policy_store, resolver)


@pytest.fixture
def set_policy(session_factory, policy_store):
    """Store raw booking settings and drop the cached policy."""
    def _set(value):
        with session_factory() as db:
            raw = value if isinstance(value, str) or value is None else json.dumps(value)
            db.add(StudioSettings(booking_settings=raw))
            db.commit()
        policy_store.invalidate()
    return _set


@pytest.fixture
def add_booking(session_factory, seed):
    """Insert a booking row directly, bypassing validation."""
    def _add(date, start_time, end_time, status="CONFIRMED", reminder_sent=False,
             staff_id=None, user_id=None, service_id=None):
        with session_factory() as db:
            obj = Bookings(
                user_id=user_id or seed["user_id"],
                service_id=service_id or seed["service_id"],
                staff_id=staff_id or seed["staff_id"],
                date=date,
                start_time=start_time,
                end_time=end_time,
                status=status,
                reminder_sent=1 if reminder_sent else 0,
            )
            db.add(obj)
            db.commit()
            return obj.id
    return _add


@pytest.fixture
def add_block(session_factory, seed):
    """Insert a staff block for the seeded therapist."""
    def _add(start_date, end_date, start_time, end_time, is_active=True, staff_id=None):
        with session_factory() as db:
            obj = StaffBlocks(
                staff_id=staff_id or seed["staff_id"],
                start_date=start_date,
                end_date=end_date,
                start_time=start_time,
                end_time=end_time,
                reason="Time off",
                type="VACATION",
                is_active=1 if is_active else 0,
            )
            db.add(obj)
            db.commit()
            return obj.id
    return _add
