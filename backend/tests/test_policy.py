"""Tests for PolicyStore: defaults, parsing, caching and the limits message."""

import json
from datetime import datetime, timedelta

from conftest import NOW, FakeRedis

from clinic_booking.schemas.settings import DEFAULT_BOOKING_POLICY, BookingPolicy
from clinic_booking.services.booking import PolicyStore, limits_message, parse_policy
from clinic_booking.services.booking.policy import POLICY_CACHE_KEY


class StaticSource:
    def __init__(self, raw):
        self.raw = raw
        self.calls = 0

    def get_booking_policy(self):
        self.calls += 1
        return self.raw


class BrokenSource:
    def get_booking_policy(self):
        raise ConnectionError("database unreachable")


class TestFallbacks:

    def test_missing_settings_use_defaults(self):
        policy = PolicyStore(StaticSource(None)).get_policy()
        assert policy == DEFAULT_BOOKING_POLICY
        assert policy.max_advance_days == 60
        assert policy.min_advance_hours == 2
        assert policy.cancellation_hours == 24
        assert policy.allow_online_booking is True

    def test_malformed_json_uses_defaults(self):
        assert PolicyStore(StaticSource("{not json")).get_policy() == DEFAULT_BOOKING_POLICY

    def test_non_object_json_uses_defaults(self):
        assert PolicyStore(StaticSource("[1, 2]")).get_policy() == DEFAULT_BOOKING_POLICY

    def test_negative_values_use_defaults(self):
        raw = json.dumps({"minAdvanceBookingHours": -3})
        assert PolicyStore(StaticSource(raw)).get_policy() == DEFAULT_BOOKING_POLICY

    def test_storage_error_is_swallowed(self):
        assert PolicyStore(BrokenSource()).get_policy() == DEFAULT_BOOKING_POLICY


class TestParsing:

    def test_camel_case_settings(self):
        policy = parse_policy(json.dumps({
            "maxAdvanceBookingDays": 30,
            "minAdvanceBookingHours": 4,
            "cancellationHours": 48,
            "allowOnlineBooking": False,
            "requirePaymentUpfront": True,
            "reminderHours": 12,
        }))
        assert policy.max_advance_days == 30
        assert policy.min_advance_hours == 4
        assert policy.cancellation_hours == 48
        assert policy.allow_online_booking is False
        assert policy.reminder_hours == 12

    def test_partial_settings_keep_other_defaults(self):
        policy = parse_policy({"cancellationHours": 6})
        assert policy.cancellation_hours == 6
        assert policy.max_advance_days == 60

    def test_settings_from_database(self, set_policy, policy_store):
        set_policy({"minAdvanceBookingHours": 5})
        assert policy_store.get_policy().min_advance_hours == 5


class TestCaching:

    def test_in_process_cache_until_invalidated(self):
        source = StaticSource(json.dumps({"cancellationHours": 10}))
        store = PolicyStore(source)

        store.get_policy()
        store.get_policy()
        assert source.calls == 1

        source.raw = json.dumps({"cancellationHours": 12})
        assert store.get_policy().cancellation_hours == 10
        store.invalidate()
        assert store.get_policy().cancellation_hours == 12
        assert source.calls == 2

    def test_shared_cache_in_redis(self):
        redis = FakeRedis()
        source = StaticSource(json.dumps({"maxAdvanceBookingDays": 14}))

        first = PolicyStore(source, redis=redis, cache_ttl_seconds=60)
        assert first.get_policy().max_advance_days == 14
        assert redis.expiry[POLICY_CACHE_KEY] == 60

        # Another process reads the cached copy
        second = PolicyStore(StaticSource(None), redis=redis)
        assert second.get_policy().max_advance_days == 14

        second.invalidate()
        assert POLICY_CACHE_KEY not in redis.data
        assert second.get_policy() == DEFAULT_BOOKING_POLICY

    def test_corrupt_cache_entry_is_reloaded(self):
        redis = FakeRedis()
        redis.data[POLICY_CACHE_KEY] = "garbage"
        source = StaticSource(json.dumps({"cancellationHours": 3}))
        assert PolicyStore(source, redis=redis).get_policy().cancellation_hours == 3


class TestLimitsMessage:

    def test_default_message(self):
        message = limits_message(DEFAULT_BOOKING_POLICY)
        assert message == (
            "You can book at least 2 hours in advance and at most 60 days in advance."
            " Free cancellation up to 24 hours before the appointment."
        )

    def test_lead_time_in_days_and_hours(self):
        message = limits_message(BookingPolicy(min_advance_hours=26, max_advance_days=400, cancellation_hours=0))
        assert message == "You can book at least 1 day and 2 hours in advance."

    def test_lead_time_in_whole_days(self):
        message = limits_message(BookingPolicy(min_advance_hours=48, max_advance_days=365, cancellation_hours=0))
        assert message == "You can book at least 2 days in advance."

    def test_online_booking_disabled(self):
        message = limits_message(BookingPolicy(allow_online_booking=False))
        assert "unavailable" in message


def test_booking_window(policy_store):
    window = policy_store.booking_window(NOW)
    assert window.min_instant == NOW + timedelta(hours=2)
    assert window.max_instant == NOW + timedelta(days=60)
    assert window.allow_online_booking is True
    assert isinstance(window.min_instant, datetime)
