"""Tests for the free-cancellation rule."""

from datetime import timedelta

from conftest import NOW

from clinic_booking.services.booking import CancellationPolicy


def test_outside_window(policy_store):
    check = CancellationPolicy(policy_store).can_cancel_free(NOW + timedelta(hours=30), NOW)
    assert check.can_cancel is True
    assert check.hours_remaining == 30
    assert check.reason is None


def test_inside_window(policy_store):
    check = CancellationPolicy(policy_store).can_cancel_free(NOW + timedelta(hours=10), NOW)
    assert check.can_cancel is False
    assert check.hours_remaining == 10
    assert "24 hours" in check.reason


def test_boundary_is_allowed(policy_store):
    check = CancellationPolicy(policy_store).can_cancel_free(NOW + timedelta(hours=24), NOW)
    assert check.can_cancel is True


def test_partial_hours_are_floored(policy_store):
    check = CancellationPolicy(policy_store).can_cancel_free(NOW + timedelta(hours=23, minutes=59), NOW)
    assert check.hours_remaining == 23
    assert check.can_cancel is False


def test_uses_configured_window(policy_store, set_policy):
    set_policy({"cancellationHours": 6})
    check = CancellationPolicy(policy_store).can_cancel_free(NOW + timedelta(hours=10), NOW)
    assert check.can_cancel is True


def test_repeated_checks_agree(policy_store):
    policy = CancellationPolicy(policy_store)
    start = NOW + timedelta(hours=12)
    assert policy.can_cancel_free(start, NOW) == policy.can_cancel_free(start, NOW)
