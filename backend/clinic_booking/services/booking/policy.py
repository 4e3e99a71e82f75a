# backend/clinic_booking/services/booking/policy.py
"""
Booking policy accessor.

get_policy() always returns a policy: a missing or malformed settings
record, or an unreachable store, falls back to DEFAULT_BOOKING_POLICY and is
logged. The booking flow must keep making decisions on settings corruption.

Caching:
- without Redis: parsed policy memoised in-process until invalidate()
- with Redis: shared across processes under settings:booking_policy with a
  TTL; invalidate() deletes the key
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Optional

from pydantic import ValidationError
from redis import Redis
from redis.exceptions import RedisError

from ...schemas.settings import DEFAULT_BOOKING_POLICY, BookingPolicy, BookingWindow
from .store import SettingsSource

logger = logging.getLogger(__name__)

POLICY_CACHE_KEY = "settings:booking_policy"


class PolicyStore:
    """Cached read accessor for the clinic booking policy."""

    def __init__(
        self,
        source: SettingsSource,
        redis: Optional[Redis] = None,
        cache_ttl_seconds: int = 300,
    ):
        self.source = source
        self.redis = redis
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cached: Optional[BookingPolicy] = None

    def get_policy(self) -> BookingPolicy:
        if self.redis is not None:
            cached = self._get_shared()
            if cached is not None:
                return cached
        elif self._cached is not None:
            return self._cached

        policy = self._load()

        if self.redis is not None:
            self._store_shared(policy)
        else:
            self._cached = policy
        return policy

    def invalidate(self) -> None:
        """Drop the cached policy; the next get_policy() reloads it."""
        self._cached = None
        if self.redis is not None:
            try:
                self.redis.delete(POLICY_CACHE_KEY)
            except RedisError as e:
                logger.error(f"Failed to invalidate booking policy cache: {e}")

    def refresh(self) -> BookingPolicy:
        self.invalidate()
        return self.get_policy()

    # ── Derived views ────────────────────────────────────────────────────

    def booking_window(self, now: datetime) -> BookingWindow:
        """Earliest and latest instants a booking may currently start at."""
        policy = self.get_policy()
        return BookingWindow(
            min_instant=now + timedelta(hours=policy.min_advance_hours),
            max_instant=now + timedelta(days=policy.max_advance_days),
            allow_online_booking=policy.allow_online_booking,
        )

    def limits_message(self) -> str:
        return limits_message(self.get_policy())

    # ── Internals ────────────────────────────────────────────────────────

    def _load(self) -> BookingPolicy:
        try:
            raw = self.source.get_booking_policy()
        except Exception:
            logger.exception("Failed to load booking policy, using defaults")
            return DEFAULT_BOOKING_POLICY
        return parse_policy(raw)

    def _get_shared(self) -> Optional[BookingPolicy]:
        try:
            raw = self.redis.get(POLICY_CACHE_KEY)
        except RedisError as e:
            logger.warning(f"Booking policy cache unavailable: {e}")
            return None
        if raw is None:
            return None
        try:
            return BookingPolicy.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed cached booking policy")
            return None

    def _store_shared(self, policy: BookingPolicy) -> None:
        try:
            self.redis.setex(
                POLICY_CACHE_KEY,
                self.cache_ttl_seconds,
                policy.model_dump_json(),
            )
        except RedisError as e:
            logger.warning(f"Failed to cache booking policy: {e}")


def parse_policy(raw) -> BookingPolicy:
    """
    Parse the stored booking settings.

    Accepts a JSON string, an already-decoded dict or None. Never raises.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return DEFAULT_BOOKING_POLICY

    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        return BookingPolicy.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.error(f"Malformed booking settings, using defaults: {e}")
        return DEFAULT_BOOKING_POLICY


def limits_message(policy: BookingPolicy) -> str:
    """Human-readable summary of the booking limits."""
    if not policy.allow_online_booking:
        return (
            "Online booking is currently unavailable. "
            "Please contact the clinic directly."
        )

    parts = []

    hours = policy.min_advance_hours
    if hours > 0:
        if hours < 24:
            parts.append(f"at least {hours} {_plural(hours, 'hour')} in advance")
        else:
            days, rest = divmod(hours, 24)
            if rest == 0:
                parts.append(f"at least {days} {_plural(days, 'day')} in advance")
            else:
                parts.append(
                    f"at least {days} {_plural(days, 'day')} and "
                    f"{rest} {_plural(rest, 'hour')} in advance"
                )

    if policy.max_advance_days < 365:
        parts.append(f"at most {policy.max_advance_days} days in advance")

    message = "You can book"
    if parts:
        message += " " + " and ".join(parts)
    message += "."

    if policy.cancellation_hours > 0:
        message += (
            f" Free cancellation up to {policy.cancellation_hours} hours "
            "before the appointment."
        )

    return message


def _plural(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"
