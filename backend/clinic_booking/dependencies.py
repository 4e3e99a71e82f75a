# backend/clinic_booking/dependencies.py
"""
Composition of the booking engine and FastAPI dependency providers.

Components are built once by the application lifespan and kept on
app.state; nothing here starts work as a side effect of import.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from fastapi import Request
from redis import Redis
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .services.booking import (
    AvailabilityResolver,
    BookingService,
    PolicyStore,
    SlotGridConfig,
    SqlBookingStore,
)
from .services.notifications import EventQueueNotifier, LoggingNotifier, Notifier
from .services.reminder_checker import ReminderScheduler


@dataclass
class Container:
    store: SqlBookingStore
    policy_store: PolicyStore
    resolver: AvailabilityResolver
    bookings: BookingService
    reminders: ReminderScheduler
    clock: Callable[[], datetime] = datetime.now


def build_container(
    settings: Settings,
    session_factory: sessionmaker,
    redis: Optional[Redis] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> Container:
    store = SqlBookingStore(session_factory)
    policy_store = PolicyStore(
        store,
        redis=redis,
        cache_ttl_seconds=settings.policy_cache_ttl_seconds,
    )
    resolver = AvailabilityResolver(store, SlotGridConfig(step_minutes=settings.slot_step_minutes))

    if notifier is None:
        notifier = EventQueueNotifier(redis) if redis is not None else LoggingNotifier()

    reminders = ReminderScheduler(
        store,
        notifier,
        policy_store,
        interval_seconds=settings.reminder_interval_seconds,
        redis=redis,
        clock=clock,
    )
    return Container(
        store=store,
        policy_store=policy_store,
        resolver=resolver,
        bookings=BookingService(store, policy_store, resolver),
        reminders=reminders,
        clock=clock,
    )


# ── FastAPI dependencies ─────────────────────────────────────────────────


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_booking_service(request: Request) -> BookingService:
    return get_container(request).bookings


def get_policy_store(request: Request) -> PolicyStore:
    return get_container(request).policy_store


def get_reminder_scheduler(request: Request) -> ReminderScheduler:
    return get_container(request).reminders


def get_now(request: Request) -> datetime:
    return get_container(request).clock()
