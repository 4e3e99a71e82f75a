# backend/clinic_booking/services/booking/validator.py
"""
Booking request validation.

validate() is a pure decision over (request, policy, existing bookings,
now): it reads, never writes. Two concurrent validations can both accept
the same free slot; the store's insert_booking is what reserves it.
"""

import logging
from datetime import datetime, timedelta

from ...schemas.bookings import BookingRequest, RejectionCode, ValidationResult
from ...utils.clock import combine, intervals_overlap, time_str_to_minutes
from .availability import AvailabilityResolver
from .errors import ConfigurationError
from .policy import PolicyStore
from .store import BookingStore

logger = logging.getLogger(__name__)


class BookingValidator:
    def __init__(
        self,
        policy_store: PolicyStore,
        store: BookingStore,
        resolver: AvailabilityResolver,
    ):
        self.policy_store = policy_store
        self.store = store
        self.resolver = resolver

    def validate(self, request: BookingRequest, now: datetime) -> ValidationResult:
        policy = self.policy_store.get_policy()

        # Step 1: Online booking switch
        if not policy.allow_online_booking:
            return ValidationResult.reject(
                RejectionCode.ONLINE_BOOKING_DISABLED,
                self.policy_store.limits_message(),
            )

        # Step 2-5: Temporal policy
        booking_instant = combine(request.date, request.start_time)

        if booking_instant < now + timedelta(hours=policy.min_advance_hours):
            return ValidationResult.reject(
                RejectionCode.TOO_SOON,
                f"You must book at least {policy.min_advance_hours} hours in advance.",
            )

        if booking_instant > now + timedelta(days=policy.max_advance_days):
            return ValidationResult.reject(
                RejectionCode.TOO_FAR,
                f"You cannot book more than {policy.max_advance_days} days in advance.",
            )

        if booking_instant < now:
            return ValidationResult.reject(
                RejectionCode.PAST_DATE,
                "You cannot book a date in the past.",
            )

        # Step 6: Service
        service = self.store.find_service_by_id(request.service_id)
        if service is None or not service.is_active:
            return ValidationResult.reject(
                RejectionCode.SERVICE_NOT_FOUND,
                "Service not found or not available.",
            )

        # Step 7: Service windows, then staff, their working hours and blocks
        try:
            check = self.resolver.is_slot_available(service, request.date, request.start_time)
            if not check.available:
                return ValidationResult.reject(check.code, check.reason)

            staff = self.store.find_staff_by_id(request.staff_id)
            if staff is None or not staff.is_active:
                return ValidationResult.reject(
                    RejectionCode.STAFF_NOT_FOUND,
                    "Staff member not found or not available.",
                )

            check = self.resolver.is_staff_working(
                staff, request.date, request.start_time, service.duration_min
            )
            if not check.available:
                return ValidationResult.reject(check.code, check.reason)

            check = self.resolver.is_staff_blocked(
                staff, request.date, request.start_time, service.duration_min
            )
            if not check.available:
                return ValidationResult.reject(check.code, check.reason)
        except ConfigurationError as e:
            logger.error(f"Booking rejected on configuration error: {e}")
            return ValidationResult.reject(
                RejectionCode.CONFIGURATION_ERROR,
                f"{e}. Please contact the clinic.",
            )

        # Step 8: Overlap with existing bookings
        request_start = time_str_to_minutes(request.start_time)
        request_end = request_start + service.duration_min

        existing = self.store.find_bookings_by_staff_and_date(
            request.staff_id, request.date, exclude_cancelled=True
        )
        for booking in existing:
            if intervals_overlap(
                request_start,
                request_end,
                time_str_to_minutes(booking.start_time),
                time_str_to_minutes(booking.end_time),
            ):
                return ValidationResult.reject(
                    RejectionCode.SLOT_CONFLICT,
                    f"The slot overlaps an existing appointment "
                    f"({booking.start_time}-{booking.end_time}).",
                )

        # Step 9: Accept
        return ValidationResult.accept(self.resolver.end_time_for(service, request.start_time))
