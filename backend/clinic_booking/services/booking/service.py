# backend/clinic_booking/services/booking/service.py
"""
Booking flows: validate optimistically, reserve atomically.

create_booking() runs the validator against current state and then asks the
store for a conflict-checked insert. A request that loses a race between
the two steps surfaces as SlotConflictError.
"""

import logging
from datetime import date, datetime

from ...schemas.availability import AvailableTimesResponse, BookedSlot
from ...schemas.bookings import (
    BookingRead,
    BookingRequest,
    BookingStatus,
    CancellationCheck,
    ValidationResult,
)
from ...utils.clock import combine
from .availability import AvailabilityResolver
from .cancellation import CancellationPolicy
from .errors import BookingNotFound, CancellationRejected, SlotConflictError, ValidationRejected
from .policy import PolicyStore
from .store import BookingStore
from .validator import BookingValidator

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(
        self,
        store: BookingStore,
        policy_store: PolicyStore,
        resolver: AvailabilityResolver,
    ):
        self.store = store
        self.policy_store = policy_store
        self.resolver = resolver
        self.validator = BookingValidator(policy_store, store, resolver)
        self.cancellation = CancellationPolicy(policy_store)

    def validate(self, request: BookingRequest, now: datetime) -> ValidationResult:
        return self.validator.validate(request, now)

    def create_booking(
        self,
        user_id: int,
        request: BookingRequest,
        now: datetime,
    ) -> BookingRead:
        """
        Validate and reserve a booking.

        Raises:
            ValidationRejected: the request breaks a policy or availability rule
            SlotConflictError: the slot was taken after validation
        """
        result = self.validator.validate(request, now)
        if not result.accepted:
            logger.info(
                f"Booking rejected for user={user_id} staff={request.staff_id} "
                f"{request.date} {request.start_time}: {result.code.value}"
            )
            raise ValidationRejected(result.reason, code=result.code.value)

        try:
            booking = self.store.insert_booking(
                user_id=user_id,
                service_id=request.service_id,
                staff_id=request.staff_id,
                day=request.date,
                start_time=request.start_time,
                end_time=result.end_time,
                notes=request.notes,
            )
        except SlotConflictError:
            logger.warning(
                f"Slot taken concurrently: staff={request.staff_id} "
                f"{request.date} {request.start_time}"
            )
            raise

        logger.info(
            f"Booking {booking.id} created: staff={booking.staff_id} "
            f"{booking.date} {booking.start_time}-{booking.end_time}"
        )
        return booking

    def confirm_booking(self, booking_id: int) -> BookingRead:
        booking = self.store.find_booking_by_id(booking_id)
        if booking is None or booking.status == BookingStatus.CANCELLED:
            raise BookingNotFound(f"Booking {booking_id} not found or cancelled")
        if booking.status == BookingStatus.CONFIRMED:
            return booking
        return self.store.update_booking_status(booking_id, BookingStatus.CONFIRMED)

    def check_cancellation(self, booking: BookingRead, now: datetime) -> CancellationCheck:
        return self.cancellation.can_cancel_free(
            combine(booking.date, booking.start_time), now
        )

    def cancel_booking(self, booking_id: int, user_id: int, now: datetime) -> BookingRead:
        """
        Cancel a booking of user_id outside the cancellation window.

        Raises:
            BookingNotFound: no such active booking for this user
            CancellationRejected: inside the cancellation window
        """
        booking = self.store.find_booking_by_id(booking_id)
        if (
            booking is None
            or booking.user_id != user_id
            or booking.status == BookingStatus.CANCELLED
        ):
            raise BookingNotFound(f"Booking {booking_id} not found or already cancelled")

        check = self.check_cancellation(booking, now)
        if not check.can_cancel:
            raise CancellationRejected(check.reason, hours_remaining=check.hours_remaining)

        cancelled = self.store.update_booking_status(booking_id, BookingStatus.CANCELLED)
        logger.info(f"Booking {booking_id} cancelled ({check.hours_remaining}h before start)")
        return cancelled

    def booked_slots(self, staff_id: int, day: date) -> list[BookedSlot]:
        return self.resolver.compute_booked_slots(staff_id, day)

    def available_times(self, service_id: int, staff_id: int, day: date) -> AvailableTimesResponse:
        """
        Bookable start times for service with staff on day.

        Raises:
            BookingNotFound: unknown or inactive service/staff
            ConfigurationError: malformed schedule
        """
        service = self.store.find_service_by_id(service_id)
        if service is None or not service.is_active:
            raise BookingNotFound(f"Service {service_id} not found")
        staff = self.store.find_staff_by_id(staff_id)
        if staff is None or not staff.is_active:
            raise BookingNotFound(f"Staff {staff_id} not found")

        return AvailableTimesResponse(
            service_id=service_id,
            staff_id=staff_id,
            date=day,
            service_duration_min=service.duration_min,
            slot_step_minutes=self.resolver.grid.step_minutes,
            available_times=self.resolver.available_start_times(service, staff, day),
        )
