# backend/clinic_booking/routers/bookings.py
"""
Booking endpoints.

Thin adapter over BookingService; user ids come from the (external) auth
layer in the request body.
"""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..dependencies import get_booking_service, get_now, get_policy_store
from ..schemas.availability import AvailableTimesResponse, BookedSlotsResponse
from ..schemas.bookings import (
    BookingCancel,
    BookingCreate,
    BookingRead,
    BookingRequest,
    CancellationCheck,
    ValidationResult,
)
from ..schemas.settings import BookingLimitsResponse
from ..services.booking import BookingNotFound, BookingService, PolicyStore

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/limits", response_model=BookingLimitsResponse)
def get_booking_limits(
    policy_store: PolicyStore = Depends(get_policy_store),
    now: datetime = Depends(get_now),
):
    """Current booking policy, its human-readable summary and bookable window."""
    return BookingLimitsResponse(
        message=policy_store.limits_message(),
        window=policy_store.booking_window(now),
        policy=policy_store.get_policy(),
    )


@router.post("/limits/refresh", response_model=BookingLimitsResponse)
def refresh_booking_limits(
    policy_store: PolicyStore = Depends(get_policy_store),
    now: datetime = Depends(get_now),
):
    """Drop the cached policy after the settings were changed (admin endpoint)."""
    policy = policy_store.refresh()
    return BookingLimitsResponse(
        message=policy_store.limits_message(),
        window=policy_store.booking_window(now),
        policy=policy,
    )


@router.get("/availability/{staff_id}/{target_date}", response_model=BookedSlotsResponse)
def get_booked_slots(
    staff_id: int,
    target_date: date,
    service: BookingService = Depends(get_booking_service),
):
    """Occupied intervals of a staff member on a date."""
    return BookedSlotsResponse(
        staff_id=staff_id,
        date=target_date,
        booked_slots=service.booked_slots(staff_id, target_date),
    )


@router.get("/slots", response_model=AvailableTimesResponse)
def get_available_times(
    service_id: int,
    staff_id: int,
    target_date: date = Query(..., alias="date"),
    service: BookingService = Depends(get_booking_service),
):
    """Bookable start times for a service with a staff member on a date."""
    return service.available_times(service_id, staff_id, target_date)


@router.post("/validate", response_model=ValidationResult)
def validate_booking(
    data: BookingRequest,
    service: BookingService = Depends(get_booking_service),
    now: datetime = Depends(get_now),
):
    return service.validate(data, now)


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    now: datetime = Depends(get_now),
):
    request = BookingRequest.model_validate(data.model_dump(exclude={"user_id"}))
    return service.create_booking(data.user_id, request, now)


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, service: BookingService = Depends(get_booking_service)):
    obj = service.store.find_booking_by_id(id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/{id}/confirm", response_model=BookingRead)
def confirm_booking(id: int, service: BookingService = Depends(get_booking_service)):
    return service.confirm_booking(id)


@router.get("/{id}/cancellation", response_model=CancellationCheck)
def get_cancellation_check(
    id: int,
    service: BookingService = Depends(get_booking_service),
    now: datetime = Depends(get_now),
):
    booking = service.store.find_booking_by_id(id)
    if not booking:
        raise BookingNotFound(f"Booking {id} not found")
    return service.check_cancellation(booking, now)


@router.post("/{id}/cancel", response_model=BookingRead)
def cancel_booking(
    id: int,
    data: BookingCancel,
    service: BookingService = Depends(get_booking_service),
    now: datetime = Depends(get_now),
):
    return service.cancel_booking(id, data.user_id, now)
