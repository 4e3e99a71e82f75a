# backend/clinic_booking/routers/reminders.py
"""
Reminder operator endpoints (stats, manual send/reset for testing).
"""

from datetime import datetime

from fastapi import APIRouter, Depends

from ..dependencies import get_now, get_reminder_scheduler
from ..schemas.reminders import ManualReminderResponse, ReminderStats, ScanReport
from ..services.reminder_checker import ReminderScheduler

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("/stats", response_model=ReminderStats)
def get_reminder_stats(
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
    now: datetime = Depends(get_now),
):
    return scheduler.get_stats(now)


@router.post("/scan", response_model=ScanReport)
def run_reminder_scan(
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
    now: datetime = Depends(get_now),
):
    """Run one scan now, outside the schedule."""
    return scheduler.scan(now)


@router.post("/{booking_id}/send", response_model=ManualReminderResponse)
def send_manual_reminder(
    booking_id: int,
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    scheduler.send_manual_reminder(booking_id)
    return ManualReminderResponse(booking_id=booking_id, reminder_sent=True)


@router.post("/{booking_id}/reset", response_model=ManualReminderResponse)
def reset_reminder_status(
    booking_id: int,
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    scheduler.reset_reminder_status(booking_id)
    return ManualReminderResponse(booking_id=booking_id, reminder_sent=False)
