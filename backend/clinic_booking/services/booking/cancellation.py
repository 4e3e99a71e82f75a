# backend/clinic_booking/services/booking/cancellation.py

import math
from datetime import datetime

from ...schemas.bookings import CancellationCheck
from .policy import PolicyStore


class CancellationPolicy:
    """Free-cancellation decision. Side-effect free."""

    def __init__(self, policy_store: PolicyStore):
        self.policy_store = policy_store

    def can_cancel_free(self, booking_instant: datetime, now: datetime) -> CancellationCheck:
        policy = self.policy_store.get_policy()

        hours_until = (booking_instant - now).total_seconds() / 3600
        hours_remaining = math.floor(hours_until)

        if hours_remaining >= policy.cancellation_hours:
            return CancellationCheck(can_cancel=True, hours_remaining=hours_remaining)

        return CancellationCheck(
            can_cancel=False,
            hours_remaining=hours_remaining,
            reason=(
                f"Free cancellation is only allowed up to "
                f"{policy.cancellation_hours} hours before the appointment."
            ),
        )
