"""
Booking reminder scheduler.

Periodically looks for CONFIRMED bookings dated inside the reminder window
(the calendar day of now + reminder_hours, i.e. "tomorrow" by default) that
have not been reminded yet, sends one reminder per booking and records it.

Guarantees:
- per booking: send, then mark reminder_sent; a failed send is logged and
  retried on the next scan (at-least-once, duplicates bounded to the window
  between a send and its mark)
- one bad booking never aborts the sweep
- scans of one scheduler never overlap; a tick that finds the previous scan
  still running is skipped and logged as degraded
- with Redis, each booking is claimed (SET NX) before sending so that several
  instances do not remind the same booking

Runs as an asyncio task owned by the application lifespan. Scans use the
synchronous store and notifier via asyncio.to_thread.
"""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from redis import Redis
from redis.exceptions import RedisError

from ..schemas.reminders import ReminderCandidate, ReminderStats, ScanReport
from .booking.config import reminder_window
from .booking.errors import BookingNotFound, NotificationFailure
from .booking.policy import PolicyStore
from .booking.store import BookingStore
from .notifications import Notifier

logger = logging.getLogger(__name__)

CHECK_INTERVAL = 60 * 60  # seconds between scans
CLAIM_KEY_TTL = 86400  # 24 hours; a claimed booking is not re-sent by other instances
SHUTDOWN_GRACE_SECONDS = 30  # how long stop() waits for an in-flight scan


class ReminderScheduler:
    def __init__(
        self,
        store: BookingStore,
        notifier: Notifier,
        policy_store: PolicyStore,
        interval_seconds: float = CHECK_INTERVAL,
        redis: Optional[Redis] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.notifier = notifier
        self.policy_store = policy_store
        self.interval_seconds = interval_seconds
        self.redis = redis
        self.clock = clock

        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._scan_lock = threading.Lock()

    # ── Lifecycle ────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        """
        Scan now, then every interval_seconds.

        Must be called from a running event loop. No-op if already running.
        """
        if self.running:
            return
        logger.info(f"reminder scheduler started (every {self.interval_seconds}s)")
        self._loop_task = asyncio.create_task(self._run())

    async def stop(self, timeout: float = SHUTDOWN_GRACE_SECONDS) -> None:
        """
        Stop scheduling new scans.

        An in-flight scan gets up to timeout seconds to finish. After that
        stop() returns and the scan thread is left to end on its own.
        """
        task, self._loop_task = self._loop_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("reminder scheduler stopped")

        inflight, self._inflight = self._inflight, None
        if inflight is not None and not inflight.done():
            try:
                await asyncio.wait_for(asyncio.shield(inflight), timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"reminder scan still running {timeout}s after shutdown, "
                    "not waiting for it (degraded)"
                )

    async def _run(self) -> None:
        while True:
            self._tick()
            await asyncio.sleep(self.interval_seconds)

    def _tick(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            logger.warning(
                "reminder scan still running after "
                f"{self.interval_seconds}s, skipping this cycle (degraded)"
            )
            return
        self._inflight = asyncio.create_task(self._scan_in_thread())

    async def _scan_in_thread(self) -> None:
        try:
            await asyncio.to_thread(self.scan)
        except Exception:
            logger.exception("reminder scan error")

    # ── Scan ─────────────────────────────────────────────────────────────

    def scan(self, now: Optional[datetime] = None) -> ScanReport:
        """Send due reminders once. Safe to call directly (e.g. from tests)."""
        if not self._scan_lock.acquire(blocking=False):
            logger.warning("reminder scan already in progress, skipping")
            return ScanReport(busy=True)
        try:
            return self._scan(now or self.clock())
        finally:
            self._scan_lock.release()

    def _scan(self, now: datetime) -> ScanReport:
        policy = self.policy_store.get_policy()
        if not policy.send_reminder_email:
            logger.info("reminder e-mails disabled by booking policy")
            return ScanReport(disabled=True)

        start, end = reminder_window(now, policy.reminder_hours)
        candidates = self.store.find_candidate_reminders_in_window(start, end)
        report = ScanReport(candidates=len(candidates))

        logger.info(
            f"Found {len(candidates)} bookings needing reminders "
            f"for {start.date().isoformat()}"
        )

        for candidate in candidates:
            try:
                outcome = self._process_single_booking(candidate)
            except Exception:
                logger.exception(
                    f"Error processing booking {candidate.booking.id} for reminder"
                )
                outcome = "failed"

            if outcome == "sent":
                report.sent += 1
            elif outcome == "skipped":
                report.skipped += 1
            else:
                report.failed += 1

        return report

    def _process_single_booking(self, candidate: ReminderCandidate) -> str:
        """Claim, send and mark a single booking. Returns sent/skipped/failed."""
        booking_id = candidate.booking.id

        if not self._claim(booking_id):
            logger.info(f"booking {booking_id} reminder claimed elsewhere, skipping")
            return "skipped"

        try:
            delivered = self.notifier.send_reminder(candidate.recipient, candidate)
            if not delivered:
                raise NotificationFailure(f"Notifier refused reminder for booking {booking_id}")
        except Exception as e:
            self._release(booking_id)
            logger.error(f"Failed to send reminder for booking {booking_id}: {e}")
            return "failed"

        if not self.store.mark_reminder_sent(booking_id):
            logger.warning(f"booking {booking_id} was already marked as reminded")

        logger.info(
            f"booking_reminder sent for booking={booking_id} "
            f"(starts {candidate.booking.date.isoformat()} {candidate.booking.start_time})"
        )
        return "sent"

    # ── Multi-instance claim ─────────────────────────────────────────────

    @staticmethod
    def _claim_key(booking_id: int) -> str:
        return f"bkremind:claim:{booking_id}"

    def _claim(self, booking_id: int) -> bool:
        if self.redis is None:
            return True
        try:
            return bool(self.redis.set(self._claim_key(booking_id), "1", nx=True, ex=CLAIM_KEY_TTL))
        except RedisError as e:
            # Single-instance idempotence still holds through reminder_sent
            logger.warning(f"reminder claim unavailable for booking {booking_id}: {e}")
            return True

    def _release(self, booking_id: int) -> None:
        if self.redis is None:
            return
        try:
            self.redis.delete(self._claim_key(booking_id))
        except RedisError as e:
            logger.warning(f"Failed to release reminder claim for booking {booking_id}: {e}")

    # ── Stats & manual operations ────────────────────────────────────────

    def get_stats(self, now: Optional[datetime] = None) -> ReminderStats:
        policy = self.policy_store.get_policy()
        start, end = reminder_window(now or self.clock(), policy.reminder_hours)
        total, sent = self.store.count_reminders_in_window(start, end)
        return ReminderStats(
            total_bookings=total,
            reminders_sent=sent,
            pending_reminders=total - sent,
        )

    def send_manual_reminder(self, booking_id: int) -> None:
        """
        Send a reminder now, whatever the booking's state, and mark it.

        Raises:
            BookingNotFound: unknown booking
            NotificationFailure: the notifier could not deliver
        """
        candidate = self.store.find_reminder_candidate(booking_id)
        if candidate is None:
            raise BookingNotFound(f"Booking {booking_id} not found")

        try:
            delivered = self.notifier.send_reminder(candidate.recipient, candidate)
        except NotificationFailure:
            logger.error(f"Failed to send manual reminder for booking {booking_id}")
            raise
        if not delivered:
            raise NotificationFailure(f"Notifier refused reminder for booking {booking_id}")

        self.store.mark_reminder_sent(booking_id)
        logger.info(f"Manual reminder sent for booking {booking_id}")

    def reset_reminder_status(self, booking_id: int) -> None:
        """
        Clear reminder_sent so the next scan picks the booking up again.

        Raises:
            BookingNotFound: unknown booking
        """
        if not self.store.reset_reminder_sent(booking_id):
            raise BookingNotFound(f"Booking {booking_id} not found")
        self._release(booking_id)
        logger.info(f"Reminder status reset for booking {booking_id}")
