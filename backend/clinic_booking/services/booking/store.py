# backend/clinic_booking/services/booking/store.py
"""
Storage collaborator.

BookingStore is the contract the engine needs from the relational store;
SqlBookingStore implements it on SQLAlchemy.

No double booking is enforced here, not in the validator:
insert_booking re-checks overlap inside the insert transaction with the
staff row locked, so two requests that both passed validation cannot both
reserve the same interval.
"""

import logging
from datetime import date, datetime
from typing import Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from ...models.generated import Bookings, Services, Staff, StaffBlocks, StudioSettings, Users
from ...schemas.availability import StaffBlock
from ...schemas.bookings import BookingRead, BookingStatus, ServiceRecord, StaffRecord
from ...schemas.reminders import Recipient, ReminderCandidate
from ...utils.clock import intervals_overlap, time_str_to_minutes
from .errors import BookingNotFound, ConfigurationError, SlotConflictError

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    def find_bookings_by_staff_and_date(
        self, staff_id: int, day: date, exclude_cancelled: bool = True
    ) -> list[BookingRead]: ...

    def find_booking_by_id(self, booking_id: int) -> Optional[BookingRead]: ...

    def find_service_by_id(self, service_id: int) -> Optional[ServiceRecord]: ...

    def find_staff_by_id(self, staff_id: int) -> Optional[StaffRecord]: ...

    def find_staff_blocks(self, staff_id: int, day: date) -> list[StaffBlock]: ...

    def insert_booking(
        self,
        user_id: int,
        service_id: int,
        staff_id: int,
        day: date,
        start_time: str,
        end_time: str,
        notes: Optional[str] = None,
    ) -> BookingRead: ...

    def update_booking_status(self, booking_id: int, status: BookingStatus) -> BookingRead: ...

    def find_candidate_reminders_in_window(
        self, start: datetime, end: datetime
    ) -> list[ReminderCandidate]: ...

    def find_reminder_candidate(self, booking_id: int) -> Optional[ReminderCandidate]: ...

    def mark_reminder_sent(self, booking_id: int) -> bool: ...

    def reset_reminder_sent(self, booking_id: int) -> bool: ...

    def count_reminders_in_window(self, start: datetime, end: datetime) -> tuple[int, int]: ...


class SettingsSource(Protocol):
    def get_booking_policy(self) -> Optional[str]: ...


def _iso(day: date) -> str:
    return day.isoformat()


def _now_str() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class SqlBookingStore:
    """BookingStore and SettingsSource on a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    # ── Reads ────────────────────────────────────────────────────────────

    def find_bookings_by_staff_and_date(
        self,
        staff_id: int,
        day: date,
        exclude_cancelled: bool = True,
    ) -> list[BookingRead]:
        with self.session_factory() as db:
            rows = _staff_day_bookings(db, staff_id, day, exclude_cancelled)
            return [BookingRead.model_validate(row) for row in rows]

    def find_booking_by_id(self, booking_id: int) -> Optional[BookingRead]:
        with self.session_factory() as db:
            obj = db.get(Bookings, booking_id)
            return BookingRead.model_validate(obj) if obj else None

    def find_service_by_id(self, service_id: int) -> Optional[ServiceRecord]:
        with self.session_factory() as db:
            obj = db.get(Services, service_id)
            return ServiceRecord.model_validate(obj) if obj else None

    def find_staff_by_id(self, staff_id: int) -> Optional[StaffRecord]:
        with self.session_factory() as db:
            obj = db.get(Staff, staff_id)
            return StaffRecord.model_validate(obj) if obj else None

    def find_staff_blocks(self, staff_id: int, day: date) -> list[StaffBlock]:
        """
        Active blocks of staff covering day.

        Raises:
            ConfigurationError: a stored block is malformed
        """
        with self.session_factory() as db:
            rows = (
                db.query(StaffBlocks)
                .filter(
                    StaffBlocks.staff_id == staff_id,
                    StaffBlocks.is_active == 1,
                    StaffBlocks.start_date <= _iso(day),
                    StaffBlocks.end_date >= _iso(day),
                )
                .order_by(StaffBlocks.start_date, StaffBlocks.start_time)
                .all()
            )
            blocks = []
            for row in rows:
                try:
                    blocks.append(StaffBlock.model_validate(row))
                except ValidationError as e:
                    logger.error(f"Malformed staff block {row.id}: {e}")
                    raise ConfigurationError(f"Staff block {row.id} is malformed") from e
            return blocks

    def get_booking_policy(self) -> Optional[str]:
        with self.session_factory() as db:
            row = db.execute(
                select(StudioSettings).order_by(StudioSettings.id.desc()).limit(1)
            ).scalar_one_or_none()
            return row.booking_settings if row else None

    # ── Writes ───────────────────────────────────────────────────────────

    def insert_booking(
        self,
        user_id: int,
        service_id: int,
        staff_id: int,
        day: date,
        start_time: str,
        end_time: str,
        notes: Optional[str] = None,
    ) -> BookingRead:
        """
        Insert a PENDING booking unless it overlaps an active one.

        The staff row is locked for the duration of the transaction
        (SELECT ... FOR UPDATE; on SQLite the whole transaction holds the
        write lock from BEGIN IMMEDIATE, see database.make_engine), so the
        overlap check and the insert are atomic per staff member.
        """
        req_start = time_str_to_minutes(start_time)
        req_end = time_str_to_minutes(end_time)

        with self.session_factory() as db:
            with db.begin():
                db.execute(
                    select(Staff.id).where(Staff.id == staff_id).with_for_update()
                )
                for existing in _staff_day_bookings(db, staff_id, day, True):
                    if intervals_overlap(
                        req_start,
                        req_end,
                        time_str_to_minutes(existing.start_time),
                        time_str_to_minutes(existing.end_time),
                    ):
                        logger.warning(
                            f"insert refused, staff {staff_id} has booking {existing.id} "
                            f"at {existing.start_time}-{existing.end_time} on {_iso(day)}"
                        )
                        raise SlotConflictError(
                            f"Staff {staff_id} already booked {existing.start_time}-"
                            f"{existing.end_time} on {_iso(day)}"
                        )

                obj = Bookings(
                    user_id=user_id,
                    service_id=service_id,
                    staff_id=staff_id,
                    date=_iso(day),
                    start_time=start_time,
                    end_time=end_time,
                    notes=notes,
                    status=BookingStatus.PENDING.value,
                    reminder_sent=0,
                )
                db.add(obj)
                db.flush()
                db.refresh(obj)
                return BookingRead.model_validate(obj)

    def update_booking_status(self, booking_id: int, status: BookingStatus) -> BookingRead:
        with self.session_factory() as db:
            with db.begin():
                obj = db.get(Bookings, booking_id)
                if obj is None:
                    raise BookingNotFound(f"Booking {booking_id} not found")
                obj.status = BookingStatus(status).value
                obj.updated_at = _now_str()
                db.flush()
                return BookingRead.model_validate(obj)

    # ── Reminders ────────────────────────────────────────────────────────

    def find_candidate_reminders_in_window(
        self,
        start: datetime,
        end: datetime,
    ) -> list[ReminderCandidate]:
        """CONFIRMED bookings dated inside [start, end] without a reminder yet."""
        with self.session_factory() as db:
            rows = (
                db.query(Bookings, Users, Services, Staff)
                .join(Users, Bookings.user_id == Users.id)
                .join(Services, Bookings.service_id == Services.id)
                .join(Staff, Bookings.staff_id == Staff.id)
                .filter(
                    Bookings.status == BookingStatus.CONFIRMED.value,
                    Bookings.reminder_sent == 0,
                    Bookings.date >= _iso(start.date()),
                    Bookings.date <= _iso(end.date()),
                )
                .order_by(Bookings.date, Bookings.start_time, Bookings.id)
                .all()
            )
            return [_candidate(*row) for row in rows]

    def find_reminder_candidate(self, booking_id: int) -> Optional[ReminderCandidate]:
        with self.session_factory() as db:
            row = (
                db.query(Bookings, Users, Services, Staff)
                .join(Users, Bookings.user_id == Users.id)
                .join(Services, Bookings.service_id == Services.id)
                .join(Staff, Bookings.staff_id == Staff.id)
                .filter(Bookings.id == booking_id)
                .first()
            )
            return _candidate(*row) if row else None

    def mark_reminder_sent(self, booking_id: int) -> bool:
        """
        Flip reminder_sent false → true.

        Conditional update: returns False when the flag was already set
        (another scan or instance got there first).
        """
        with self.session_factory() as db:
            with db.begin():
                result = db.execute(
                    update(Bookings)
                    .where(Bookings.id == booking_id, Bookings.reminder_sent == 0)
                    .values(reminder_sent=1, updated_at=_now_str())
                )
                return result.rowcount == 1

    def reset_reminder_sent(self, booking_id: int) -> bool:
        with self.session_factory() as db:
            with db.begin():
                result = db.execute(
                    update(Bookings)
                    .where(Bookings.id == booking_id)
                    .values(reminder_sent=0, updated_at=_now_str())
                )
                return result.rowcount == 1

    def count_reminders_in_window(self, start: datetime, end: datetime) -> tuple[int, int]:
        """(confirmed bookings, of which reminded) dated inside [start, end]."""
        with self.session_factory() as db:
            total, sent = db.execute(
                select(
                    func.count(Bookings.id),
                    func.coalesce(func.sum(Bookings.reminder_sent), 0),
                ).where(
                    Bookings.status == BookingStatus.CONFIRMED.value,
                    Bookings.date >= _iso(start.date()),
                    Bookings.date <= _iso(end.date()),
                )
            ).one()
            return int(total), int(sent)


# ── Helpers ──────────────────────────────────────────────────────────────


def _staff_day_bookings(
    db: Session,
    staff_id: int,
    day: date,
    exclude_cancelled: bool,
) -> list[Bookings]:
    query = db.query(Bookings).filter(
        Bookings.staff_id == staff_id,
        Bookings.date == _iso(day),
    )
    if exclude_cancelled:
        query = query.filter(Bookings.status != BookingStatus.CANCELLED.value)
    return query.order_by(Bookings.start_time).all()


def _candidate(booking: Bookings, user: Users, service: Services, staff: Staff) -> ReminderCandidate:
    return ReminderCandidate(
        booking=BookingRead.model_validate(booking),
        recipient=Recipient(user_id=user.id, email=user.email, first_name=user.first_name),
        service_name=service.name,
        staff_name=f"{staff.first_name} {staff.last_name}".strip(),
        duration_min=service.duration_min,
    )
