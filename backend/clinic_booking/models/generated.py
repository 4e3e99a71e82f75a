from sqlalchemy import Column, Enum, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


BOOKING_STATUSES = ("PENDING", "CONFIRMED", "CANCELLED", "COMPLETED")


class Users(Base):
    __tablename__ = 'users'

    email = Column(Text, nullable=False, unique=True)
    first_name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    last_name = Column(Text)
    phone = Column(Text)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    bookings = relationship('Bookings', back_populates='user')


class Services(Base):
    __tablename__ = 'services'

    name = Column(Text, nullable=False)
    duration_min = Column(Integer, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    description = Column(Text)
    # JSON: {"monday": {"enabled": true, "timeSlots": [{"start": "09:00", "end": "12:00"}]}, ...}
    availability = Column(Text)

    bookings = relationship('Bookings', back_populates='service')


class Staff(Base):
    __tablename__ = 'staff'

    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    user_id = Column(ForeignKey('users.id', ondelete='SET NULL'), unique=True)
    # JSON: {"monday": {"isWorking": true, "startTime": "09:00", "endTime": "17:00"}, ...}
    working_hours = Column(Text)

    bookings = relationship('Bookings', back_populates='staff')
    blocks = relationship('StaffBlocks', back_populates='staff')


class StudioSettings(Base):
    __tablename__ = 'studio_settings'

    id = Column(Integer, primary_key=True)
    booking_settings = Column(Text)
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_staff_date', 'staff_id', 'date'),
        Index('ix_bookings_reminder', 'status', 'reminder_sent', 'date'),
    )

    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id'), nullable=False)
    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'), nullable=False)
    date = Column(Text, nullable=False)  # YYYY-MM-DD
    start_time = Column(Text, nullable=False)  # HH:MM
    end_time = Column(Text, nullable=False)  # HH:MM, always start_time + service duration
    status = Column(Enum(*BOOKING_STATUSES, name='booking_status'), nullable=False, server_default=text("'PENDING'"))
    reminder_sent = Column(Integer, nullable=False, server_default=text('0'))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    id = Column(Integer, primary_key=True)
    notes = Column(Text)

    user = relationship('Users', back_populates='bookings')
    service = relationship('Services', back_populates='bookings')
    staff = relationship('Staff', back_populates='bookings')


STAFF_BLOCK_TYPES = ("VACATION", "SICK_LEAVE", "TRAINING", "OTHER")


class StaffBlocks(Base):
    __tablename__ = 'staff_blocks'
    __table_args__ = (
        Index('ix_staff_blocks_staff_dates', 'staff_id', 'start_date', 'end_date'),
    )

    id = Column(Integer, primary_key=True)
    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'), nullable=False)
    start_date = Column(Text, nullable=False)  # YYYY-MM-DD
    end_date = Column(Text, nullable=False)  # YYYY-MM-DD, inclusive
    start_time = Column(Text, nullable=False)  # HH:MM on start_date
    end_time = Column(Text, nullable=False)  # HH:MM on end_date
    reason = Column(Text)
    type = Column(Enum(*STAFF_BLOCK_TYPES, name='staff_block_type'), nullable=False, server_default=text("'OTHER'"))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    staff = relationship('Staff', back_populates='blocks')
