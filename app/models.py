import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
)

from app.db import Base
from app.enums import AccountStatus, BookingStatus, ResourceStatus, Role


def _uuid() -> str:
    return str(uuid.uuid4())


def _enum(enum_cls):
    return Enum(enum_cls, native_enum=False, length=20, validate_strings=True)


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(_enum(Role), nullable=False)
    status = Column(_enum(AccountStatus), nullable=False, default=AccountStatus.ACTIVE)
    failed_attempts = Column(Integer, nullable=False, default=0)
    lock_time = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("failed_attempts >= 0", name="user_failed_attempts_non_negative"),
        CheckConstraint(
            "status != 'LOCKED' OR lock_time IS NOT NULL", name="user_locked_has_lock_time"
        ),
    )

    def __repr__(self) -> str:
        return f"<User {self.email} {self.role.value if self.role else None}>"


class Resource(Base):
    __tablename__ = "resources"
    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    capacity = Column(Integer, nullable=False)
    status = Column(_enum(ResourceStatus), nullable=False, default=ResourceStatus.AVAILABLE)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="resource_capacity_positive"),
    )


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    resource_id = Column(
        String(36), ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(_enum(BookingStatus), nullable=False, default=BookingStatus.PENDING)
    rejection_reason = Column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="booking_time_valid"),
        CheckConstraint(
            "status in ('PENDING','APPROVED','REJECTED','OVERRIDDEN','CANCELLED')",
            name="booking_status_valid",
        ),
        Index("ix_bookings_resource_date", "resource_id", "booking_date"),
        Index("ix_bookings_user_date", "user_id", "booking_date"),
    )

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start_time, self.end_time)

    def overlaps(self, start, end) -> bool:
        """Half-open overlap: touching endpoints do not overlap."""
        return start < self.end_time and end > self.start_time


def minutes_between(start, end) -> int:
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
