"""
Store ports and their SQLAlchemy implementations.

The booking engine and the authentication gate only see the Protocol shapes
below. Each SQL store commits on every write, so a returned entity is durable.
Three writes are conditional UPDATEs evaluated by the database: they are the
atomic primitives that keep concurrent callers from trampling each other.
"""

from __future__ import annotations

from datetime import date
import logging
from typing import Any, Iterable, List, Optional, Protocol

from sqlalchemy import and_, select, update
from sqlalchemy.orm import Session, aliased

from app.enums import AccountStatus, BookingStatus
from app.models import Booking, Resource, User

logger = logging.getLogger(__name__)


class UserStore(Protocol):
    def find_by_email(self, email: str) -> Optional[User]: ...

    def find_by_id(self, user_id: str) -> Optional[User]: ...

    def find_by_ids(self, user_ids: Iterable[str]) -> List[User]: ...

    def exists_by_email(self, email: str) -> bool: ...

    def save(self, user: User) -> User: ...

    def compare_and_set(
        self,
        user_id: str,
        expected_failed_attempts: int,
        expected_status: AccountStatus,
        **changes: Any,
    ) -> bool: ...

    def refresh(self, user: User) -> User: ...


class ResourceStore(Protocol):
    def find_all(self) -> List[Resource]: ...

    def find_by_id(self, resource_id: str) -> Optional[Resource]: ...

    def save(self, resource: Resource) -> Resource: ...

    def delete_by_id(self, resource_id: str) -> None: ...

    def exists_by_id(self, resource_id: str) -> bool: ...


class BookingStore(Protocol):
    def find_by_resource_and_date(self, resource_id: str, booking_date: date) -> List[Booking]: ...

    def find_by_user_and_date(self, user_id: str, booking_date: date) -> List[Booking]: ...

    def find_by_user(self, user_id: str) -> List[Booking]: ...

    def find_by_status(self, status: BookingStatus) -> List[Booking]: ...

    def find_all(self) -> List[Booking]: ...

    def find_by_id(self, booking_id: str) -> Optional[Booking]: ...

    def save(self, booking: Booking) -> Booking: ...

    def approve_if_free(self, booking_id: str) -> bool: ...

    def override_and_insert(self, booking: Booking, reason: str) -> List[str]: ...


class SqlUserStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def find_by_ids(self, user_ids: Iterable[str]) -> List[User]:
        ids = set(user_ids)
        if not ids:
            return []
        return self.db.query(User).filter(User.id.in_(ids)).all()

    def exists_by_email(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def save(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def compare_and_set(
        self,
        user_id: str,
        expected_failed_attempts: int,
        expected_status: AccountStatus,
        **changes: Any,
    ) -> bool:
        """
        Apply ``changes`` only if the row still holds the lockout fields the
        caller read. Returns False when another writer changed them first.
        """
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                User.failed_attempts == expected_failed_attempts,
                User.status == expected_status,
            )
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        res = self.db.execute(stmt)
        self.db.commit()
        return res.rowcount == 1

    def refresh(self, user: User) -> User:
        self.db.refresh(user)
        return user


class SqlResourceStore:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[Resource]:
        return self.db.query(Resource).order_by(Resource.name).all()

    def find_by_id(self, resource_id: str) -> Optional[Resource]:
        return self.db.get(Resource, resource_id)

    def save(self, resource: Resource) -> Resource:
        self.db.add(resource)
        self.db.commit()
        self.db.refresh(resource)
        return resource

    def delete_by_id(self, resource_id: str) -> None:
        resource = self.db.get(Resource, resource_id)
        if resource is not None:
            self.db.delete(resource)
            self.db.commit()

    def exists_by_id(self, resource_id: str) -> bool:
        return self.db.query(Resource.id).filter(Resource.id == resource_id).first() is not None


class SqlBookingStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_resource_and_date(self, resource_id: str, booking_date: date) -> List[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.resource_id == resource_id, Booking.booking_date == booking_date)
            .order_by(Booking.start_time)
            .all()
        )

    def find_by_user_and_date(self, user_id: str, booking_date: date) -> List[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.user_id == user_id, Booking.booking_date == booking_date)
            .all()
        )

    def find_by_user(self, user_id: str) -> List[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.user_id == user_id)
            .order_by(Booking.booking_date.desc(), Booking.start_time)
            .all()
        )

    def find_by_status(self, status: BookingStatus) -> List[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.status == status)
            .order_by(Booking.booking_date, Booking.start_time)
            .all()
        )

    def find_all(self) -> List[Booking]:
        return (
            self.db.query(Booking)
            .order_by(Booking.booking_date.desc(), Booking.start_time)
            .all()
        )

    def find_by_id(self, booking_id: str) -> Optional[Booking]:
        return self.db.get(Booking, booking_id)

    def save(self, booking: Booking) -> Booking:
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def approve_if_free(self, booking_id: str) -> bool:
        """
        Mark a booking APPROVED in a single statement, guarded by NOT EXISTS on
        any other APPROVED booking for the same resource and date whose
        interval overlaps. Returns False when the guard blocked the update.
        """
        target = self.db.get(Booking, booking_id)
        if target is None:
            return False
        other = aliased(Booking)
        overlapping = (
            select(other.id)
            .where(
                and_(
                    other.resource_id == target.resource_id,
                    other.booking_date == target.booking_date,
                    other.status == BookingStatus.APPROVED,
                    other.id != target.id,
                    other.start_time < target.end_time,
                    other.end_time > target.start_time,
                )
            )
            .exists()
        )
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, ~overlapping)
            .values(status=BookingStatus.APPROVED, rejection_reason=None)
            .execution_options(synchronize_session=False)
        )
        res = self.db.execute(stmt)
        self.db.commit()
        self.db.refresh(target)
        if res.rowcount != 1:
            logger.info("booking_approve_guard_blocked", extra={"booking_id": booking_id})
            return False
        return True

    def override_and_insert(self, booking: Booking, reason: str) -> List[str]:
        """
        Demote every APPROVED booking overlapping ``booking`` to OVERRIDDEN and
        insert ``booking`` as APPROVED, in one transaction. The demotion is a
        single predicate UPDATE, so a booking approved after the caller last
        read the day is still caught. Returns the ids of the demoted bookings.
        """
        stmt = (
            update(Booking)
            .where(
                Booking.resource_id == booking.resource_id,
                Booking.booking_date == booking.booking_date,
                Booking.status == BookingStatus.APPROVED,
                Booking.start_time < booking.end_time,
                Booking.end_time > booking.start_time,
            )
            .values(status=BookingStatus.OVERRIDDEN, rejection_reason=reason)
            .returning(Booking.id)
            .execution_options(synchronize_session=False)
        )
        demoted = list(self.db.execute(stmt).scalars())
        booking.status = BookingStatus.APPROVED
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        return demoted
