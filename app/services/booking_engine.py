"""
Booking engine: validates requests against role rules, detects conflicts with
APPROVED bookings, applies admin override and computes daily availability.

Conflicts use half-open intervals: [09:00, 10:00) and [10:00, 11:00) do not
overlap. Only APPROVED bookings ever block a request; PENDING ones do not.

Every write that can create or remove an APPROVED booking runs while holding
the (resource, date) lock. Approval and admin override additionally go through
the store's conditional writes, so APPROVED bookings for one resource and date
never overlap even across processes that do not share the lock.
"""

from dataclasses import dataclass
from datetime import date, time
import logging
from typing import List, Optional

from app.config import settings
from app.enums import BookingStatus, ResourceStatus, Role
from app.exceptions import (
    BookingNotFoundException,
    DailyLimitExceededException,
    DurationExceededException,
    InvalidResourceException,
    InvalidStatusTransitionException,
    InvalidTimeRangeException,
    PermissionDeniedException,
    ResourceNotFoundException,
    SlotUnavailableException,
    UserNotFoundException,
)
from app.locks import KeyedLocks, booking_locks, resource_day_key, user_day_key
from app.models import Booking, User, minutes_between
from app.repositories import BookingStore, ResourceStore, UserStore
from app.services.availability import TimeSlot, compute_slots

logger = logging.getLogger(__name__)

ADMIN_OVERRIDE_REASON = "Overridden by admin booking"
DEFAULT_REJECTION_REASON = "Rejected by admin"


@dataclass(frozen=True)
class BookingView:
    id: str
    user_id: str
    user_name: str
    user_email: str
    user_role: str
    resource_id: str
    booking_date: date
    start_time: time
    end_time: time
    status: str
    rejection_reason: Optional[str]
    duration: int


class BookingEngine:
    def __init__(
        self,
        users: UserStore,
        resources: ResourceStore,
        bookings: BookingStore,
        locks: Optional[KeyedLocks] = None,
        student_max_minutes: Optional[int] = None,
        staff_max_minutes: Optional[int] = None,
    ):
        self.users = users
        self.resources = resources
        self.bookings = bookings
        self.locks = locks if locks is not None else booking_locks
        self.student_max_minutes = (
            student_max_minutes if student_max_minutes is not None else settings.student_max_minutes
        )
        self.staff_max_minutes = (
            staff_max_minutes if staff_max_minutes is not None else settings.staff_max_minutes
        )

    # Creation

    def create_booking(
        self,
        email: str,
        resource_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
    ) -> Booking:
        """
        Create a booking for the user identified by ``email``.

        Students and staff get a PENDING booking that an admin must approve.
        Admin bookings are APPROVED at once and demote every overlapping
        APPROVED booking to OVERRIDDEN.
        """
        user = self._user(email)
        # Stored times are naive wall-clock times of the campus
        if start_time.tzinfo is not None or end_time.tzinfo is not None:
            raise InvalidTimeRangeException(
                start_time, end_time, message="Times must not carry a UTC offset"
            )
        if not start_time < end_time:
            raise InvalidTimeRangeException(start_time, end_time)
        duration = minutes_between(start_time, end_time)

        keys = [resource_day_key(resource_id, booking_date)]
        if user.role is Role.STUDENT:
            keys.append(user_day_key(user.id, booking_date))

        with self.locks.hold(*keys):
            self._check_role_rules(user, booking_date, duration)
            self._check_resource(resource_id)

            booking = Booking(
                user_id=user.id,
                resource_id=resource_id,
                booking_date=booking_date,
                start_time=start_time,
                end_time=end_time,
            )

            if user.role is Role.ADMIN:
                # Demotions and the new approval commit together
                demoted = self.bookings.override_and_insert(booking, ADMIN_OVERRIDE_REASON)
                for other_id in demoted:
                    logger.info(
                        "booking_overridden",
                        extra={"booking_id": other_id, "overridden_by": booking.id},
                    )
            else:
                conflicts = self._conflicts(resource_id, booking_date, start_time, end_time)
                if conflicts:
                    logger.info(
                        "booking_slot_unavailable",
                        extra={
                            "resource_id": resource_id,
                            "booking_date": booking_date.isoformat(),
                            "conflicts": [b.id for b in conflicts],
                        },
                    )
                    raise SlotUnavailableException([b.id for b in conflicts])
                booking.status = BookingStatus.PENDING
                booking = self.bookings.save(booking)

        logger.info(
            "booking_created",
            extra={
                "booking_id": booking.id,
                "user_id": user.id,
                "role": user.role.value,
                "status": booking.status.value,
            },
        )
        return booking

    def _check_role_rules(self, user: User, booking_date: date, duration: int) -> None:
        if user.role is Role.STUDENT:
            if duration > self.student_max_minutes:
                raise DurationExceededException(
                    Role.STUDENT.value, self.student_max_minutes, duration
                )
            active = [
                b
                for b in self.bookings.find_by_user_and_date(user.id, booking_date)
                if b.status.counts_toward_daily_limit
            ]
            if active:
                raise DailyLimitExceededException(booking_date)
        elif user.role is Role.STAFF:
            if duration > self.staff_max_minutes:
                raise DurationExceededException(Role.STAFF.value, self.staff_max_minutes, duration)

    def _check_resource(self, resource_id: str) -> None:
        resource = self.resources.find_by_id(resource_id)
        if resource is None:
            raise ResourceNotFoundException(resource_id)
        if resource.status is ResourceStatus.MAINTENANCE:
            raise InvalidResourceException(
                "Resource is under maintenance", resource_id=resource_id
            )

    def _conflicts(
        self,
        resource_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_id: Optional[str] = None,
    ) -> List[Booking]:
        return [
            b
            for b in self.bookings.find_by_resource_and_date(resource_id, booking_date)
            if b.status == BookingStatus.APPROVED
            and b.id != exclude_id
            and b.overlaps(start_time, end_time)
        ]

    # Admin decisions

    def approve(self, booking_id: str) -> Booking:
        """
        Approve a PENDING booking. Approving an APPROVED booking is a no-op.

        The conflict check is re-run here: two PENDING bookings may overlap,
        and only the first one approved can win the slot.
        """
        booking = self._booking(booking_id)
        with self.locks.hold(resource_day_key(booking.resource_id, booking.booking_date)):
            booking = self._booking(booking_id)
            if booking.status == BookingStatus.APPROVED:
                return booking
            self._check_transition(booking, BookingStatus.APPROVED, {BookingStatus.PENDING})
            if not self.bookings.approve_if_free(booking.id):
                conflicts = self._conflicts(
                    booking.resource_id,
                    booking.booking_date,
                    booking.start_time,
                    booking.end_time,
                    exclude_id=booking.id,
                )
                raise SlotUnavailableException([b.id for b in conflicts])
        logger.info("booking_approved", extra={"booking_id": booking.id})
        return booking

    def reject(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        booking = self._booking(booking_id)
        with self.locks.hold(resource_day_key(booking.resource_id, booking.booking_date)):
            booking = self._booking(booking_id)
            self._check_transition(
                booking,
                BookingStatus.REJECTED,
                {BookingStatus.PENDING, BookingStatus.APPROVED},
            )
            booking.status = BookingStatus.REJECTED
            booking.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
            booking = self.bookings.save(booking)
        logger.info("booking_rejected", extra={"booking_id": booking.id})
        return booking

    def cancel(self, booking_id: str, email: str) -> Booking:
        """Cancel a PENDING or APPROVED booking. Only its owner or an admin may."""
        user = self._user(email)
        booking = self._booking(booking_id)
        if booking.user_id != user.id and user.role is not Role.ADMIN:
            raise PermissionDeniedException("Only the owner can cancel this booking")
        with self.locks.hold(resource_day_key(booking.resource_id, booking.booking_date)):
            booking = self._booking(booking_id)
            self._check_transition(
                booking,
                BookingStatus.CANCELLED,
                {BookingStatus.PENDING, BookingStatus.APPROVED},
            )
            booking.status = BookingStatus.CANCELLED
            booking = self.bookings.save(booking)
        logger.info("booking_cancelled", extra={"booking_id": booking.id, "by": user.id})
        return booking

    @staticmethod
    def _check_transition(booking: Booking, target: BookingStatus, allowed_from) -> None:
        if booking.status not in allowed_from:
            raise InvalidStatusTransitionException(
                booking.id, booking.status.value, target.value
            )

    # Queries

    def available_slots(self, resource_id: str, booking_date: date) -> List[TimeSlot]:
        return compute_slots(
            self.bookings.find_by_resource_and_date(resource_id, booking_date),
            start_hour=settings.day_start_hour,
            end_hour=settings.day_end_hour,
            slot_minutes=settings.slot_minutes,
        )

    def list_for_user(self, email: str) -> List[BookingView]:
        user = self._user(email)
        return self._views(self.bookings.find_by_user(user.id))

    def list_all(self) -> List[BookingView]:
        return self._views(self.bookings.find_all())

    def list_pending(self) -> List[BookingView]:
        return self._views(self.bookings.find_by_status(BookingStatus.PENDING))

    def _views(self, bookings: List[Booking]) -> List[BookingView]:
        owners = {u.id: u for u in self.users.find_by_ids(b.user_id for b in bookings)}
        views = []
        for b in bookings:
            owner = owners.get(b.user_id)
            views.append(
                BookingView(
                    id=b.id,
                    user_id=b.user_id,
                    user_name=(owner.name or owner.email) if owner else "Unknown User",
                    user_email=owner.email if owner else "unknown@email.com",
                    user_role=owner.role.value if owner else "UNKNOWN",
                    resource_id=b.resource_id,
                    booking_date=b.booking_date,
                    start_time=b.start_time,
                    end_time=b.end_time,
                    status=b.status.value,
                    rejection_reason=b.rejection_reason,
                    duration=b.duration_minutes,
                )
            )
        return views

    # Lookups

    def _user(self, email: str) -> User:
        user = self.users.find_by_email(email)
        if user is None:
            raise UserNotFoundException(email)
        return user

    def _booking(self, booking_id: str) -> Booking:
        booking = self.bookings.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundException(booking_id)
        return booking
