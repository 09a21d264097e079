"""
Closed value sets shared by the booking engine and the authentication gate.

Values are stored verbatim in the database, so they double as the wire values
returned by the API.
"""

from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"
    STAFF = "STAFF"

    @classmethod
    def parse(cls, raw: str) -> "Role":
        """
        Normalize an incoming role string ("role_staff", "ROLE_ADMIN", " student ")
        into a Role. Raises ValueError for anything outside the closed set.
        """
        value = (raw or "").strip().upper()
        if value.startswith("ROLE_"):
            value = value[len("ROLE_"):]
        return cls(value)


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    LOCKED = "LOCKED"


class ResourceStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    MAINTENANCE = "MAINTENANCE"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    OVERRIDDEN = "OVERRIDDEN"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_BOOKING_STATUSES

    @property
    def counts_toward_daily_limit(self) -> bool:
        return self not in (BookingStatus.REJECTED, BookingStatus.CANCELLED)


TERMINAL_BOOKING_STATUSES = frozenset(
    {BookingStatus.REJECTED, BookingStatus.OVERRIDDEN, BookingStatus.CANCELLED}
)
