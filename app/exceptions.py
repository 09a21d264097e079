"""
Domain exceptions for the campus booking service.

Every failure the booking engine or the authentication gate can produce is one
of the named kinds below. They are expected outcomes of a request, never
retried, and the presentation layer turns them into HTTP responses through
``to_http_exception``.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when request data fails business validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        exc.headers = {"WWW-Authenticate": "Bearer"}
        return exc


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(DomainException):
    """Raised when a requested entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when the request conflicts with persisted state."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a role rule is violated."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class LockedException(DomainException):
    status_code = status.HTTP_423_LOCKED


# Specific kinds


class UserNotFoundException(NotFoundException):
    def __init__(self, email: str):
        super().__init__(
            message="User not found",
            code="USER_NOT_FOUND",
            details={"email": email},
        )


class BookingNotFoundException(NotFoundException):
    def __init__(self, booking_id: str):
        super().__init__(
            message=f"Booking not found with id: {booking_id}",
            code="BOOKING_NOT_FOUND",
            details={"booking_id": booking_id},
        )


class ResourceNotFoundException(NotFoundException):
    def __init__(self, resource_id: str):
        super().__init__(
            message=f"Resource not found with id: {resource_id}",
            code="RESOURCE_NOT_FOUND",
            details={"resource_id": resource_id},
        )


class InvalidTimeRangeException(ValidationException):
    def __init__(self, start: Any, end: Any, message: str = "End time must be after start time"):
        super().__init__(
            message=message,
            code="INVALID_TIME_RANGE",
            details={"start_time": str(start), "end_time": str(end)},
        )


class InvalidRoleException(ValidationException):
    def __init__(self, role: Any):
        super().__init__(
            message="Invalid role. Must be ADMIN, STUDENT, or STAFF",
            code="INVALID_ROLE",
            details={"role": role},
        )


class InvalidResourceException(ValidationException):
    def __init__(self, message: str, **details: Any):
        super().__init__(message=message, code="INVALID_RESOURCE", details=details)


class DurationExceededException(BusinessRuleException):
    def __init__(self, role: str, max_minutes: int, requested_minutes: int):
        super().__init__(
            message=f"{role.title()} bookings are limited to {max_minutes} minutes",
            code="DURATION_EXCEEDED",
            details={
                "role": role,
                "max_minutes": max_minutes,
                "requested_minutes": requested_minutes,
            },
        )


class DailyLimitExceededException(BusinessRuleException):
    def __init__(self, booking_date: Any):
        super().__init__(
            message="Students can only make one booking per day",
            code="DAILY_LIMIT_EXCEEDED",
            details={"booking_date": str(booking_date)},
        )


class SlotUnavailableException(ConflictException):
    def __init__(self, conflicting_ids: List[str]):
        super().__init__(
            message="Time slot is already booked",
            code="SLOT_UNAVAILABLE",
            details={"conflicting_booking_ids": conflicting_ids},
        )


class InvalidStatusTransitionException(ConflictException):
    def __init__(self, booking_id: str, current: str, target: str):
        super().__init__(
            message=f"Booking in status {current} cannot become {target}",
            code="INVALID_STATUS_TRANSITION",
            details={"booking_id": booking_id, "current": current, "target": target},
        )


class DuplicateIdentityException(ConflictException):
    def __init__(self, email: str):
        super().__init__(
            message="Email already exists",
            code="DUPLICATE_IDENTITY",
            details={"email": email},
        )


class UnauthenticatedException(UnauthorizedException):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, code="UNAUTHENTICATED")


class InvalidCredentialsException(UnauthorizedException):
    def __init__(self, remaining_attempts: int):
        super().__init__(
            message=(
                f"Invalid credentials. {remaining_attempts} attempt(s) remaining before lockout."
            ),
            code="INVALID_CREDENTIALS",
            details={"remaining_attempts": remaining_attempts},
        )


class AccountLockedException(LockedException):
    def __init__(self, remaining_minutes: float):
        super().__init__(
            message=f"Account is locked. Please try again in {remaining_minutes:g} minute(s).",
            code="ACCOUNT_LOCKED",
            details={"remaining_minutes": remaining_minutes},
        )


class PermissionDeniedException(ForbiddenException):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message=message, code="FORBIDDEN")
