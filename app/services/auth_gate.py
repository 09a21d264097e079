"""
Authentication gate: registration and the account lockout state machine.

    ACTIVE --wrong password (count < threshold)--> ACTIVE, failed_attempts + 1
    ACTIVE --wrong password (count = threshold)--> LOCKED, lock_time = now
    LOCKED --attempt inside window------------------> LOCKED (no password check)
    LOCKED --attempt after window-------------------> ACTIVE, counters cleared, then checked
    ACTIVE --right password-------------------------> ACTIVE, counters cleared, token issued

Every transition is written with ``UserStore.compare_and_set`` against the
values this attempt read. A lost race re-reads the user and evaluates the
attempt again, so concurrent attempts are never double-counted or dropped.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from app.clock import Clock, SystemClock, as_utc, to_storage
from app.config import settings
from app.enums import AccountStatus, Role
from app.exceptions import (
    AccountLockedException,
    DuplicateIdentityException,
    InvalidCredentialsException,
    InvalidRoleException,
    UnauthenticatedException,
    UserNotFoundException,
    ValidationException,
)
from app.models import User
from app.repositories import UserStore
from app.security import CredentialHasher, CredentialIssuer, Principal

logger = logging.getLogger(__name__)

MAX_CAS_RETRIES = 5


@dataclass(frozen=True)
class AccountStatusView:
    status: str  # ACTIVE | LOCKED | UNLOCKED
    remaining_minutes: Optional[float] = None


class AuthenticationGate:
    def __init__(
        self,
        users: UserStore,
        hasher: CredentialHasher,
        issuer: CredentialIssuer,
        clock: Optional[Clock] = None,
        max_failed_attempts: Optional[int] = None,
        lock_duration_minutes: Optional[float] = None,
    ):
        self.users = users
        self.hasher = hasher
        self.issuer = issuer
        self.clock = clock if clock is not None else SystemClock()
        self.max_failed_attempts = (
            max_failed_attempts if max_failed_attempts is not None else settings.max_failed_attempts
        )
        self.lock_duration_minutes = (
            lock_duration_minutes
            if lock_duration_minutes is not None
            else settings.lock_duration_minutes
        )

    # Registration

    def register(
        self, email: str, raw_credential: str, role: str, name: Optional[str] = None
    ) -> User:
        email = (email or "").strip()
        if not email or not raw_credential:
            raise ValidationException("Email and password are required", code="MISSING_CREDENTIALS")
        if self.users.exists_by_email(email):
            raise DuplicateIdentityException(email)
        try:
            parsed_role = Role.parse(role)
        except ValueError:
            raise InvalidRoleException(role) from None

        user = User(
            name=name,
            email=email,
            password_hash=self.hasher.hash(raw_credential),
            role=parsed_role,
            status=AccountStatus.ACTIVE,
            failed_attempts=0,
            lock_time=None,
        )
        try:
            user = self.users.save(user)
        except IntegrityError:
            # Lost a concurrent registration for the same email
            raise DuplicateIdentityException(email) from None
        logger.info("user_registered", extra={"user_id": user.id, "role": parsed_role.value})
        return user

    # Login

    def attempt_login(self, email: str, supplied_credential: str) -> str:
        """
        Evaluate one login attempt and return an issued token on success.

        Raises:
            UnauthenticatedException: unknown email (indistinguishable from a bad password)
            AccountLockedException: account is inside its lock window, or this attempt locked it
            InvalidCredentialsException: wrong password, with the attempts left before lockout
        """
        user = self.users.find_by_email(email)
        if user is None:
            dummy = getattr(self.hasher, "dummy_hash", None)
            if dummy:
                self.hasher.verify(supplied_credential, dummy)
            logger.info("login_failed", extra={"reason": "unknown_user"})
            raise UnauthenticatedException()

        for _ in range(MAX_CAS_RETRIES):
            now = self.clock.now()
            seen_failed = user.failed_attempts
            seen_status = user.status

            if seen_status is AccountStatus.LOCKED:
                remaining = self._remaining_lock_minutes(user, now)
                if remaining > 0:
                    remaining = round(remaining, 2)
                    logger.info(
                        "login_failed",
                        extra={"user_id": user.id, "reason": "locked", "remaining_minutes": remaining},
                    )
                    raise AccountLockedException(remaining)
                if not self.users.compare_and_set(
                    user.id,
                    seen_failed,
                    seen_status,
                    status=AccountStatus.ACTIVE,
                    failed_attempts=0,
                    lock_time=None,
                ):
                    user = self.users.refresh(user)
                    continue
                logger.info("account_unlocked", extra={"user_id": user.id, "reason": "expired"})
                seen_failed, seen_status = 0, AccountStatus.ACTIVE

            if self.hasher.verify(supplied_credential, user.password_hash):
                if not self.users.compare_and_set(
                    user.id,
                    seen_failed,
                    seen_status,
                    status=AccountStatus.ACTIVE,
                    failed_attempts=0,
                    lock_time=None,
                ):
                    user = self.users.refresh(user)
                    continue
                user = self.users.refresh(user)
                logger.info("login_succeeded", extra={"user_id": user.id})
                return self.issuer.issue(user.email, user.role)

            failed = seen_failed + 1
            if failed >= self.max_failed_attempts:
                if not self.users.compare_and_set(
                    user.id,
                    seen_failed,
                    seen_status,
                    status=AccountStatus.LOCKED,
                    failed_attempts=failed,
                    lock_time=to_storage(now),
                ):
                    user = self.users.refresh(user)
                    continue
                logger.warning(
                    "account_locked",
                    extra={"user_id": user.id, "failed_attempts": failed},
                )
                raise AccountLockedException(self.lock_duration_minutes)

            if not self.users.compare_and_set(
                user.id, seen_failed, seen_status, failed_attempts=failed
            ):
                user = self.users.refresh(user)
                continue
            remaining_attempts = self.max_failed_attempts - failed
            logger.info(
                "login_failed",
                extra={
                    "user_id": user.id,
                    "reason": "invalid_credentials",
                    "remaining_attempts": remaining_attempts,
                },
            )
            raise InvalidCredentialsException(remaining_attempts)

        logger.warning("login_contended", extra={"user_id": user.id})
        raise UnauthenticatedException("Login could not be completed, please try again")

    def authenticate(self, token: str) -> Principal:
        principal = self.issuer.verify(token)
        if principal is None:
            raise UnauthenticatedException("Could not validate credentials")
        return principal

    # Administration

    def unlock_account(self, email: str) -> User:
        user = self.users.find_by_email(email)
        if user is None:
            raise UserNotFoundException(email)
        user.status = AccountStatus.ACTIVE
        user.failed_attempts = 0
        user.lock_time = None
        user = self.users.save(user)
        logger.info("account_unlocked", extra={"user_id": user.id, "reason": "admin"})
        return user

    def account_status(self, email: str) -> AccountStatusView:
        user = self.users.find_by_email(email)
        if user is None:
            raise UserNotFoundException(email)
        if user.status is AccountStatus.LOCKED:
            remaining = self._remaining_lock_minutes(user, self.clock.now())
            if remaining > 0:
                return AccountStatusView(status="LOCKED", remaining_minutes=round(remaining, 2))
            return AccountStatusView(status="UNLOCKED", remaining_minutes=0.0)
        return AccountStatusView(status="ACTIVE")

    def _remaining_lock_minutes(self, user: User, now: datetime) -> float:
        if user.lock_time is None:
            return 0.0
        elapsed = (as_utc(now) - as_utc(user.lock_time)).total_seconds() / 60
        return max(0.0, self.lock_duration_minutes - elapsed)
