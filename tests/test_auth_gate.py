import pytest

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
from app.services import AuthenticationGate

EMAIL = "student@campus.edu"
PASSWORD = "correct-horse"


@pytest.fixture
def student(make_user):
    return make_user(EMAIL, Role.STUDENT, password=PASSWORD)


def fail_login(gate, exc_type=InvalidCredentialsException):
    with pytest.raises(exc_type) as exc:
        gate.attempt_login(EMAIL, "wrong")
    return exc.value


# Registration


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("STUDENT", Role.STUDENT),
        ("staff", Role.STAFF),
        ("ROLE_ADMIN", Role.ADMIN),
        ("role_staff", Role.STAFF),
    ],
)
def test_register_normalizes_role(gate, raw, expected):
    user = gate.register("new@campus.edu", "pw", raw, name="New")
    assert user.role is expected
    assert user.status is AccountStatus.ACTIVE
    assert user.failed_attempts == 0
    assert user.lock_time is None
    assert user.password_hash != "pw"


@pytest.mark.parametrize("raw", ["LECTURER", "", "ROLE_", "adminx"])
def test_register_rejects_unknown_roles(gate, raw):
    with pytest.raises(InvalidRoleException):
        gate.register("new@campus.edu", "pw", raw)


def test_register_rejects_duplicate_email(gate, student):
    with pytest.raises(DuplicateIdentityException):
        gate.register(EMAIL, "pw", "STAFF")


def test_register_requires_credentials(gate):
    with pytest.raises(ValidationException):
        gate.register("", "pw", "STAFF")


# Login


def test_successful_login_issues_token_for_identity_and_role(gate, student, issuer):
    token = gate.attempt_login(EMAIL, PASSWORD)
    principal = issuer.verify(token)
    assert principal.email == EMAIL
    assert principal.role is Role.STUDENT


def test_unknown_email_is_reported_as_unauthenticated(gate):
    with pytest.raises(UnauthenticatedException):
        gate.attempt_login("ghost@campus.edu", PASSWORD)


def test_wrong_password_reports_remaining_attempts(gate, student, user_store):
    assert fail_login(gate).details["remaining_attempts"] == 2
    assert fail_login(gate).details["remaining_attempts"] == 1
    assert user_store.find_by_email(EMAIL).failed_attempts == 2


def test_success_resets_failed_attempts(gate, student, user_store):
    fail_login(gate)
    fail_login(gate)
    gate.attempt_login(EMAIL, PASSWORD)
    assert user_store.find_by_email(EMAIL).failed_attempts == 0
    # counting starts over
    assert fail_login(gate).details["remaining_attempts"] == 2


def test_third_failure_locks_and_fourth_does_not_count(gate, student, user_store, clock):
    fail_login(gate)
    fail_login(gate)
    locked = fail_login(gate, AccountLockedException)
    assert locked.details["remaining_minutes"] == 1

    user = user_store.find_by_email(EMAIL)
    assert user.status is AccountStatus.LOCKED
    assert user.lock_time is not None
    assert user.failed_attempts == 3

    clock.advance(seconds=10)
    fail_login(gate, AccountLockedException)
    assert user_store.find_by_email(EMAIL).failed_attempts == 3


def test_correct_password_is_not_checked_while_locked(gate, student, clock):
    for _ in range(2):
        fail_login(gate)
    fail_login(gate, AccountLockedException)

    clock.advance(seconds=30)
    with pytest.raises(AccountLockedException) as exc:
        gate.attempt_login(EMAIL, PASSWORD)
    assert exc.value.details["remaining_minutes"] == pytest.approx(0.5)


def test_lock_expires_and_credential_is_reevaluated(gate, student, user_store, clock):
    for _ in range(2):
        fail_login(gate)
    fail_login(gate, AccountLockedException)

    clock.advance(minutes=1, seconds=5)
    # wrong password after expiry counts as the first failure of a fresh window
    assert fail_login(gate).details["remaining_attempts"] == 2
    user = user_store.find_by_email(EMAIL)
    assert user.status is AccountStatus.ACTIVE
    assert user.lock_time is None
    assert user.failed_attempts == 1


def test_login_succeeds_after_lock_expiry(gate, student, user_store, clock):
    for _ in range(2):
        fail_login(gate)
    fail_login(gate, AccountLockedException)

    clock.advance(minutes=1, seconds=5)
    assert gate.attempt_login(EMAIL, PASSWORD)
    user = user_store.find_by_email(EMAIL)
    assert user.status is AccountStatus.ACTIVE
    assert user.failed_attempts == 0


def test_stale_counter_loses_compare_and_set(student, user_store):
    # a writer holding the pre-increment value must not overwrite a newer count
    assert user_store.compare_and_set(student.id, 0, AccountStatus.ACTIVE, failed_attempts=1)
    assert not user_store.compare_and_set(student.id, 0, AccountStatus.ACTIVE, failed_attempts=1)
    assert user_store.find_by_email(EMAIL).failed_attempts == 1


# Administration


def test_unlock_account_clears_lock(gate, student, user_store):
    for _ in range(2):
        fail_login(gate)
    fail_login(gate, AccountLockedException)

    gate.unlock_account(EMAIL)
    user = user_store.find_by_email(EMAIL)
    assert user.status is AccountStatus.ACTIVE
    assert user.failed_attempts == 0
    assert gate.attempt_login(EMAIL, PASSWORD)


def test_unlock_unknown_account(gate):
    with pytest.raises(UserNotFoundException):
        gate.unlock_account("ghost@campus.edu")


def test_account_status_views(gate, student, clock):
    assert gate.account_status(EMAIL).status == "ACTIVE"

    for _ in range(2):
        fail_login(gate)
    fail_login(gate, AccountLockedException)
    clock.advance(seconds=15)
    view = gate.account_status(EMAIL)
    assert view.status == "LOCKED"
    assert view.remaining_minutes == pytest.approx(0.75)

    clock.advance(minutes=1)
    assert gate.account_status(EMAIL).status == "UNLOCKED"


def test_authenticate_rejects_garbage_tokens(gate):
    with pytest.raises(UnauthenticatedException):
        gate.authenticate("not-a-token")


def test_explicit_zero_lock_duration_is_honoured(user_store, hasher, issuer, clock, student):
    gate = AuthenticationGate(
        user_store, hasher, issuer, clock=clock, max_failed_attempts=3, lock_duration_minutes=0
    )
    assert gate.lock_duration_minutes == 0
    for _ in range(2):
        fail_login(gate)
    fail_login(gate, AccountLockedException)
    # a zero-length lock has already elapsed
    assert gate.attempt_login(EMAIL, PASSWORD)
