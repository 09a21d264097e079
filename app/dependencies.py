from functools import lru_cache

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.clock import Clock, SystemClock
from app.db import get_db
from app.exceptions import PermissionDeniedException
from app.repositories import SqlBookingStore, SqlResourceStore, SqlUserStore
from app.security import JwtIssuer, PasswordHasher, Principal
from app.services import AuthenticationGate, BookingEngine, ResourceService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def get_clock() -> Clock:
    return SystemClock()


@lru_cache
def get_hasher() -> PasswordHasher:
    return PasswordHasher()


@lru_cache
def get_issuer() -> JwtIssuer:
    return JwtIssuer()


def get_auth_gate(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    hasher: PasswordHasher = Depends(get_hasher),
    issuer: JwtIssuer = Depends(get_issuer),
) -> AuthenticationGate:
    return AuthenticationGate(SqlUserStore(db), hasher, issuer, clock=clock)


def get_booking_engine(db: Session = Depends(get_db)) -> BookingEngine:
    return BookingEngine(SqlUserStore(db), SqlResourceStore(db), SqlBookingStore(db))


def get_resource_service(db: Session = Depends(get_db)) -> ResourceService:
    return ResourceService(SqlResourceStore(db))


def get_current_principal(
    token: str = Depends(oauth2_scheme),
    gate: AuthenticationGate = Depends(get_auth_gate),
) -> Principal:
    return gate.authenticate(token)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise PermissionDeniedException("Admin role required")
    return principal
