from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Optional, Protocol

import jwt
from jwt import PyJWTError
from passlib.context import CryptContext

from app.config import settings
from app.enums import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class CredentialHasher(Protocol):
    def hash(self, raw: str) -> str: ...

    def verify(self, raw: str, hashed: str) -> bool: ...


class CredentialIssuer(Protocol):
    def issue(self, email: str, role: Role) -> str: ...

    def verify(self, token: str) -> Optional[Principal]: ...


class PasswordHasher:
    """passlib-backed hasher. pbkdf2_sha256 avoids the native bcrypt build."""

    def __init__(self, schemes=("pbkdf2_sha256",)):
        self.context = CryptContext(schemes=list(schemes), deprecated="auto")
        # Pre-computed hash compared against when the email is unknown, so a
        # miss costs the same as a wrong password.
        self.dummy_hash = self.context.hash("timing_attack_prevention_dummy_password")

    def hash(self, raw: str) -> str:
        return str(self.context.hash(raw))

    def verify(self, raw: str, hashed: str) -> bool:
        try:
            return bool(self.context.verify(raw, hashed))
        except (ValueError, TypeError) as e:
            logger.error(f"Error verifying password: {str(e)}")
            return False


class JwtIssuer:
    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ):
        self.secret = secret or settings.secret_key.get_secret_value()
        self.algorithm = algorithm or settings.algorithm
        self.expire_minutes = expire_minutes or settings.access_token_expire_minutes

    def issue(self, email: str, role: Role) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": email,
            "role": role.value,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[Principal]:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except PyJWTError:
            return None
        email = payload.get("sub")
        try:
            role = Role.parse(payload.get("role", ""))
        except ValueError:
            return None
        if not email:
            return None
        return Principal(email=email, role=role)
