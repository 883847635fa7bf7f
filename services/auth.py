"""
Bearer-token verification for staff, admin and broker users.
Tokens are HS256 JWTs with sub, role, email and exp claims.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    BROKER = "BROKER"


@dataclass(frozen=True)
class AuthUser:
    id: str
    role: Role
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthResult:
    success: bool
    user: Optional[AuthUser] = None
    error: Optional[str] = None


class JWTAuthVerifier:
    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm

    def verify(self, token: Optional[str]) -> AuthResult:
        if not token:
            return AuthResult(success=False, error="Missing bearer token")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            return AuthResult(success=False, error="Token expired")
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected token: %s", e)
            return AuthResult(success=False, error="Invalid token")

        user_id = payload.get("sub")
        try:
            role = Role(str(payload.get("role", "")).upper())
        except ValueError:
            return AuthResult(success=False, error="Unknown role")
        if not user_id:
            return AuthResult(success=False, error="Token has no subject")
        return AuthResult(success=True, user=AuthUser(id=str(user_id), role=role, email=payload.get("email")))

    def issue(self, user_id: str, role: Role | str, email: Optional[str] = None, expires_in: timedelta = timedelta(hours=8)) -> str:
        """Sign a token for a user (seed scripts and tests)."""
        role_value = role.value if isinstance(role, Role) else str(role)
        now = datetime.now(timezone.utc)
        claims = {"sub": user_id, "role": role_value, "email": email, "iat": now, "exp": now + expires_in}
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)
