"""
Password hashing and signed session tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt  # PyJWT
from passlib.context import CryptContext

from cms.errors import Unauthorized


class PasswordHasher:
    """Salted bcrypt hashing via passlib."""

    def __init__(self, rounds: int = 10):
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: Optional[str]) -> bool:
        if not password or not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            # Malformed or unknown hash format.
            return False


@dataclass
class SessionToken:
    token: str
    expires_at: datetime


class SessionTokenCodec:
    """Issues and verifies HS256 session tokens for the admin."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_minutes: int = 60):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=ttl_minutes)

    def issue(self, subject: str) -> SessionToken:
        now = datetime.now(timezone.utc)
        expires_at = now + self.ttl
        payload = {
            "sub": subject,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self.secret, algorithm=self.algorithm)
        return SessionToken(token=token, expires_at=expires_at)

    def decode(self, token: str) -> str:
        """Returns the token subject or raises Unauthorized."""
        try:
            data = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Session expired")
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid session token")
        subject = data.get("sub")
        if not subject:
            raise Unauthorized("Invalid session token")
        return subject
