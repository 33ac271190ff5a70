"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cms.config import get_settings
from cms.db import DbClient, InMemoryDbClient, SqlDbClient
from cms.errors import Unauthorized
from cms.security import PasswordHasher, SessionTokenCodec
from cms.services import AuthService, ConfigService, ContentService

_db_client: DbClient | None = None
_hasher: PasswordHasher | None = None
_generated_jwt_secret: str | None = None

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(
            settings.database_url,
            connect_timeout=settings.db_connect_timeout_seconds,
        )
    return _db_client


def get_password_hasher() -> PasswordHasher:
    global _hasher
    if _hasher:
        return _hasher
    _hasher = PasswordHasher(rounds=get_settings().bcrypt_rounds)
    return _hasher


def get_jwt_secret() -> str:
    """
    Returns JWT_SECRET, or a random secret generated once per process.

    Tokens signed with a generated secret stop working on restart and are not
    shared between worker processes.
    """
    global _generated_jwt_secret
    settings = get_settings()
    if settings.jwt_secret:
        return settings.jwt_secret
    if not _generated_jwt_secret:
        logger.warning(
            "JWT_SECRET is not set; using a random secret for this process only"
        )
        _generated_jwt_secret = secrets.token_urlsafe(32)
    return _generated_jwt_secret


def get_token_codec() -> SessionTokenCodec:
    settings = get_settings()
    return SessionTokenCodec(
        secret=get_jwt_secret(),
        algorithm=settings.jwt_algorithm,
        ttl_minutes=settings.session_ttl_minutes,
    )


def get_auth_service(
    db: DbClient = Depends(get_db_client),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    return AuthService(db, hasher)


def get_content_service(db: DbClient = Depends(get_db_client)) -> ContentService:
    return ContentService(db)


def get_config_service(
    db: DbClient = Depends(get_db_client),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> ConfigService:
    return ConfigService(db, hasher, default_admin_username=get_settings().admin_username)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    codec: SessionTokenCodec = Depends(get_token_codec),
    db: DbClient = Depends(get_db_client),
) -> str:
    """
    Guards privileged routes: returns the admin identifier carried by a valid
    bearer session token.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Authentication required")
    identifier = codec.decode(credentials.credentials)
    if not db.get_admin(identifier):
        raise Unauthorized("Session no longer valid")
    return identifier
