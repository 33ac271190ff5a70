"""
Startup sequence: wait for the database, then seed the admin credential.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from cms.db import DbClient
from cms.errors import StorageError
from cms.services import AuthService

logger = logging.getLogger(__name__)


def wait_for_database(
    db: DbClient,
    *,
    retry_interval: float = 5.0,
    max_attempts: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Connects to the database, retrying with a fixed backoff.

    Retries forever when `max_attempts` is None. Returns the number of
    attempts it took; raises the last StorageError once attempts run out.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            db.connect()
        except StorageError as exc:
            if max_attempts is not None and attempt >= max_attempts:
                logger.error("Giving up on database after %d attempts", attempt)
                raise
            logger.error(
                "Database connection error (attempt %d): %s; retrying in %.1fs",
                attempt,
                exc,
                retry_interval,
            )
            sleep(retry_interval)
            continue
        logger.info("Connected to database after %d attempt(s)", attempt)
        return attempt


def seed_default_admin(
    db: DbClient,
    auth: AuthService,
    *,
    admin_username: str,
    admin_default_password: str,
) -> bool:
    """
    Seeds the default admin credential unless the site config says otherwise.

    A username stored in the site config replaces `admin_username`. After a
    rotation through the config a missing credential is not re-created, so
    the default password never comes back.
    """
    record = db.get_site_config()
    if record and record.data.get("admin_username"):
        admin_username = record.data["admin_username"]
    if record and record.credential_rotated_at and not db.get_admin(admin_username):
        logger.warning(
            "Admin credential %r is missing after a rotation; not seeding the default",
            admin_username,
        )
        return False
    return auth.seed_admin(admin_username, admin_default_password)


def prepare_backend(
    db: DbClient,
    auth: AuthService,
    *,
    admin_username: str,
    admin_default_password: str,
    retry_interval: float = 5.0,
    max_attempts: Optional[int] = None,
) -> None:
    """Runs the connection and seed steps the auth service depends on."""
    wait_for_database(db, retry_interval=retry_interval, max_attempts=max_attempts)
    seed_default_admin(
        db,
        auth,
        admin_username=admin_username,
        admin_default_password=admin_default_password,
    )
