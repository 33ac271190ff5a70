"""
Seeds the admin credential without starting the API server.

Useful when provisioning a fresh database.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cms.config import get_settings
from cms.dependencies import get_db_client, get_password_hasher
from cms.errors import StorageError
from cms.services import AuthService
from cms.startup import seed_default_admin, wait_for_database

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Seed the CMS admin credential")
    parser.add_argument(
        "-u",
        "--username",
        type=str,
        default=settings.admin_username,
        help="Admin identifier to seed when the site config does not name one",
    )
    parser.add_argument(
        "--prompt-password",
        action="store_true",
        help="Prompt for the password instead of using ADMIN_DEFAULT_PASSWORD",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=settings.db_max_connect_attempts or 3,
        help="Database connection attempts before giving up",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    password = (
        getpass.getpass("Admin password: ")
        if args.prompt_password
        else settings.admin_default_password
    )
    db = get_db_client()
    try:
        wait_for_database(
            db,
            retry_interval=settings.db_retry_interval_seconds,
            max_attempts=args.max_attempts,
        )
    except StorageError as exc:
        logger.error("Could not reach the database: %s", exc)
        return 1

    created = seed_default_admin(
        db,
        AuthService(db, get_password_hasher()),
        admin_username=args.username,
        admin_default_password=password,
    )
    print("Admin created" if created else "Admin already exists")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
