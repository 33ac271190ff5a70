"""
Business logic for admin authentication, blog posts and site configuration.

Services take a DbClient and a PasswordHasher; they hold no state between
calls, so one instance can serve every request.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from cms.db import CredentialChange, DbClient, PostRecord
from cms.errors import NotFound, Unauthorized, ValidationError
from cms.security import PasswordHasher
from shared.site_config import (
    DEFAULT_ADMIN_USERNAME,
    default_site_config,
    merge_site_config,
)
from shared.types import PostStatus

logger = logging.getLogger(__name__)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class AuthService:
    def __init__(self, db: DbClient, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    def authenticate(self, identifier: Optional[str], password: Optional[str]) -> bool:
        """Checks a username/password pair against the stored admin credential."""
        if not identifier or not password:
            return False
        admin = self.db.get_admin(identifier)
        if not admin:
            return False
        return self.hasher.verify(password, admin.password_hash)

    def seed_admin(self, identifier: str, default_password: str) -> bool:
        """Creates the default admin credential unless one already exists."""
        if self.db.get_admin(identifier):
            logger.info("Admin credential %r already present, skipping seed", identifier)
            return False
        created = self.db.create_admin(identifier, self.hasher.hash(default_password))
        if created:
            logger.info("Admin %r created with hashed default password", identifier)
        return created


@dataclass
class PostFields:
    """Fields a caller may supply when creating or updating a post."""

    title: Optional[str] = None
    content: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    status: Optional[PostStatus] = None

    def supplied(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


class ContentService:
    def __init__(self, db: DbClient):
        self.db = db

    def list_posts(self) -> list[PostRecord]:
        return self.db.list_posts()

    def get_post(self, post_id: str) -> PostRecord:
        post = self.db.get_post(post_id)
        if not post:
            raise NotFound("Blog post not found")
        return post

    def create_post(self, fields: PostFields) -> PostRecord:
        if _is_blank(fields.title) or _is_blank(fields.content):
            raise ValidationError("Title and content are required")
        post = PostRecord(
            id=uuid.uuid4().hex,
            title=fields.title,
            content=fields.content,
            seo_title=fields.seo_title,
            seo_description=fields.seo_description,
            created_at=datetime.now(timezone.utc),
            status=fields.status or PostStatus.PUBLISHED,
        )
        created = self.db.insert_post(post)
        logger.info("Created blog post %s", created.id)
        return created

    def update_post(self, post_id: str, fields: PostFields) -> PostRecord:
        changes = fields.supplied()
        for key in ("title", "content"):
            if key in changes and _is_blank(changes[key]):
                raise ValidationError("Title and content must not be empty")
        updated = self.db.update_post(post_id, changes)
        if not updated:
            raise NotFound("Blog post not found")
        return updated

    def delete_post(self, post_id: str) -> None:
        if not self.db.delete_post(post_id):
            raise NotFound("Blog post not found")
        logger.info("Deleted blog post %s", post_id)


class ConfigService:
    def __init__(
        self,
        db: DbClient,
        hasher: PasswordHasher,
        default_admin_username: str = DEFAULT_ADMIN_USERNAME,
    ):
        self.db = db
        self.hasher = hasher
        self.default_admin_username = default_admin_username

    def _default_config(self) -> dict[str, Any]:
        config = default_site_config()
        config["admin_username"] = self.default_admin_username
        return config

    def get_config(self) -> dict[str, Any]:
        """Returns the stored configuration, or the default one if none exists."""
        record = self.db.get_site_config()
        if not record:
            return self._default_config()
        return merge_site_config(self._default_config(), record.data)

    def update_config(
        self,
        fields: dict[str, Any],
        *,
        current_password: Optional[str] = None,
        admin_password: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Merges `fields` into the singleton configuration.

        A new admin password or username replaces the admin credential in the
        same conditional write as the configuration. Once a credential has
        been set through this path, changing it again requires
        `current_password`.

        Raises:
            Unauthorized: current password missing or wrong.
            ValidationError: a username change without any credential to move.
            ConflictError: a concurrent update won the race.
        """
        record = self.db.get_site_config()
        expected_version = record.version if record else 0
        base = (
            merge_site_config(self._default_config(), record.data)
            if record
            else self._default_config()
        )
        current_username = base.get("admin_username") or self.default_admin_username

        new_username = fields.get("admin_username") or current_username
        if _is_blank(new_username):
            raise ValidationError("adminUsername must not be empty")
        new_username = new_username.strip()
        fields = {**fields, "admin_username": new_username}

        credential = None
        wants_new_password = not _is_blank(admin_password)
        if wants_new_password or new_username != current_username:
            admin = self.db.get_admin(current_username)
            password_already_set = bool(record and record.credential_rotated_at)
            if password_already_set and _is_blank(current_password):
                raise Unauthorized("Current password is required")
            if current_password and not (
                admin and self.hasher.verify(current_password, admin.password_hash)
            ):
                logger.warning("Rejected credential change: wrong current password")
                raise Unauthorized("Current password is incorrect")

            if wants_new_password:
                password_hash = self.hasher.hash(admin_password)
            elif admin:
                password_hash = admin.password_hash
            else:
                raise ValidationError(
                    "adminPassword is required to create the admin credential"
                )
            credential = CredentialChange(
                identifier=current_username,
                new_identifier=new_username,
                password_hash=password_hash,
            )

        merged = merge_site_config(base, fields)
        saved = self.db.save_site_config(
            merged, expected_version=expected_version, credential=credential
        )
        if credential:
            logger.info("Admin credential updated for %r", new_username)
        return merge_site_config(self._default_config(), saved.data)
