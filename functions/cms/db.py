"""
Database abstraction for SQL backends and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    Float,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    select,
    text,
    update,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from cms.errors import CmsError, ConflictError, StorageError
from shared.types import PostStatus

logger = logging.getLogger(__name__)

SITE_CONFIG_ROW_ID = 1

# Post fields that callers may overwrite.
POST_MUTABLE_FIELDS = ("title", "content", "seo_title", "seo_description", "status")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_datetime(timestamp: Optional[float]) -> Optional[datetime]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _to_timestamp(value: Optional[datetime]) -> Optional[float]:
    return value.timestamp() if value else None


@dataclass
class AdminRecord:
    identifier: str
    password_hash: str
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())


@dataclass
class PostRecord:
    id: str
    title: str
    content: str
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    status: PostStatus = PostStatus.PUBLISHED

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "seo_title": self.seo_title,
            "seo_description": self.seo_description,
            "created_at": self.created_at,
            "status": self.status.value,
        }


@dataclass
class SiteConfigRecord:
    """The stored singleton configuration plus its concurrency metadata."""

    data: dict
    version: int
    credential_rotated_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class CredentialChange:
    """
    Replaces the admin credential stored under `identifier` with one stored
    under `new_identifier` (which may be the same).
    """

    identifier: str
    new_identifier: str
    password_hash: str


class DbClient(Protocol):
    """Interface for database access."""

    def connect(self) -> None:
        ...

    def get_admin(self, identifier: str) -> Optional[AdminRecord]:
        ...

    def create_admin(self, identifier: str, password_hash: str) -> bool:
        ...

    def list_posts(self) -> list[PostRecord]:
        ...

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        ...

    def insert_post(self, post: PostRecord) -> PostRecord:
        ...

    def update_post(self, post_id: str, fields: dict) -> Optional[PostRecord]:
        ...

    def delete_post(self, post_id: str) -> bool:
        ...

    def get_site_config(self) -> Optional[SiteConfigRecord]:
        ...

    def save_site_config(
        self,
        data: dict,
        *,
        expected_version: int,
        credential: Optional[CredentialChange] = None,
    ) -> SiteConfigRecord:
        ...


def _sort_posts(posts: list[PostRecord]) -> list[PostRecord]:
    return sorted(posts, key=lambda post: (post.created_at, post.id))


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self._lock = threading.RLock()
        self.admins: Dict[str, AdminRecord] = {}
        self.posts: Dict[str, PostRecord] = {}
        self.site_config: Optional[SiteConfigRecord] = None

    def connect(self) -> None:
        return None

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.admins.clear()
            self.posts.clear()
            self.site_config = None

    def get_admin(self, identifier: str) -> Optional[AdminRecord]:
        with self._lock:
            admin = self.admins.get(identifier)
            return replace(admin) if admin else None

    def create_admin(self, identifier: str, password_hash: str) -> bool:
        with self._lock:
            if identifier in self.admins:
                return False
            self.admins[identifier] = AdminRecord(
                identifier=identifier, password_hash=password_hash
            )
            return True

    def list_posts(self) -> list[PostRecord]:
        with self._lock:
            return _sort_posts([replace(post) for post in self.posts.values()])

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        with self._lock:
            post = self.posts.get(post_id)
            return replace(post) if post else None

    def insert_post(self, post: PostRecord) -> PostRecord:
        with self._lock:
            if post.id in self.posts:
                raise StorageError(f"Duplicate post id {post.id}")
            self.posts[post.id] = replace(post)
            return replace(post)

    def update_post(self, post_id: str, fields: dict) -> Optional[PostRecord]:
        with self._lock:
            post = self.posts.get(post_id)
            if not post:
                return None
            changes = {k: v for k, v in fields.items() if k in POST_MUTABLE_FIELDS}
            updated = replace(post, **changes)
            self.posts[post_id] = updated
            return replace(updated)

    def delete_post(self, post_id: str) -> bool:
        with self._lock:
            return self.posts.pop(post_id, None) is not None

    def get_site_config(self) -> Optional[SiteConfigRecord]:
        with self._lock:
            if not self.site_config:
                return None
            return replace(self.site_config, data=copy.deepcopy(self.site_config.data))

    def save_site_config(
        self,
        data: dict,
        *,
        expected_version: int,
        credential: Optional[CredentialChange] = None,
    ) -> SiteConfigRecord:
        with self._lock:
            current = self.site_config
            current_version = current.version if current else 0
            if current_version != expected_version:
                raise ConflictError(
                    "Site configuration was modified concurrently, reload and retry"
                )
            now = _utcnow()
            rotated_at = current.credential_rotated_at if current else None
            if credential:
                self.admins.pop(credential.identifier, None)
                self.admins[credential.new_identifier] = AdminRecord(
                    identifier=credential.new_identifier,
                    password_hash=credential.password_hash,
                )
                rotated_at = now
            self.site_config = SiteConfigRecord(
                data=copy.deepcopy(data),
                version=current_version + 1,
                credential_rotated_at=rotated_at,
                updated_at=now,
            )
            return replace(self.site_config, data=copy.deepcopy(data))


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str, connect_timeout: int = 5):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        url = make_url(database_url)
        engine_kwargs: dict[str, Any] = {
            "future": True,
            "pool_pre_ping": True,
        }
        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise every thread sees an empty DB.
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
            if url.get_backend_name() == "postgresql":
                engine_kwargs["connect_args"] = {"connect_timeout": connect_timeout}
        self.engine = create_engine(url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.Session()
        try:
            yield session
        except CmsError:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Database operation failed")
            raise StorageError("Database operation failed") from exc
        finally:
            session.close()

    def connect(self) -> None:
        """Checks connectivity and creates missing tables."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Database unreachable: {exc}") from exc

    def _to_post_record(self, row: "BlogPostRow") -> PostRecord:
        return PostRecord(
            id=row.id,
            title=row.title,
            content=row.content,
            seo_title=row.seo_title,
            seo_description=row.seo_description,
            created_at=_to_datetime(row.created_at),
            status=PostStatus(row.status),
        )

    def _to_config_record(self, row: "SiteConfigRow") -> SiteConfigRecord:
        return SiteConfigRecord(
            data=copy.deepcopy(row.data),
            version=row.version,
            credential_rotated_at=_to_datetime(row.credential_rotated_at),
            updated_at=_to_datetime(row.updated_at),
        )

    def get_admin(self, identifier: str) -> Optional[AdminRecord]:
        with self._session() as session:
            row = session.get(AdminRow, identifier)
            if not row:
                return None
            return AdminRecord(
                identifier=row.identifier,
                password_hash=row.password_hash,
                created_at=row.created_at,
                updated_at=row.updated_at,
            )

    def create_admin(self, identifier: str, password_hash: str) -> bool:
        now = time.time()
        with self._session() as session:
            if session.get(AdminRow, identifier):
                return False
            session.add(
                AdminRow(
                    identifier=identifier,
                    password_hash=password_hash,
                    created_at=now,
                    updated_at=now,
                )
            )
            try:
                session.commit()
            except IntegrityError:
                # Another process seeded the same identifier first.
                session.rollback()
                return False
            return True

    def list_posts(self) -> list[PostRecord]:
        with self._session() as session:
            rows = session.execute(
                select(BlogPostRow).order_by(
                    BlogPostRow.created_at.asc(), BlogPostRow.id.asc()
                )
            ).scalars()
            return [self._to_post_record(row) for row in rows]

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        with self._session() as session:
            row = session.get(BlogPostRow, post_id)
            return self._to_post_record(row) if row else None

    def insert_post(self, post: PostRecord) -> PostRecord:
        with self._session() as session:
            row = BlogPostRow(
                id=post.id,
                title=post.title,
                content=post.content,
                seo_title=post.seo_title,
                seo_description=post.seo_description,
                created_at=_to_timestamp(post.created_at),
                status=post.status.value,
            )
            session.add(row)
            session.commit()
            return self._to_post_record(row)

    def update_post(self, post_id: str, fields: dict) -> Optional[PostRecord]:
        with self._session() as session:
            row = session.get(BlogPostRow, post_id)
            if not row:
                return None
            for key, value in fields.items():
                if key not in POST_MUTABLE_FIELDS:
                    continue
                if key == "status":
                    value = PostStatus(value).value
                setattr(row, key, value)
            session.commit()
            return self._to_post_record(row)

    def delete_post(self, post_id: str) -> bool:
        with self._session() as session:
            result = session.execute(
                delete(BlogPostRow).where(BlogPostRow.id == post_id)
            )
            session.commit()
            return result.rowcount == 1

    def get_site_config(self) -> Optional[SiteConfigRecord]:
        with self._session() as session:
            row = session.get(SiteConfigRow, SITE_CONFIG_ROW_ID)
            return self._to_config_record(row) if row else None

    def save_site_config(
        self,
        data: dict,
        *,
        expected_version: int,
        credential: Optional[CredentialChange] = None,
    ) -> SiteConfigRecord:
        now = time.time()
        conflict = ConflictError(
            "Site configuration was modified concurrently, reload and retry"
        )
        with self._session() as session:
            if expected_version == 0:
                session.add(
                    SiteConfigRow(
                        id=SITE_CONFIG_ROW_ID,
                        data=data,
                        version=1,
                        credential_rotated_at=now if credential else None,
                        updated_at=now,
                    )
                )
                try:
                    session.flush()
                except IntegrityError:
                    raise conflict
            else:
                values: dict[str, Any] = {
                    "data": data,
                    "version": expected_version + 1,
                    "updated_at": now,
                }
                if credential:
                    values["credential_rotated_at"] = now
                result = session.execute(
                    update(SiteConfigRow)
                    .where(
                        SiteConfigRow.id == SITE_CONFIG_ROW_ID,
                        SiteConfigRow.version == expected_version,
                    )
                    .values(**values)
                )
                if result.rowcount != 1:
                    raise conflict

            if credential:
                session.execute(
                    delete(AdminRow).where(
                        AdminRow.identifier.in_(
                            sorted({credential.identifier, credential.new_identifier})
                        )
                    )
                )
                session.add(
                    AdminRow(
                        identifier=credential.new_identifier,
                        password_hash=credential.password_hash,
                        created_at=now,
                        updated_at=now,
                    )
                )
            session.commit()
            row = session.get(SiteConfigRow, SITE_CONFIG_ROW_ID, populate_existing=True)
            return self._to_config_record(row)


Base = declarative_base()


class AdminRow(Base):
    __tablename__ = "admins"

    identifier = Column(String, primary_key=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class BlogPostRow(Base):
    __tablename__ = "blog_posts"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    seo_title = Column(String, nullable=True)
    seo_description = Column(String, nullable=True)
    created_at = Column(Float, nullable=False, index=True)
    status = Column(String, nullable=False, default=PostStatus.PUBLISHED.value)


class SiteConfigRow(Base):
    __tablename__ = "site_config"

    id = Column(Integer, primary_key=True)
    data = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False)
    credential_rotated_at = Column(Float, nullable=True)
    updated_at = Column(Float, nullable=False)
