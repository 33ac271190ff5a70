"""
Client-side state store for the admin console.

Holds the auth flag, the site configuration and the blog post list, and keeps
them in sync with the API. The server stays authoritative: every mutation is
sent to the API and the in-memory copy is rolled back when the call fails.
"""

from __future__ import annotations

import copy
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

import requests
from dacite import DaciteError

from admin_client.api import AdminApiClient, ApiError
from admin_client.session_storage import InMemorySessionStorage, SessionStorage
from shared.api import BlogPost, SiteConfig
from shared.types import PostStatus

logger = logging.getLogger(__name__)

STORAGE_KEY = "admin-storage"
LOAD_ERROR_MESSAGE = "Failed to load data from server. Please try again later."
SEO_TITLE_SUFFIX = " | UniUnity"
SEO_DESCRIPTION_LENGTH = 160
RECENT_POSTS_LIMIT = 5

# Everything a failed API round trip can raise. ValueError and TypeError
# cover malformed payloads that dacite type hooks and `replace` do not wrap.
REQUEST_FAILURES = (
    ApiError,
    requests.RequestException,
    DaciteError,
    ValueError,
    TypeError,
)


class StoreState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED_IDLE = "authenticated-idle"
    AUTHENTICATED_LOADING = "authenticated-loading"
    AUTHENTICATED_ERROR = "authenticated-error"


AUTHENTICATED_STATES = (
    StoreState.AUTHENTICATED_IDLE,
    StoreState.AUTHENTICATED_LOADING,
    StoreState.AUTHENTICATED_ERROR,
)


class StoreStateError(Exception):
    """An operation was called in a state that does not allow it."""


@dataclass
class PostStats:
    """Dashboard summary of the loaded posts."""

    total: int
    published: int
    drafts: int
    recent: list[BlogPost]


def default_seo_fields(
    title: str,
    content: str,
    seo_title: Optional[str] = None,
    seo_description: Optional[str] = None,
) -> tuple[str, str]:
    """Fills blank SEO fields from the post title and the start of its content."""
    return (
        seo_title or f"{title}{SEO_TITLE_SUFFIX}",
        seo_description or content[:SEO_DESCRIPTION_LENGTH],
    )


class AdminStore:
    def __init__(
        self,
        api: AdminApiClient,
        storage: Optional[SessionStorage] = None,
    ):
        self.api = api
        self.storage = storage if storage is not None else InMemorySessionStorage()
        self.state = StoreState.UNAUTHENTICATED
        self.config = SiteConfig.default()
        self.posts: list[BlogPost] = []
        self.error: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self.state in AUTHENTICATED_STATES

    @property
    def loading(self) -> bool:
        return self.state in (
            StoreState.AUTHENTICATING,
            StoreState.AUTHENTICATED_LOADING,
        )

    def _persist(self) -> None:
        authenticated = self.is_authenticated
        self.storage.save(
            STORAGE_KEY,
            {
                "isAuthenticated": authenticated,
                "config": self.config.to_json(),
                "token": self.api.token if authenticated else None,
            },
        )

    def restore(self) -> bool:
        """
        Reloads the persisted auth flag, token and config.

        Returns True when a usable session was restored; posts are not
        persisted, so callers should follow up with `initialize()`.
        """
        data = self.storage.load(STORAGE_KEY)
        if not data:
            return False
        if data.get("config"):
            try:
                self.config = SiteConfig.from_json(data["config"])
            except DaciteError as exc:
                logger.warning("Discarding persisted config: %s", exc)
        if data.get("isAuthenticated") and data.get("token"):
            self.api.token = data["token"]
            self.state = StoreState.AUTHENTICATED_IDLE
            return True
        return False

    def login(self, username: str, password: str) -> bool:
        """Authenticates, then loads config and posts. Returns auth success."""
        with self._lock:
            if self.state != StoreState.UNAUTHENTICATED:
                raise StoreStateError("Already logged in")
            self.state = StoreState.AUTHENTICATING
            self.error = None
        try:
            result = self.api.authenticate(username, password)
        except ApiError as exc:
            self.error = (
                "Invalid credentials" if exc.status_code == 401 else "Authentication failed"
            )
            self.state = StoreState.UNAUTHENTICATED
            logger.warning("Login error: %s", exc)
            return False
        except REQUEST_FAILURES as exc:
            self.error = "Authentication failed"
            self.state = StoreState.UNAUTHENTICATED
            logger.error("Login error: %s", exc)
            return False

        self.api.token = result.token
        self.state = StoreState.AUTHENTICATED_LOADING
        self._persist()
        self._load()
        return True

    def logout(self) -> None:
        with self._lock:
            self.state = StoreState.UNAUTHENTICATED
            self.api.token = None
            self.config = SiteConfig.default()
            self.posts = []
            self.error = None
            self._persist()

    def _begin(self) -> None:
        with self._lock:
            if not self.is_authenticated:
                raise StoreStateError("Not authenticated")
            if self.state == StoreState.AUTHENTICATED_LOADING:
                raise StoreStateError("Another operation is still in progress")
            self.state = StoreState.AUTHENTICATED_LOADING
            self.error = None

    def initialize(self) -> bool:
        """Fetches config and posts concurrently and applies both, or neither."""
        self._begin()
        return self._load()

    def _load(self) -> bool:
        with ThreadPoolExecutor(max_workers=2) as pool:
            config_future = pool.submit(self.api.get_config)
            posts_future = pool.submit(self.api.list_posts)
            try:
                config = config_future.result()
                posts = posts_future.result()
            except REQUEST_FAILURES as exc:
                self.error = LOAD_ERROR_MESSAGE
                self.state = StoreState.AUTHENTICATED_ERROR
                logger.error("Initialize error: %s", exc)
                return False
        self.config = config
        self.posts = posts
        self.state = StoreState.AUTHENTICATED_IDLE
        self._persist()
        return True

    def _mutate(
        self,
        failure_message: str,
        call: Callable[[], Any],
        apply: Callable[[Any], None],
        optimistic: Optional[Callable[[], None]] = None,
    ) -> bool:
        self._begin()
        previous_posts = list(self.posts)
        previous_config = copy.deepcopy(self.config)
        try:
            if optimistic:
                optimistic()
            result = call()
            apply(result)
        except REQUEST_FAILURES as exc:
            self.posts = previous_posts
            self.config = previous_config
            self.error = failure_message
            self.state = StoreState.AUTHENTICATED_ERROR
            logger.error("%s: %s", failure_message, exc)
            return False
        self.state = StoreState.AUTHENTICATED_IDLE
        self._persist()
        return True

    def add_post(
        self,
        title: str,
        content: str,
        seo_title: Optional[str] = None,
        seo_description: Optional[str] = None,
        status: Optional[PostStatus] = None,
    ) -> bool:
        seo_title, seo_description = default_seo_fields(
            title, content, seo_title, seo_description
        )
        fields = {
            "title": title,
            "content": content,
            "seo_title": seo_title,
            "seo_description": seo_description,
            "status": PostStatus(status).value if status else None,
        }

        def apply(post: BlogPost) -> None:
            self.posts = [*self.posts, post]

        return self._mutate(
            "Failed to add blog post", lambda: self.api.create_post(fields), apply
        )

    def update_post(self, post_id: str, **fields: Any) -> bool:
        if "status" in fields and fields["status"] is not None:
            fields["status"] = PostStatus(fields["status"])

        def optimistic() -> None:
            changes = {k: v for k, v in fields.items() if v is not None}
            self.posts = [
                replace(post, **changes) if post.id == post_id else post
                for post in self.posts
            ]

        def call() -> BlogPost:
            payload = {
                k: (v.value if isinstance(v, PostStatus) else v)
                for k, v in fields.items()
            }
            return self.api.update_post(post_id, payload)

        def apply(updated: BlogPost) -> None:
            self.posts = [updated if post.id == post_id else post for post in self.posts]

        return self._mutate("Failed to update blog post", call, apply, optimistic)

    def delete_post(self, post_id: str) -> bool:
        def optimistic() -> None:
            self.posts = [post for post in self.posts if post.id != post_id]

        return self._mutate(
            "Failed to delete blog post",
            lambda: self.api.delete_post(post_id),
            lambda _: None,
            optimistic,
        )

    def update_config(
        self,
        *,
        current_password: Optional[str] = None,
        admin_password: Optional[str] = None,
        **changes: Any,
    ) -> bool:
        """
        Merges `changes` (top-level SiteConfig sections) into the config and
        saves it. Passing `admin_password` rotates the admin credential.
        """
        updated = self.config.merged(**changes)

        def optimistic() -> None:
            self.config = updated

        def apply(saved: SiteConfig) -> None:
            self.config = saved

        return self._mutate(
            "Failed to update config",
            lambda: self.api.update_config(
                updated,
                current_password=current_password,
                admin_password=admin_password,
            ),
            apply,
            optimistic,
        )

    def send_notification(self, message: str) -> bool:
        return self._mutate(
            "Failed to send notification",
            lambda: self.api.send_notification(message),
            lambda _: None,
        )

    def stats(self, recent: int = RECENT_POSTS_LIMIT) -> PostStats:
        posts = self.posts
        return PostStats(
            total=len(posts),
            published=sum(1 for post in posts if post.status == PostStatus.PUBLISHED),
            drafts=sum(1 for post in posts if post.status == PostStatus.DRAFT),
            recent=sorted(posts, key=lambda post: post.created_at, reverse=True)[:recent],
        )
