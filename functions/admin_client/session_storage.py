"""
Session-scoped persistence for the admin store.

Values are JSON-compatible dicts stored under string keys.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class SessionStorage(Protocol):
    def load(self, key: str) -> Optional[dict]:
        ...

    def save(self, key: str, value: dict) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemorySessionStorage:
    """Lives as long as the process, like a browser tab's sessionStorage."""

    def __init__(self):
        self.items: dict[str, dict] = {}

    def load(self, key: str) -> Optional[dict]:
        value = self.items.get(key)
        return json.loads(json.dumps(value)) if value is not None else None

    def save(self, key: str, value: dict) -> None:
        self.items[key] = json.loads(json.dumps(value, default=str))

    def clear(self) -> None:
        self.items.clear()


def default_session_path() -> Path:
    override = os.getenv("UNIUNITY_SESSION_FILE")
    if override:
        return Path(override)
    # Scoped to the parent shell so separate terminals do not share a session.
    return Path(tempfile.gettempdir()) / f"uniunity-admin-{os.getppid()}.json"


class FileSessionStorage:
    """JSON file storage; `clear()` deletes the file to end the session."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_session_path()

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        if not self._owned_by_user():
            logger.warning("Ignoring session file %s not owned by this user", self.path)
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return {}

    def _owned_by_user(self) -> bool:
        if self.path.is_symlink():
            return False
        if not hasattr(os, "getuid"):
            return True
        return self.path.stat().st_uid == os.getuid()

    def load(self, key: str) -> Optional[dict]:
        return self._read_all().get(key)

    def save(self, key: str, value: dict) -> None:
        items = self._read_all()
        items[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Fresh 0600 file, created with O_EXCL.
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(items, handle, default=str)
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
