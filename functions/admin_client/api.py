"""
Thin HTTP client for the CMS API.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import requests

from shared.api import BlogPost, SiteConfig
from shared.json_utils import convert_keys

DEFAULT_API_URL = "https://api.uniunity.space"
REQUEST_TIMEOUT = 30  # seconds


class ApiError(Exception):
    """The API answered with a non-2xx status."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


@dataclass
class AuthResult:
    token: str
    expires_at: datetime


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


class AdminApiClient:
    """
    Calls the CMS endpoints and parses answers into shared dataclasses.

    `session` may be any object with a requests-style `request` method, which
    lets tests pass a FastAPI TestClient.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Any = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = (base_url or os.getenv("UNIUNITY_API_URL") or DEFAULT_API_URL).rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.token: Optional[str] = None

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            json=json,
            headers=headers,
            timeout=self.timeout,
        )
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise ApiError(response.status_code, str(detail))
        return response.json()

    def authenticate(self, username: str, password: str) -> AuthResult:
        data = self._request(
            "POST", "/api/auth", json={"username": username, "password": password}
        )
        return AuthResult(
            token=data["token"], expires_at=datetime.fromisoformat(data["expiresAt"])
        )

    def get_config(self) -> SiteConfig:
        return SiteConfig.from_json(self._request("GET", "/api/config"))

    def update_config(
        self,
        config: SiteConfig,
        *,
        current_password: Optional[str] = None,
        admin_password: Optional[str] = None,
    ) -> SiteConfig:
        payload = config.to_json()
        payload.update(
            _drop_none(
                {"currentPassword": current_password, "adminPassword": admin_password}
            )
        )
        return SiteConfig.from_json(self._request("POST", "/api/config", json=payload))

    def list_posts(self) -> list[BlogPost]:
        return [BlogPost.from_json(item) for item in self._request("GET", "/api/blogs")]

    def create_post(self, fields: dict[str, Any]) -> BlogPost:
        payload = convert_keys(_drop_none(fields), "snake_to_camel")
        return BlogPost.from_json(self._request("POST", "/api/blogs", json=payload))

    def update_post(self, post_id: str, fields: dict[str, Any]) -> BlogPost:
        payload = convert_keys(_drop_none(fields), "snake_to_camel")
        return BlogPost.from_json(
            self._request("PUT", f"/api/blogs/{post_id}", json=payload)
        )

    def delete_post(self, post_id: str) -> None:
        self._request("DELETE", f"/api/blogs/{post_id}")

    def send_notification(self, message: str) -> str:
        return self._request(
            "POST", "/api/send-notification", json={"message": message}
        )["message"]
