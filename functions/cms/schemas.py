"""
Pydantic schemas for the CMS HTTP API.

JSON bodies use camelCase keys; Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.types import PostStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(CamelModel):
    success: Literal[True] = True
    token: str
    token_type: str = "bearer"
    expires_at: datetime


class BlogPostPayload(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    status: Optional[PostStatus] = None


class BlogPostResponse(CamelModel):
    id: str
    title: str
    content: str
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    created_at: datetime
    status: PostStatus


class MessageResponse(BaseModel):
    message: str


class Banner(CamelModel):
    heading: str = ""
    subtext: str = ""


class Seo(CamelModel):
    title: str = ""
    description: str = ""
    og_image: Optional[str] = None


class HomepageAd(CamelModel):
    text: str = ""
    image: str = ""


class SiteConfigResponse(CamelModel):
    title: str
    favicon: str
    banner: Banner
    seo: Seo
    homepage_ad: HomepageAd
    admin_username: str


class SiteConfigUpdate(CamelModel):
    """Partial configuration update; only supplied keys are merged."""

    title: Optional[str] = None
    favicon: Optional[str] = None
    banner: Optional[Banner] = None
    seo: Optional[Seo] = None
    homepage_ad: Optional[HomepageAd] = None
    admin_username: Optional[str] = Field(default=None, max_length=128)
    admin_password: Optional[str] = None
    current_password: Optional[str] = None


class NotificationRequest(BaseModel):
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
