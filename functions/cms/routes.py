"""
HTTP routes for the CMS API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from cms.db import PostRecord
from cms.dependencies import (
    get_auth_service,
    get_config_service,
    get_content_service,
    get_token_codec,
    require_admin,
)
from cms.errors import Unauthorized, ValidationError
from cms.schemas import (
    AuthRequest,
    AuthResponse,
    BlogPostPayload,
    BlogPostResponse,
    HealthResponse,
    MessageResponse,
    NotificationRequest,
    SiteConfigResponse,
    SiteConfigUpdate,
)
from cms.security import SessionTokenCodec
from cms.services import AuthService, ConfigService, ContentService, PostFields

logger = logging.getLogger(__name__)

router = APIRouter()
root_router = APIRouter()


def _post_response(post: PostRecord) -> BlogPostResponse:
    return BlogPostResponse(**post.as_dict())


def _post_fields(payload: BlogPostPayload) -> PostFields:
    return PostFields(
        title=payload.title,
        content=payload.content,
        seo_title=payload.seo_title,
        seo_description=payload.seo_description,
        status=payload.status,
    )


@root_router.get("/", response_class=PlainTextResponse)
def index():
    return "UniUnity Backend is running. Use /api/* endpoints for admin access."


@root_router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse()


@router.post("/auth", response_model=AuthResponse)
def authenticate(
    payload: AuthRequest,
    auth: AuthService = Depends(get_auth_service),
    codec: SessionTokenCodec = Depends(get_token_codec),
):
    """
    Verifies the admin credential and issues a session token.
    """
    if not payload.username or not payload.password:
        raise ValidationError("Username and password are required")
    if not auth.authenticate(payload.username, payload.password):
        logger.warning("Failed admin login for %r", payload.username)
        raise Unauthorized("Invalid credentials")
    session = codec.issue(payload.username)
    return AuthResponse(token=session.token, expires_at=session.expires_at)


@router.get("/blogs", response_model=list[BlogPostResponse])
def list_blogs(content: ContentService = Depends(get_content_service)):
    return [_post_response(post) for post in content.list_posts()]


@router.get("/blogs/{post_id}", response_model=BlogPostResponse)
def get_blog(post_id: str, content: ContentService = Depends(get_content_service)):
    return _post_response(content.get_post(post_id))


@router.post("/blogs", response_model=BlogPostResponse, status_code=201)
def create_blog(
    payload: BlogPostPayload,
    content: ContentService = Depends(get_content_service),
    _admin: str = Depends(require_admin),
):
    return _post_response(content.create_post(_post_fields(payload)))


@router.put("/blogs/{post_id}", response_model=BlogPostResponse)
def update_blog(
    post_id: str,
    payload: BlogPostPayload,
    content: ContentService = Depends(get_content_service),
    _admin: str = Depends(require_admin),
):
    return _post_response(content.update_post(post_id, _post_fields(payload)))


@router.delete("/blogs/{post_id}", response_model=MessageResponse)
def delete_blog(
    post_id: str,
    content: ContentService = Depends(get_content_service),
    _admin: str = Depends(require_admin),
):
    content.delete_post(post_id)
    return MessageResponse(message="Blog deleted")


@router.get("/config", response_model=SiteConfigResponse)
def get_config(config: ConfigService = Depends(get_config_service)):
    return SiteConfigResponse.model_validate(config.get_config())


@router.post("/config", response_model=SiteConfigResponse)
def update_config(
    payload: SiteConfigUpdate,
    config: ConfigService = Depends(get_config_service),
    _admin: str = Depends(require_admin),
):
    fields = payload.model_dump(
        exclude_unset=True, exclude={"admin_password", "current_password"}
    )
    updated = config.update_config(
        fields,
        current_password=payload.current_password,
        admin_password=payload.admin_password,
    )
    return SiteConfigResponse.model_validate(updated)


@router.post("/send-notification", response_model=MessageResponse)
def send_notification(
    payload: NotificationRequest,
    _admin: str = Depends(require_admin),
):
    """
    Placeholder: accepts the message but does not deliver it anywhere.
    """
    if not payload.message or not payload.message.strip():
        raise ValidationError("Message is required")
    logger.info("Notification requested: %s", payload.message)
    return MessageResponse(message="Notification sent")
