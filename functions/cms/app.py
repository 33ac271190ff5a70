"""
FastAPI application entry point for the CMS backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from cms.config import get_settings
from cms.dependencies import (
    get_auth_service,
    get_db_client,
    get_jwt_secret,
    get_password_hasher,
)
from cms.errors import CmsError, StorageError
from cms.routes import root_router, router
from cms.startup import prepare_backend

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    get_jwt_secret()
    db = get_db_client()
    # Blocking retry loop; keep it off the event loop.
    await run_in_threadpool(
        prepare_backend,
        db,
        get_auth_service(db, get_password_hasher()),
        admin_username=settings.admin_username,
        admin_default_password=settings.admin_default_password,
        retry_interval=settings.db_retry_interval_seconds,
        max_attempts=settings.db_max_connect_attempts,
    )
    yield


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CmsError)
    async def handle_cms_error(request: Request, exc: CmsError):
        if isinstance(exc, StorageError):
            logger.error(
                "Storage error on %s %s: %s",
                request.method,
                request.url.path,
                exc,
                exc_info=exc,
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400, content={"detail": _format_validation_error(exc)}
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )
    app = FastAPI(title="UniUnity CMS Backend", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    register_error_handlers(app)
    app.include_router(root_router)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
