"""
Service-level errors and their HTTP status codes.
"""

from __future__ import annotations


class CmsError(Exception):
    """Base class for errors raised by the CMS services."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CmsError):
    """A required field is missing or empty."""

    status_code = 400


class Unauthorized(CmsError):
    status_code = 401


class NotFound(CmsError):
    status_code = 404


class ConflictError(CmsError):
    """A conditional write lost against a concurrent update."""

    status_code = 409


class StorageError(CmsError):
    """The database is unreachable or a write failed."""

    status_code = 500
