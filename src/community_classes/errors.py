"""
community_classes.errors

Domain error taxonomy shared by services and the API layer.

Responsibilities:
- Give every user-visible failure a stable type, HTTP status and short message.
- Keep raw storage/provider errors from leaking to callers (see `Unavailable`).
"""

from __future__ import annotations

from typing import Any

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class ServiceError(Exception):
    status_code: int = HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthenticated(ServiceError):
    status_code = HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token"


class Forbidden(ServiceError):
    status_code = HTTP_403_FORBIDDEN
    default_message = "Insufficient role permissions."


class ValidationError(ServiceError):
    status_code = HTTP_400_BAD_REQUEST
    default_message = "Invalid payload"


class NotFound(ServiceError):
    status_code = HTTP_404_NOT_FOUND
    default_message = "Not found"


class ClassNotFound(NotFound):
    default_message = "Class not found"


class Conflict(ServiceError):
    status_code = HTTP_409_CONFLICT
    default_message = "Conflict"


class AlreadyRegistered(Conflict):
    default_message = "You are already registered for this class."


class ClassFull(Conflict):
    default_message = "This class is full."


class UniqueViolation(Conflict):
    # Raised by repositories when the store rejects a duplicate row.
    default_message = "Duplicate record"


class Unavailable(ServiceError):
    status_code = HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable"


# --- Module Notes -----------------------------------------------------------
# `api.errors.register_error_handlers` renders these as `{"error": message}` JSON.
