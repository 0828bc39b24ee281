"""
community_classes.api.errors

Exception handlers mapping the domain error taxonomy onto HTTP responses.

Responsibilities:
- Render `ServiceError` subclasses as `{"error": message}` with their status code.
- Turn request validation failures into 400 responses with a per-route message.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_401_UNAUTHORIZED

from community_classes.errors import ServiceError
from community_classes.observability.logging import get_logger

log = get_logger(__name__)

# Keyed by endpoint function name (the default FastAPI route name).
INVALID_PAYLOAD_MESSAGES: dict[str, str] = {
    "signup": "Invalid signup payload",
    "login": "Invalid login payload",
    "create_class": "Invalid class payload",
    "register_for_class": "Invalid registration payload",
}


def _summarize(errors: Any) -> list[dict[str, Any]]:
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in errors
    ]


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    body: dict[str, Any] = {"error": exc.message}
    if exc.details is not None:
        body["details"] = exc.details
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == HTTP_401_UNAUTHORIZED else None
    if exc.status_code >= 500:
        log.error("request_failed", error=type(exc).__name__, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    route = request.scope.get("route")
    message = INVALID_PAYLOAD_MESSAGES.get(getattr(route, "name", ""), "Invalid payload")
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"error": message, "details": _summarize(exc.errors())},
    )


def register_error_handlers(app: FastAPI) -> None:
    # Starlette dispatches by exception class, so each handler only sees its own type.
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
