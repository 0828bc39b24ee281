"""
community_classes.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs.
- Bind request metadata into structlog contextvars.
- Attach the authenticated principal to the request's log lines once auth has resolved.
- Emit one `request_completed` line per request with status, duration and principal.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from community_classes.auth.models import Principal
from community_classes.observability.logging import get_logger

log = get_logger(__name__)


def bind_principal(request: Request, principal: Principal) -> None:
    """
    Called by the auth dependency after the bearer token and role lookup succeed.

    Log lines emitted later in the handler (admission decisions, catalog writes) carry
    `principal_id` and `role`. The id is also kept on `request.state` because the
    handler runs in a copied context and the middleware's own completion line cannot
    see contextvars bound there.
    """
    structlog.contextvars.bind_contextvars(
        principal_id=str(principal.id),
        role=principal.role.value,
    )
    request.state.principal_id = str(principal.id)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Ensures every request has a request id
    - Binds request-scoped contextvars for structured logs
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        # Prefer a caller-provided request id for trace continuity; otherwise generate one.
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            log.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                principal_id=getattr(request.state, "principal_id", None),
            )
        finally:
            # Avoid leaking context across requests under async concurrency.
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response


# --- Module Notes -----------------------------------------------------------
# Anonymous requests (health, signup, login, rejected tokens) log `principal_id=None`.
