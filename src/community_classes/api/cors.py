"""
community_classes.api.cors

Cross-origin policy.

Responsibilities:
- Reject requests whose `Origin` header is not on the configured allow-list.
- Emit CORS response headers for allowed origins (Starlette `CORSMiddleware`).
"""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_403_FORBIDDEN

from community_classes.observability.logging import get_logger

log = get_logger(__name__)


class OriginGuardMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, allowed_origins: Iterable[str]) -> None:  # type: ignore[no-untyped-def]
        super().__init__(app)
        self._allowed = frozenset(allowed_origins)

    async def dispatch(self, request: Request, call_next) -> Response:
        # Same-origin and non-browser requests carry no Origin header.
        origin = request.headers.get("origin")
        if origin is not None and origin.rstrip("/") not in self._allowed:
            log.warning("cors_origin_rejected", origin=origin)
            return JSONResponse(
                status_code=HTTP_403_FORBIDDEN,
                content={"error": f"Origin {origin} not allowed by CORS"},
            )
        return await call_next(request)


def install_cors(app: FastAPI, *, origins: list[str]) -> None:
    # Registration order matters: the guard must wrap CORSMiddleware.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(OriginGuardMiddleware, allowed_origins=origins)
