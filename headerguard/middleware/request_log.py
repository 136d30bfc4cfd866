"""
Request log middleware.
Emits one structured log line per request and tags the response with a
correlation ID, reusing the caller's X-Request-ID when one is supplied.
The ID is also kept on ``request.state.request_id`` for error handlers.
"""

import time
import uuid
from typing import Iterable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

logger = structlog.get_logger(__name__)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Binds request context to structlog for the lifetime of the request."""

    def __init__(self, app: ASGIApp, quiet_paths: Iterable[str] = ()) -> None:
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.monotonic()

        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        ):
            response = await call_next(request)
            if request.url.path not in self.quiet_paths:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "Request served",
                    status_code=response.status_code,
                    duration_ms=round((time.monotonic() - started) * 1000, 2),
                )

        response.headers["X-Request-ID"] = request_id
        return response
