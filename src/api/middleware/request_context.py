"""Request context middleware.

Assigns every request an X-Request-ID (client-provided or generated), binds
it to the logging context, logs one access line per request and adds the
standard security headers to the response.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.logging.structured_logger import request_id_var, user_id_var

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request ID for logging and add security headers to responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request_token = request_id_var.set(request_id)
        user_token = user_id_var.set(None)
        start = time.monotonic()

        try:
            response = await call_next(request)
            logger.info(
                "%s %s -> %d",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": int((time.monotonic() - start) * 1000),
                },
            )
        finally:
            user_id_var.reset(user_token)
            request_id_var.reset(request_token)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
