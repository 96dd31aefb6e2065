"""
Posts API Backend: Request Logging Middleware
==============================================

What:  One access-log line per HTTP request, tagged with the request ID.
How:   Times the request around call_next() and logs at a level chosen from
       the response status (see level_for_status).

Fields: method, path, status, duration, request ID, client IP and whether a
pagination cursor was supplied.

Not logged: request bodies, the query string itself (cursors are opaque and
long), cookies and the Authorization header. Both cookies and the header
carry Google ID tokens.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("posts_api.access")

# Probes hit these every few seconds
QUIET_PATHS = frozenset({"/health", "/favicon.ico"})


def level_for_status(status: int) -> int:
    """5xx → ERROR, 4xx → WARNING, anything else → INFO."""
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        entry = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
            "paged": "cursor" in request.query_params,
        }
        logger.log(
            level_for_status(response.status_code),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] from %(client_ip)s",
            entry,
            extra=entry,
        )
        return response
