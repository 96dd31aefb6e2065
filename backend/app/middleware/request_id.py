"""
Posts API Backend: Request ID Middleware
=========================================

What:  Gives every request a correlation ID and returns it as X-Request-ID.
How:   Picks the first usable source below, stores the result in a ContextVar
       (for loggers and exception handlers) and on request.state.

ID sources, in order:
    1. X-Request-ID sent by the client, if it is short and printable
    2. The trace id from X-Cloud-Trace-Context, which App Engine and the
       Google load balancer add, so our lines join the platform's request log
    3. The first 8 characters of a fresh UUID4
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"
CLOUD_TRACE_HEADER = "X-Cloud-Trace-Context"

# Client IDs end up in log lines verbatim
_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(request: Request) -> str:
    client_id = request.headers.get(REQUEST_ID_HEADER)
    if client_id and _SAFE_ID.match(client_id):
        return client_id

    trace_id = _cloud_trace_id(request.headers.get(CLOUD_TRACE_HEADER))
    if trace_id:
        return trace_id

    return str(uuid.uuid4())[:8]


def _cloud_trace_id(header: Optional[str]) -> Optional[str]:
    # Format: TRACE_ID/SPAN_ID;o=OPTIONS
    if not header:
        return None
    trace_id = header.split("/", 1)[0].strip()
    return trace_id if _SAFE_ID.match(trace_id) else None


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request)
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
