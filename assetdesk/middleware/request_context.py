"""
Request context middleware.

WHAT: Middleware that assigns every request an id and makes the request
context available throughout the request lifecycle.

WHY: Log lines from services and the store carry no request object. The
context var lets the logging filter stamp each line with the request id,
so all writes of one request can be correlated.

HOW: Stores the context both on ``request.state`` and in a ContextVar
for async-safe access from anywhere in the codebase.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


@dataclass(frozen=True)
class RequestContext:
    """
    Container for request-scoped context data.

    Fields:
    - request_id: Unique identifier for the request (for log correlation)
    - ip_address: Client's IP (first X-Forwarded-For hop when proxied)
    - path: Request path
    - method: HTTP method
    """

    request_id: str
    ip_address: str
    path: str
    method: str


_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """Return the context of the request being served, if any."""
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address.

    Args:
        request: The incoming request

    Returns:
        Client IP address, or "unknown" when unavailable
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that captures and stores request context.

    Honors an incoming ``X-Request-ID`` header and echoes the id back on
    the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        context = RequestContext(
            request_id=request_id,
            ip_address=get_client_ip(request),
            path=request.url.path,
            method=request.method,
        )

        request.state.context = context
        token = _request_context.set(context)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

        finally:
            _request_context.reset(token)
