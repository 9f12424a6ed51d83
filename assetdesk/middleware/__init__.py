"""
Middleware package.

WHY: Middleware handles cross-cutting concerns that apply to all requests.
"""

from assetdesk.middleware.request_context import (
    RequestContext,
    RequestContextMiddleware,
    get_request_context,
)

__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "get_request_context",
]
