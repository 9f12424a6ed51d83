"""
Error envelope for every failure the API returns.

WHAT: Handlers that turn application exceptions, request validation
failures, routing errors and unexpected crashes into one JSON shape:
``{"error", "message", "status_code", "details"}``.

WHY: Clients branch on ``error`` (e.g. AuthorizationDenied vs
RecordNotFoundError) rather than parsing messages, so every path has to
produce the same envelope.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from assetdesk.core.exceptions import AppException, AuthorizationError

logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str, message: Any, details: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "status_code": status_code, "details": details},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render an AppException using its own ``to_dict``.

    Server-side failures log at error level; refused access logs at warning
    so attempts to cross tenant boundaries stand out from ordinary 4xx noise.
    """
    where = f"{request.method} {request.url.path}"
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {where}: {exc.message}")
    elif isinstance(exc, AuthorizationError):
        logger.warning(f"{exc.__class__.__name__} on {where}: {exc.message}")
    else:
        logger.info(f"{exc.__class__.__name__} on {where}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Request body and query validation failures become a 400 ValidationError
    listing each offending field as a dotted location.
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return error_response(400, "ValidationError", "Request validation failed", {"errors": errors})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown routes (404) and wrong methods (405)
    return error_response(exc.status_code, "HTTPException", exc.detail)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; the client only sees a generic 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return error_response(500, "InternalServerError", "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    """Install all handlers on ``app``."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
