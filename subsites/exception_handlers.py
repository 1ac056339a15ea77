"""
Global Exception Handlers for CMS Subsites

Error Response Format:
{
    "error": {
        "status_code": 500,
        "message": "Multiple subsites match on 'example.org': one.*,*.org",
        "type": "Internal Server Error",
        "details": {"host": "example.org", "domains": ["one.*", "*.org"]},
        "path": "/api/v1/subsites/resolve"
    }
}
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from subsites.exceptions import CMSException

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
    path: str | None = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        status_code: HTTP status code
        message: Human-readable error message
        details: Additional error details
        path: Request path that caused the error

    Returns:
        JSONResponse with standardized error format
    """
    error_response: dict[str, Any] = {
        "error": {
            "status_code": status_code,
            "message": message,
            "type": get_error_type(status_code),
        }
    }

    if details:
        error_response["error"]["details"] = details

    if path:
        error_response["error"]["path"] = path

    return JSONResponse(status_code=status_code, content=error_response)


def get_error_type(status_code: int) -> str:
    """Get a human-readable error type based on status code."""
    error_types = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        409: "Conflict",
        422: "Validation Error",
        500: "Internal Server Error",
    }
    return error_types.get(status_code, "Error")


async def cms_exception_handler(request: Request, exc: CMSException) -> JSONResponse:
    """Render any CMSException with the standard error body."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s: %s (path=%s)", type(exc).__name__, exc.message, request.url.path)

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        details=exc.details if exc.details else None,
        path=request.url.path,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CMSException, cms_exception_handler)
