"""
Subsite Resolution Middleware

Builds a TenantContext for every request and resolves the current subsite:
  1. Forced subsite ids (process-wide, read-only batch scenarios)
  2. ?SubsiteID=<id> query parameter or X-Subsite-ID header (this request only)
  3. The subsite id stored in the session
  4. The request host, matched against subsite domains (stored in the session)

Sets request.state.tenant_context and request.state.tenant_id for
downstream handlers. When ENABLE_MULTITENANCY is False this middleware is a
no-op and every request runs as the main site.

Starlette middleware is LIFO, so SessionMiddleware must be registered AFTER
this middleware in create_app() so the session is available here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from subsites.config import settings
from subsites.exception_handlers import create_error_response
from subsites.exceptions import AmbiguousDomainError
from subsites.models.tenant import MAIN_SITE_ID
from subsites.tenancy.context import TenantContext

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)

OVERRIDE_HEADER = "X-Subsite-ID"


def _override_from_request(request: Request) -> int | None:
    raw = request.query_params.get(settings.tenant_override_param) or request.headers.get(OVERRIDE_HEADER)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric subsite override %r", raw)
        return None


def build_tenant_context(request: Request) -> TenantContext:
    session = request.scope.get("session")
    return TenantContext(
        session=session if session is not None else {},
        host=request.headers.get("host"),
        override=_override_from_request(request),
    )


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Resolve the current subsite and attach it to request.state.

    Attributes set on request.state:
        tenant_context (TenantContext | None): per-request subsite context
        tenant_id      (int):                  resolved subsite id, 0 = main site
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Always initialise state so downstream code can safely read without AttributeError
        request.state.tenant_context = None
        request.state.tenant_id = MAIN_SITE_ID

        if not settings.enable_multitenancy:
            return await call_next(request)

        context = build_tenant_context(request)

        # Deferred import so test suites can swap the session factory
        from subsites.database import AsyncSessionLocal

        try:
            async with AsyncSessionLocal() as db:
                tenant_id = await context.current_tenant_id(db)
        except AmbiguousDomainError as exc:
            logger.error("TenantMiddleware: %s", exc.message)
            return create_error_response(
                status_code=exc.status_code,
                message=exc.message,
                details=exc.details,
                path=request.url.path,
            )

        request.state.tenant_context = context
        request.state.tenant_id = tenant_id
        logger.debug("TenantMiddleware: resolved subsite_id=%d host=%s", tenant_id, context.host)

        return await call_next(request)
