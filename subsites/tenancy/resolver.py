"""
Host → subsite resolution.

Resolution order for a host:
  1. Domains of public subsites matching the host (primary domains first).
  2. More than one distinct subsite among the matches → AmbiguousDomainError.
  3. No match → the subsite flagged as default, if any.
  4. Otherwise MAIN_SITE_ID (0): no subsite scoping applies.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsites.config import settings
from subsites.exceptions import AmbiguousDomainError
from subsites.models.tenant import MAIN_SITE_ID, Tenant, TenantDomain
from subsites.tenancy.domain_matcher import normalize_host, pattern_covers

logger = logging.getLogger(__name__)


async def find_matching_domains(db: AsyncSession, host: str, strict: bool | None = None) -> list[TenantDomain]:
    """Return the domains of public subsites covering the normalized *host*, primary domains first."""
    result = await db.execute(
        select(TenantDomain)
        .join(Tenant, Tenant.id == TenantDomain.tenant_id)
        .where(Tenant.is_public.is_(True))
        .order_by(TenantDomain.is_primary.desc(), TenantDomain.id)
    )
    return [d for d in result.scalars().all() if pattern_covers(d.domain, host, strict)]


async def get_default_tenant(db: AsyncSession) -> Tenant | None:
    """Return the subsite flagged as default, or None."""
    result = await db.execute(select(Tenant).where(Tenant.is_default.is_(True)).order_by(Tenant.id).limit(1))
    return result.scalars().first()


async def resolve_tenant_id(db: AsyncSession, host: str | None = None, strict: bool | None = None) -> int:
    """
    Resolve *host* to exactly one subsite id.

    Args:
        db: Database session
        host: Request host; settings.default_host when omitted
        strict: Override settings.strict_subdomain_matching

    Returns:
        The subsite id, the default subsite's id, or MAIN_SITE_ID.

    Raises:
        AmbiguousDomainError: if domains of two or more subsites match.
    """
    host = normalize_host(host or settings.default_host, strict)
    matches = await find_matching_domains(db, host, strict)

    if matches:
        tenant_ids = list(dict.fromkeys(d.tenant_id for d in matches))
        if len(tenant_ids) > 1:
            domains = list(dict.fromkeys(d.domain for d in matches))
            logger.error("Ambiguous domain configuration: host=%s domains=%s subsites=%s", host, domains, tenant_ids)
            raise AmbiguousDomainError(host, domains)
        logger.debug("Resolved host=%s to subsite_id=%d via %s", host, tenant_ids[0], matches[0].domain)
        return tenant_ids[0]

    default = await get_default_tenant(db)
    if default is not None:
        logger.debug("No domain matches host=%s; using default subsite_id=%d", host, default.id)
        return default.id

    return MAIN_SITE_ID
