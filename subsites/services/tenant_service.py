"""
Subsite Service

Async CRUD operations for subsites and their domains.
All functions accept an injected AsyncSession. Every write regenerates the
host map artifact, and subsite writes flush the accessible-subsites cache
since access-all groups reach every subsite by title.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from subsites.exceptions import TenantNotFoundError
from subsites.models.tenant import TemplateTenant, Tenant, TenantDomain
from subsites.tenancy.accessible import accessible_tenants_cache
from subsites.tenancy.domain_matcher import validate_domain_pattern
from subsites.tenancy.host_map import rebuild_host_map

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "title",
    "redirect_url",
    "is_default",
    "is_public",
    "theme",
    "language",
    "page_type_denylist",
}


async def create_tenant(
    title: str,
    db: AsyncSession,
    *,
    template: bool = False,
    is_public: bool = True,
    is_default: bool = False,
    language: str | None = None,
    theme: str | None = None,
    page_type_denylist: list[str] | None = None,
    template_id: int | None = None,
) -> Tenant:
    """Create a new subsite (or a template subsite)."""
    model = TemplateTenant if template else Tenant
    tenant = model(
        title=title,
        is_public=is_public,
        is_default=is_default,
        language=language,
        theme=theme,
        page_type_denylist=list(page_type_denylist or []),
        template_id=template_id,
    )
    db.add(tenant)
    await db.commit()
    await db.refresh(tenant)
    accessible_tenants_cache.invalidate()
    logger.info("Subsite created: id=%d title=%s kind=%s", tenant.id, tenant.title, tenant.kind)
    await rebuild_host_map(db)
    return tenant


async def get_tenant_by_id(tenant_id: int, db: AsyncSession) -> Tenant | None:
    """Return a subsite by primary key, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalars().first()


async def get_tenant_or_404(tenant_id: int, db: AsyncSession) -> Tenant:
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        raise TenantNotFoundError(tenant_id)
    return tenant


async def list_tenants(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 20,
) -> list[Tenant]:
    """Return a paginated list of all subsites, ordered by title."""
    result = await db.execute(select(Tenant).order_by(Tenant.title, Tenant.id).offset(skip).limit(limit))
    return list(result.scalars().all())


async def update_tenant(
    tenant_id: int,
    updates: dict,
    db: AsyncSession,
) -> Tenant | None:
    """
    Apply a partial update to a subsite.

    Only keys present in `updates` are changed.
    Returns None if the subsite does not exist.
    """
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        return None
    for field, value in updates.items():
        if field in UPDATABLE_FIELDS:
            setattr(tenant, field, value)
    await db.commit()
    await db.refresh(tenant)
    accessible_tenants_cache.invalidate()
    await rebuild_host_map(db)
    return tenant


async def get_domains(tenant_id: int, db: AsyncSession) -> list[TenantDomain]:
    """Return a subsite's domains, primary first."""
    result = await db.execute(
        select(TenantDomain)
        .where(TenantDomain.tenant_id == tenant_id)
        .order_by(TenantDomain.is_primary.desc(), TenantDomain.id)
    )
    return list(result.scalars().all())


async def add_domain(
    tenant_id: int,
    domain: str,
    db: AsyncSession,
    is_primary: bool = False,
) -> TenantDomain:
    """
    Bind a domain pattern to a subsite.

    A new primary domain demotes the subsite's other primary domains, so at
    most one primary is kept per subsite.
    """
    await get_tenant_or_404(tenant_id, db)
    value = validate_domain_pattern(domain)

    if is_primary:
        await _demote_primaries(tenant_id, db)
    binding = TenantDomain(tenant_id=tenant_id, domain=value, is_primary=is_primary)
    db.add(binding)
    await db.commit()
    await db.refresh(binding)
    logger.info("Domain bound: %s -> subsite_id=%d primary=%s", value, tenant_id, is_primary)
    await rebuild_host_map(db)
    return binding


async def set_primary_domain(domain_id: int, db: AsyncSession) -> TenantDomain | None:
    """Make a domain its subsite's only primary domain. None if it doesn't exist."""
    binding = await db.get(TenantDomain, domain_id)
    if binding is None:
        return None
    await _demote_primaries(binding.tenant_id, db)
    binding.is_primary = True
    await db.commit()
    await db.refresh(binding)
    await rebuild_host_map(db)
    return binding


async def remove_domain(domain_id: int, db: AsyncSession) -> bool:
    binding = await db.get(TenantDomain, domain_id)
    if binding is None:
        return False
    await db.delete(binding)
    await db.commit()
    logger.info("Domain removed: %s from subsite_id=%d", binding.domain, binding.tenant_id)
    await rebuild_host_map(db)
    return True


async def _demote_primaries(tenant_id: int, db: AsyncSession) -> None:
    await db.execute(
        update(TenantDomain)
        .where(TenantDomain.tenant_id == tenant_id, TenantDomain.is_primary.is_(True))
        .values(is_primary=False)
        .execution_options(synchronize_session="fetch")
    )
