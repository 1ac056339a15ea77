"""
Host map artifact.

A flat JSON object mapping every registered domain (``www.``-stripped unless
strict subdomain matching is on) to the canonical domain of its subsite,
plus a ``"default"`` key for the default subsite. It is consumed by the
static publishing layer, rebuilt wholesale after every subsite or domain
write, and written on a best-effort basis: an unwritable target is skipped.
"""

from __future__ import annotations

import json
import logging
import os
from collections import defaultdict
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsites.config import settings
from subsites.models.tenant import Tenant, TenantDomain
from subsites.tenancy.domain_matcher import normalize_domain, normalize_host

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"
WILDCARD_PREFIX_LABEL = "subsite."


def canonical_domain(pattern: str, serving_host: str) -> str:
    """
    Turn a (possibly wildcarded) domain pattern into a concrete domain.

    - a trailing ".*" is replaced with ".<serving_host>"
    - a leading "*." is replaced with "subsite."
    - ".www." anywhere is collapsed to "." (only intermediate subdomains)
    """
    domain = pattern
    if domain.endswith(".*"):
        domain = f"{domain[:-2]}.{serving_host}"
    if domain.startswith("*."):
        domain = WILDCARD_PREFIX_LABEL + domain[2:]
    return domain.replace(".www.", ".")


def _by_priority(domains: list[TenantDomain]) -> list[TenantDomain]:
    return sorted(domains, key=lambda d: (not d.is_primary, d.id or 0))


def primary_domain_from(domains: list[TenantDomain], serving_host: str) -> str | None:
    ordered = _by_priority(domains)
    if not ordered:
        return None
    return canonical_domain(ordered[0].domain, serving_host)


async def get_primary_domain(db: AsyncSession, tenant: Tenant | None, serving_host: str | None = None) -> str | None:
    """
    Return the canonical domain of *tenant*: its primary domain (or the
    first one registered) with wildcards substituted. The main site, id 0
    or None, is served on the serving host itself.
    """
    serving_host = normalize_host(serving_host or settings.default_host, strict=True)
    if tenant is None or not tenant.id:
        return serving_host
    result = await db.execute(select(TenantDomain).where(TenantDomain.tenant_id == tenant.id))
    return primary_domain_from(list(result.scalars().all()), serving_host)


async def build_host_map(db: AsyncSession, serving_host: str | None = None) -> dict[str, str]:
    serving_host = normalize_host(serving_host or settings.default_host, strict=True)

    tenants = (await db.execute(select(Tenant).order_by(Tenant.id))).scalars().all()
    domains_by_tenant: dict[int, list[TenantDomain]] = defaultdict(list)
    for domain in (await db.execute(select(TenantDomain).order_by(TenantDomain.id))).scalars().all():
        domains_by_tenant[domain.tenant_id].append(domain)

    host_map: dict[str, str] = {}
    for tenant in tenants:
        domains = domains_by_tenant.get(tenant.id, [])
        canonical = primary_domain_from(domains, serving_host)
        for domain in domains:
            host_map[normalize_domain(domain.domain)] = canonical
        if tenant.is_default and canonical:
            host_map[DEFAULT_KEY] = canonical
    return host_map


def write_host_map(host_map: dict[str, str], path: str | os.PathLike | None = None) -> bool:
    """
    Write *host_map* as JSON to *path*.

    Returns:
        True if written, False if the target was not writable.
    """
    target = Path(path or settings.hostmap_path)
    if not (os.access(target.parent, os.W_OK) or os.access(target, os.W_OK)):
        logger.debug("Host map target %s is not writable; skipping", target)
        return False
    try:
        target.write_text(json.dumps(host_map, indent=2, sort_keys=True), encoding="utf-8")
    except OSError as e:
        logger.warning("Could not write host map to %s: %s", target, e)
        return False
    logger.info("Host map written to %s (%d entries)", target, len(host_map))
    return True


async def rebuild_host_map(
    db: AsyncSession,
    path: str | os.PathLike | None = None,
    serving_host: str | None = None,
) -> dict[str, str] | None:
    """Regenerate the host map artifact; a no-op when settings.write_hostmap is off."""
    if not settings.write_hostmap:
        return None
    host_map = await build_host_map(db, serving_host)
    write_host_map(host_map, path)
    return host_map
