"""
Subsite duplication.

The site tree is copied with an iterative depth-first walk over an explicit
stack of (source parent id, destination parent id) pairs. Every clone is
persisted before its own children are visited, so a child is always
attached to an already-saved parent. Sibling order is not preserved; parent
linkage is.

Copies are committed page by page and are not rolled back: if a copy fails
part way, the pages already cloned stay in the destination subsite and have
to be removed before re-running.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from subsites.models.site_tree import ROOT_PARENT_ID
from subsites.models.tenant import Tenant
from subsites.services.content_service import clone_node, get_children, publish_node
from subsites.services.tenant_service import add_domain, create_tenant
from subsites.tenancy.context import TenantContext

logger = logging.getLogger(__name__)


class TenantDuplicator:
    def __init__(self, db: AsyncSession, context: TenantContext) -> None:
        self.db = db
        self.context = context

    async def duplicate(self, source: Tenant, destination: Tenant) -> int:
        """
        Copy the published site tree of *source* into *destination*.

        The context is switched to *destination* while each page is cloned
        and persisted, and restored to the caller's subsite afterwards, also
        when an error escapes.

        Returns:
            Number of pages cloned.
        """
        cloned = 0
        stack: list[tuple[int, int]] = [(ROOT_PARENT_ID, ROOT_PARENT_ID)]

        with self.context.use_tenant(source):
            while stack:
                source_parent_id, dest_parent_id = stack.pop()
                children = await get_children(self.db, source_parent_id, tenant_id=source.id)

                for child in children:
                    with self.context.use_tenant(destination):
                        clone = clone_node(child, destination.id, dest_parent_id)
                        self.db.add(clone)
                        await self.db.commit()
                        await publish_node(self.db, clone)
                    stack.append((child.id, clone.id))
                    cloned += 1

        logger.info("Duplicated %d pages from subsite_id=%d to subsite_id=%d", cloned, source.id, destination.id)
        return cloned


async def create_from_template(
    db: AsyncSession,
    template: Tenant,
    title: str,
    context: TenantContext,
    domain: str | None = None,
) -> Tenant:
    """Create a subsite titled *title* from *template*, copying its site tree."""
    tenant = await create_tenant(title, db, template_id=template.id)
    if domain:
        await add_domain(tenant.id, domain, db)
    await TenantDuplicator(db, context).duplicate(template, tenant)
    return tenant


async def duplicate_tenant(db: AsyncSession, tenant: Tenant, context: TenantContext) -> Tenant:
    """
    Copy a subsite's settings and site tree into a new subsite of the same
    kind. Domains are not copied and the copy is never the default site.
    """
    copy = await create_tenant(
        tenant.title,
        db,
        template=tenant.kind == "template",
        is_public=tenant.is_public,
        language=tenant.language,
        theme=tenant.theme,
        page_type_denylist=tenant.page_type_denylist,
        template_id=tenant.template_id,
    )
    await TenantDuplicator(db, context).duplicate(tenant, copy)
    return copy
