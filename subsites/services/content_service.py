"""
Site tree operations needed by the subsites layer: creating pages in a
subsite, publishing them and listing children.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from subsites.exceptions import InvalidOperationError
from subsites.models.site_tree import CONTENT_FIELDS, ROOT_PARENT_ID, ContentNode, ContentNodeLive
from subsites.models.tenant import MAIN_SITE_ID, Tenant
from subsites.tenancy.scoping import INCLUDE_ALL_TENANTS

logger = logging.getLogger(__name__)


async def create_node(
    db: AsyncSession,
    title: str,
    *,
    tenant_id: int | None = None,
    context=None,
    parent_id: int = ROOT_PARENT_ID,
    page_type: str = "Page",
    publish: bool = False,
    **fields,
) -> ContentNode:
    """
    Create a page in *tenant_id*, or in the context's current subsite when
    no id is given. Page types on the subsite's denylist are refused.
    """
    if tenant_id is None:
        tenant_id = await context.current_tenant_id(db) if context is not None else MAIN_SITE_ID

    if tenant_id != MAIN_SITE_ID:
        tenant = await db.get(Tenant, tenant_id)
        if tenant is not None and not tenant.allows_page_type(page_type):
            raise InvalidOperationError(
                f"Page type '{page_type}' is not allowed on subsite '{tenant.title}'",
                details={"page_type": page_type, "tenant_id": tenant_id},
            )

    node = ContentNode(tenant_id=tenant_id, parent_id=parent_id, title=title, page_type=page_type, **fields)
    db.add(node)
    await db.commit()
    await db.refresh(node)
    if publish:
        await publish_node(db, node)
    return node


def clone_node(node: ContentNode | ContentNodeLive, tenant_id: int, parent_id: int) -> ContentNode:
    """Return an unsaved stage copy of *node* owned by *tenant_id* under *parent_id*."""
    values = {field: getattr(node, field) for field in CONTENT_FIELDS}
    return ContentNode(tenant_id=tenant_id, parent_id=parent_id, **values)


async def publish_node(db: AsyncSession, node: ContentNode) -> ContentNodeLive:
    """Copy the stage version of *node* to the live table under the same id."""
    live = await db.get(ContentNodeLive, node.id, execution_options={INCLUDE_ALL_TENANTS: True})
    if live is None:
        live = ContentNodeLive(id=node.id)
        db.add(live)
    live.tenant_id = node.tenant_id
    live.parent_id = node.parent_id
    for field in CONTENT_FIELDS:
        setattr(live, field, getattr(node, field))
    await db.commit()
    return live


async def get_children(
    db: AsyncSession,
    parent_id: int,
    tenant_id: int | None = None,
    live: bool = True,
) -> list[ContentNode | ContentNodeLive]:
    """
    Return the children of *parent_id*, ordered by sort then id.

    With *tenant_id* the lookup is restricted to that subsite explicitly and
    ignores any context scoping; without it, the session's scoping applies.
    """
    model = ContentNodeLive if live else ContentNode
    stmt = select(model).where(model.parent_id == parent_id).order_by(model.sort, model.id)
    if tenant_id is not None:
        stmt = stmt.where(model.tenant_id == tenant_id).execution_options(**{INCLUDE_ALL_TENANTS: True})
    result = await db.execute(stmt)
    return list(result.scalars().all())
