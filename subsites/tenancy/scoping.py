"""
Transparent subsite scoping for ORM queries.

Models mixing in ``TenantScoped`` get ``tenant_id IN (...)`` criteria added
to every ORM SELECT issued through a session that a TenantContext has been
bound to. Statements opt out with the ``include_all_tenants`` execution
option; the process-wide disable flag on TenancyState turns scoping off
everywhere.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, Integer, event
from sqlalchemy.orm import Session, with_loader_criteria

logger = logging.getLogger(__name__)

TENANT_CONTEXT_KEY = "tenant_context"
INCLUDE_ALL_TENANTS = "include_all_tenants"


class TenantScoped:
    """Mixin for rows owned by exactly one subsite (0 = main site)."""

    tenant_id = Column(Integer, nullable=False, default=0, index=True)


def bind_context(db, context) -> None:
    """Scope queries issued through *db* (sync or async session) to *context*."""
    db.info[TENANT_CONTEXT_KEY] = context


def unbind_context(db) -> None:
    db.info.pop(TENANT_CONTEXT_KEY, None)


@event.listens_for(Session, "do_orm_execute")
def _scope_to_current_tenant(execute_state) -> None:
    if not execute_state.is_select or execute_state.is_column_load or execute_state.is_relationship_load:
        return
    if execute_state.execution_options.get(INCLUDE_ALL_TENANTS, False):
        return

    context = execute_state.session.info.get(TENANT_CONTEXT_KEY)
    if context is None:
        return
    tenant_ids = context.scoped_ids()
    if tenant_ids is None:
        return

    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(
            TenantScoped,
            lambda cls: cls.tenant_id.in_(tenant_ids),
            include_aliases=True,
        )
    )


async def get_from_all_tenants(db, statement) -> list:
    """Run an ORM select with subsite scoping switched off for that statement."""
    result = await db.execute(statement.execution_options(**{INCLUDE_ALL_TENANTS: True}))
    return list(result.scalars().all())
