"""
Subsite context.

``TenancyState`` is the single process-lifetime service holding the two
process-wide switches: the scoping disable flag (maintenance and migration
tooling) and the forced-subsite override (read-only batch jobs).

``TenantContext`` is created per request. It owns the session-scoped current
subsite id and the per-request override parameter, and binds transparent
query scoping onto database sessions.

Neither is safe for concurrent mutation; callers serialize administrative
operations that switch subsites.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, MutableMapping
from contextlib import contextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from subsites.config import settings
from subsites.i18n.locale import likely_locale, set_locale
from subsites.models.tenant import Tenant
from subsites.tenancy.accessible import AccessibleTenantsCache, accessible_tenants_cache
from subsites.tenancy.resolver import resolve_tenant_id
from subsites.tenancy.scoping import bind_context

logger = logging.getLogger(__name__)


class TenancyState:
    def __init__(self) -> None:
        self.filter_disabled = False
        self._forced: tuple[int, ...] | None = None

    def disable_filter(self, disabled: bool = True) -> None:
        """Make scoped queries return rows from all subsites."""
        self.filter_disabled = disabled

    def enable_filter(self) -> None:
        self.filter_disabled = False

    @contextmanager
    def all_tenants(self) -> Iterator[None]:
        previous = self.filter_disabled
        self.filter_disabled = True
        try:
            yield
        finally:
            self.filter_disabled = previous

    def force(self, tenant_ids: int | Iterable[int]) -> None:
        """Force one subsite id, or a list of ids, for reading."""
        if isinstance(tenant_ids, int):
            tenant_ids = (tenant_ids,)
        forced = tuple(int(tenant_id) for tenant_id in tenant_ids)
        if not forced:
            raise ValueError("At least one subsite id must be forced")
        self._forced = forced
        logger.info("Forced subsite ids: %s", forced)

    def clear_forced(self) -> None:
        self._forced = None

    @property
    def forced_ids(self) -> tuple[int, ...] | None:
        return self._forced

    def reset(self) -> None:
        self.filter_disabled = False
        self._forced = None


tenancy_state = TenancyState()


def _tenant_id_of(tenant: Tenant | int | None) -> int:
    if isinstance(tenant, Tenant):
        return int(tenant.id or 0)
    return int(tenant or 0)


class TenantContext:
    """
    Current subsite for one request.

    Args:
        session: The session mapping (request.session); a fresh dict if omitted
        host: The request host used for resolution
        override: Explicit subsite id from the request; wins over the session
            for this request only
        state: Process-wide switches
        cache: Accessible-subsites cache flushed when the subsite changes
    """

    def __init__(
        self,
        session: MutableMapping | None = None,
        host: str | None = None,
        override: int | None = None,
        *,
        state: TenancyState | None = None,
        cache: AccessibleTenantsCache | None = None,
    ) -> None:
        self.session = session if session is not None else {}
        self.host = host or settings.default_host
        self.override = override
        self.state = state if state is not None else tenancy_state
        self.cache = cache if cache is not None else accessible_tenants_cache
        self.session_key = settings.tenant_session_key

    # ── Reading ───────────────────────────────────────────────────────────────

    def peek_tenant_id(self) -> int | None:
        """The current id without resolving; None if nothing is known yet."""
        forced = self.state.forced_ids
        if forced:
            return forced[0]
        if self.override is not None:
            return int(self.override)
        value = self.session.get(self.session_key)
        return None if value is None else int(value)

    async def current_tenant_id(self, db: AsyncSession) -> int:
        """
        Return the current subsite id.

        Precedence: forced override, request override, session value, then
        resolution of the request host (stored into the session).
        """
        tenant_id = self.peek_tenant_id()
        if tenant_id is None:
            tenant_id = await resolve_tenant_id(db, self.host)
            self.session[self.session_key] = tenant_id
        return tenant_id

    async def current_tenant(self, db: AsyncSession) -> Tenant | None:
        tenant_id = await self.current_tenant_id(db)
        if not tenant_id:
            return None
        return await db.get(Tenant, tenant_id)

    def scoped_ids(self) -> tuple[int, ...] | None:
        """Subsite ids scoped queries are restricted to; None disables scoping."""
        if self.state.filter_disabled:
            return None
        forced = self.state.forced_ids
        if forced:
            return forced
        tenant_id = self.peek_tenant_id()
        return None if tenant_id is None else (tenant_id,)

    async def scope(self, db: AsyncSession) -> int:
        """Resolve the current subsite and scope queries through *db* to it."""
        tenant_id = await self.current_tenant_id(db)
        bind_context(db, self)
        return tenant_id

    # ── Switching ─────────────────────────────────────────────────────────────

    def change_tenant(self, tenant: Tenant | int | None) -> None:
        """
        Switch to another subsite.

        Stores the id in the session, clears the request override, sets the
        locale from the subsite's language and flushes the accessible
        subsites cache if the subsite actually changed.
        """
        tenant_id = _tenant_id_of(tenant)
        previous = self.peek_tenant_id()

        self.session[self.session_key] = tenant_id
        self.override = None

        if isinstance(tenant, Tenant) and tenant.language:
            locale = likely_locale(tenant.language)
            if locale:
                set_locale(locale)

        if tenant_id != previous:
            self.cache.invalidate()
            logger.info("Subsite changed: %s -> %d", previous, tenant_id)

    @contextmanager
    def use_tenant(self, tenant: Tenant | int | None) -> Iterator[int]:
        """Switch to *tenant* and always restore the previous subsite on exit."""
        had_session_value = self.session_key in self.session
        previous_session_value = self.session.get(self.session_key)
        previous_override = self.override
        self.change_tenant(tenant)
        try:
            yield _tenant_id_of(tenant)
        finally:
            if had_session_value:
                self.change_tenant(previous_session_value)
            else:
                self.session.pop(self.session_key, None)
                self.cache.invalidate()
            self.override = previous_override
