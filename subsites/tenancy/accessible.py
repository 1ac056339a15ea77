"""
Accessible subsites for a member.

A member can reach a subsite when one of their groups is associated with it
(or has access_all_subsites set) and that group holds one of the requested
permission codes, or ADMIN, either directly or through a role. Results are
memoized for the life of the process; anything that changes groups,
permissions, roles or the current subsite must invalidate the cache.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from subsites.config import settings
from subsites.models.tenant import MAIN_SITE_ID, Tenant
from subsites.models.user import (
    ADMIN_CODE,
    Group,
    Permission,
    Role,
    RoleCode,
    User,
    group_members,
    group_roles,
    group_subsites,
)

logger = logging.getLogger(__name__)

CacheKey = tuple[tuple[str, ...], int, bool, str]


class AccessibleTenantsCache:
    """Process-lifetime memo of accessible subsites, invalidated explicitly."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, list[Tenant]] = {}

    @staticmethod
    def make_key(codes: Sequence[str], member_id: int, include_main_site: bool, main_site_title: str) -> CacheKey:
        return (tuple(codes), member_id, include_main_site, main_site_title)

    def get(self, key: CacheKey) -> list[Tenant] | None:
        entry = self._entries.get(key)
        return None if entry is None else list(entry)

    def set(self, key: CacheKey, tenants: list[Tenant]) -> None:
        self._entries[key] = list(tenants)

    def invalidate(self) -> None:
        self._entries.clear()

    def invalidate_member(self, member_id: int) -> None:
        for key in [key for key in self._entries if key[1] == member_id]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


accessible_tenants_cache = AccessibleTenantsCache()


def on_db_reset() -> None:
    """Flush memoized access data after the database was reset."""
    accessible_tenants_cache.invalidate()


def _require_code_list(permission_codes, caller: str) -> list[str]:
    if isinstance(permission_codes, str) or not isinstance(permission_codes, (list, tuple)):
        raise TypeError(f"Permissions must be passed to {caller} as a list or tuple of codes")
    return [str(code) for code in permission_codes]


def _with_admin(codes: list[str]) -> list[str]:
    return codes if ADMIN_CODE in codes else [*codes, ADMIN_CODE]


async def _load_member(db: AsyncSession, member: User | int | None) -> User | None:
    if member is None or isinstance(member, User):
        return member
    return await db.get(User, int(member))


async def has_main_site_permission(
    db: AsyncSession,
    member: User | int | None,
    permission_codes: Sequence[str] = (ADMIN_CODE,),
) -> bool:
    """
    Return True if the member holds one of the codes (or ADMIN) through a
    group flagged access_all_subsites, regardless of any specific subsite.

    Raises:
        TypeError: permission_codes is not a list or tuple.
    """
    codes = _with_admin(_require_code_list(permission_codes, "has_main_site_permission"))
    member = await _load_member(db, member)
    if member is None:
        return False

    result = await db.execute(
        select(func.count(Permission.id))
        .join(Group, and_(Group.id == Permission.group_id, Group.access_all_subsites.is_(True)))
        .join(group_members, group_members.c.group_id == Permission.group_id)
        .where(Permission.code.in_(codes), group_members.c.user_id == member.id)
    )
    return (result.scalar() or 0) > 0


def _tenant_ids_for_member(member_id: int):
    # Subsite ids reachable through the member's groups; access_all groups reach all
    return (
        select(Tenant.id)
        .outerjoin(group_subsites, group_subsites.c.tenant_id == Tenant.id)
        .join(Group, or_(Group.id == group_subsites.c.group_id, Group.access_all_subsites.is_(True)))
        .join(group_members, and_(group_members.c.group_id == Group.id, group_members.c.user_id == member_id))
        .correlate(None)
    )


def _titled_tenants(tenant_ids):
    return (
        select(Tenant)
        .where(Tenant.id.in_(tenant_ids), Tenant.title.is_not(None), Tenant.title != "")
        .order_by(Tenant.title, Tenant.id)
    )


async def accessible_tenants(
    db: AsyncSession,
    member: User | int | None,
    permission_codes: str | Sequence[str],
    include_main_site: bool = True,
    main_site_title: str | None = None,
    cache: AccessibleTenantsCache | None = None,
) -> list[Tenant]:
    """
    Return the subsites *member* can access with one of *permission_codes*.

    Subsites granted directly come first (ordered by title), followed by
    subsites reachable only through roles. Subsites without a title are
    skipped. When *include_main_site* is set and the member holds one of the
    codes through an access_all_subsites group, an unsaved Tenant with id 0
    titled *main_site_title* is prepended.

    Raises:
        TypeError: permission_codes is neither a string nor a list/tuple.
    """
    if isinstance(permission_codes, str):
        permission_codes = [permission_codes]
    codes = _require_code_list(permission_codes, "accessible_tenants")
    main_site_title = settings.main_site_title if main_site_title is None else main_site_title
    cache = cache if cache is not None else accessible_tenants_cache

    member = await _load_member(db, member)
    if member is None:
        return []

    key = cache.make_key(codes, member.id, include_main_site, main_site_title)
    cached = cache.get(key)
    if cached is not None:
        return cached

    codes_with_admin = _with_admin(codes)

    direct = await db.execute(
        _titled_tenants(
            _tenant_ids_for_member(member.id).join(
                Permission, and_(Permission.group_id == Group.id, Permission.code.in_(codes_with_admin))
            )
        )
    )
    tenants = list(direct.scalars().all())

    via_roles = await db.execute(
        _titled_tenants(
            _tenant_ids_for_member(member.id)
            .join(group_roles, group_roles.c.group_id == Group.id)
            .join(Role, Role.id == group_roles.c.role_id)
            .join(RoleCode, and_(RoleCode.role_id == Role.id, RoleCode.code.in_(codes_with_admin)))
        )
    )
    seen = {tenant.id for tenant in tenants}
    for tenant in via_roles.scalars().all():
        if tenant.id not in seen:
            seen.add(tenant.id)
            tenants.append(tenant)

    if include_main_site and await has_main_site_permission(db, member, codes):
        tenants.insert(0, Tenant(id=MAIN_SITE_ID, title=main_site_title))

    logger.debug("Accessible subsites for user_id=%d codes=%s: %s", member.id, codes, [t.id for t in tenants])
    cache.set(key, tenants)
    return list(tenants)


async def members_by_permission(
    db: AsyncSession,
    tenant: Tenant,
    permission_codes: Sequence[str] = (ADMIN_CODE,),
) -> list[User]:
    """
    Return members of groups associated with *tenant* that hold one of the codes.

    Raises:
        TypeError: permission_codes is not a list or tuple.
    """
    codes = _require_code_list(permission_codes, "members_by_permission")
    member_ids = (
        select(group_members.c.user_id)
        .join(group_subsites, group_subsites.c.group_id == group_members.c.group_id)
        .join(Permission, Permission.group_id == group_members.c.group_id)
        .where(group_subsites.c.tenant_id == tenant.id, Permission.code.in_(codes))
    )
    result = await db.execute(select(User).where(User.id.in_(member_ids)).order_by(User.id))
    return list(result.scalars().all())
