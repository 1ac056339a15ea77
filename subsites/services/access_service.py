"""
Group, permission and role management.

Every mutation flushes the accessible-subsites cache, since any of them can
change which subsites a member reaches.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from subsites.models.user import Group, Permission, Role, RoleCode, User, group_members, group_roles, group_subsites
from subsites.tenancy.accessible import AccessibleTenantsCache, accessible_tenants_cache

logger = logging.getLogger(__name__)


class AccessService:
    def __init__(self, db: AsyncSession, cache: AccessibleTenantsCache | None = None) -> None:
        self.db = db
        self.cache = cache if cache is not None else accessible_tenants_cache

    async def create_member(self, email: str, username: str | None = None, **fields) -> User:
        user = User(email=email, username=username or email.split("@")[0], **fields)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def create_group(
        self,
        title: str,
        code: str,
        *,
        access_all_subsites: bool = False,
        tenant_ids: Iterable[int] = (),
        permission_codes: Iterable[str] = (),
    ) -> Group:
        """Create a group, optionally associated with subsites and holding permission codes."""
        group = Group(title=title, code=code, access_all_subsites=access_all_subsites)
        self.db.add(group)
        await self.db.flush()
        for tenant_id in tenant_ids:
            await self.db.execute(insert(group_subsites).values(group_id=group.id, tenant_id=tenant_id))
        for permission_code in permission_codes:
            self.db.add(Permission(code=permission_code, group_id=group.id))
        await self.db.commit()
        await self.db.refresh(group)
        self.cache.invalidate()
        logger.info("Group created: id=%d code=%s access_all=%s", group.id, code, access_all_subsites)
        return group

    async def grant_permission(self, group_id: int, code: str) -> Permission:
        permission = Permission(code=code, group_id=group_id)
        self.db.add(permission)
        await self.db.commit()
        await self.db.refresh(permission)
        self.cache.invalidate()
        return permission

    async def add_member(self, group_id: int, user_id: int) -> None:
        await self.db.execute(insert(group_members).values(group_id=group_id, user_id=user_id))
        await self.db.commit()
        self.cache.invalidate_member(user_id)

    async def add_subsite(self, group_id: int, tenant_id: int) -> None:
        await self.db.execute(insert(group_subsites).values(group_id=group_id, tenant_id=tenant_id))
        await self.db.commit()
        self.cache.invalidate()

    async def create_role(self, title: str, codes: Iterable[str]) -> Role:
        role = Role(title=title, codes=[RoleCode(code=code) for code in codes])
        self.db.add(role)
        await self.db.commit()
        await self.db.refresh(role)
        self.cache.invalidate()
        return role

    async def assign_role(self, group_id: int, role_id: int) -> None:
        await self.db.execute(insert(group_roles).values(group_id=group_id, role_id=role_id))
        await self.db.commit()
        self.cache.invalidate()
