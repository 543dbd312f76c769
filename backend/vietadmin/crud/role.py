import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.role import Role
from ..models.user import AdminUser


class RoleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        name: str,
        permissions: dict[str, list[str]],
        description: str = "",
        *,
        color: str | None = None,
        is_system: bool = False,
        is_super_admin: bool = False,
    ) -> Role:
        role = Role(
            name=name,
            description=description,
            color=color,
            permissions=permissions,
            is_system=is_system,
            is_super_admin=is_super_admin,
        )
        self.session.add(role)
        await self.session.flush()
        return role

    async def get_by_id(self, role_id: uuid.UUID, *, for_update: bool = False) -> Role | None:
        if not for_update:
            return await self.session.get(Role, role_id)
        result = await self.session.execute(
            select(Role).where(Role.id == role_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Role | None:
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Role]:
        result = await self.session.execute(select(Role).order_by(Role.name))
        return list(result.scalars().all())

    async def get_super_admin_role(self) -> Role | None:
        result = await self.session.execute(
            select(Role).where(Role.is_super_admin.is_(True)).limit(1)
        )
        return result.scalars().first()

    async def update(self, role: Role, **changes: Any) -> Role:
        for field, value in changes.items():
            setattr(role, field, value)
        await self.session.flush()
        return role

    async def delete(self, role: Role) -> None:
        await self.session.delete(role)
        await self.session.flush()

    async def count_users(self, role_id: uuid.UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(AdminUser).where(AdminUser.role_id == role_id)
        )
        return int(result.scalar_one())

    async def user_counts(self) -> list[tuple[Role, int]]:
        stmt = (
            select(Role, func.count(AdminUser.id))
            .outerjoin(AdminUser, AdminUser.role_id == Role.id)
            .group_by(Role.id)
            .order_by(Role.name)
        )
        result = await self.session.execute(stmt)
        return [(role, int(count)) for role, count in result.all()]
