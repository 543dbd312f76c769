from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.admin_module import AdminModule


class AdminModuleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **values: Any) -> AdminModule:
        module = AdminModule(**values)
        self.session.add(module)
        await self.session.flush()
        return module

    async def get_by_key(self, key: str, *, for_update: bool = False) -> AdminModule | None:
        stmt = select(AdminModule).where(AdminModule.key == key)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many_by_keys(self, keys: list[str]) -> dict[str, AdminModule]:
        if not keys:
            return {}
        result = await self.session.execute(
            select(AdminModule).where(AdminModule.key.in_(keys))
        )
        return {module.key: module for module in result.scalars().all()}

    async def list_all(self, *, for_update: bool = False) -> list[AdminModule]:
        stmt = select(AdminModule).order_by(AdminModule.order, AdminModule.key)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_enabled(self) -> list[AdminModule]:
        # served by ix_admin_modules_enabled_order
        result = await self.session.execute(
            select(AdminModule)
            .where(AdminModule.enabled.is_(True))
            .order_by(AdminModule.order)
        )
        return list(result.scalars().all())

    async def list_by_category(self, category: str) -> list[AdminModule]:
        result = await self.session.execute(
            select(AdminModule)
            .where(AdminModule.category == category)
            .order_by(AdminModule.order)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(AdminModule))
        return int(result.scalar_one())

    async def update(self, module: AdminModule, **values: Any) -> AdminModule:
        for field, value in values.items():
            setattr(module, field, value)
        await self.session.flush()
        return module

    async def delete(self, module: AdminModule) -> None:
        await self.session.delete(module)
        await self.session.flush()
