import uuid
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.module_field import ModuleField


class ModuleFieldRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **values: Any) -> ModuleField:
        field = ModuleField(**values)
        self.session.add(field)
        await self.session.flush()
        return field

    async def get_by_id(self, field_id: uuid.UUID) -> ModuleField | None:
        return await self.session.get(ModuleField, field_id)

    async def get_by_key(self, module_key: str, field_key: str) -> ModuleField | None:
        result = await self.session.execute(
            select(ModuleField).where(
                ModuleField.module_key == module_key,
                ModuleField.field_key == field_key,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_module(
        self, module_key: str, *, enabled_only: bool = False
    ) -> list[ModuleField]:
        stmt = select(ModuleField).where(ModuleField.module_key == module_key)
        if enabled_only:
            stmt = stmt.where(ModuleField.enabled.is_(True))
        result = await self.session.execute(stmt.order_by(ModuleField.order, ModuleField.field_key))
        return list(result.scalars().all())

    async def count_for_module(self, module_key: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(ModuleField)
            .where(ModuleField.module_key == module_key)
        )
        return int(result.scalar_one())

    async def update(self, field: ModuleField, **values: Any) -> ModuleField:
        for name, value in values.items():
            setattr(field, name, value)
        await self.session.flush()
        return field

    async def delete(self, field: ModuleField) -> None:
        await self.session.delete(field)
        await self.session.flush()

    async def delete_for_module(self, module_key: str) -> int:
        result = await self.session.execute(
            delete(ModuleField).where(ModuleField.module_key == module_key)
        )
        return result.rowcount or 0
