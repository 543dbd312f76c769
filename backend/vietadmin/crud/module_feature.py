import uuid
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.module_feature import ModuleFeature


class ModuleFeatureRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **values: Any) -> ModuleFeature:
        feature = ModuleFeature(**values)
        self.session.add(feature)
        await self.session.flush()
        return feature

    async def get_by_id(self, feature_id: uuid.UUID) -> ModuleFeature | None:
        return await self.session.get(ModuleFeature, feature_id)

    async def get_by_key(
        self, module_key: str, feature_key: str, *, for_update: bool = False
    ) -> ModuleFeature | None:
        stmt = select(ModuleFeature).where(
            ModuleFeature.module_key == module_key,
            ModuleFeature.feature_key == feature_key,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_module(self, module_key: str) -> list[ModuleFeature]:
        result = await self.session.execute(
            select(ModuleFeature)
            .where(ModuleFeature.module_key == module_key)
            .order_by(ModuleFeature.feature_key)
        )
        return list(result.scalars().all())

    async def update(self, feature: ModuleFeature, **values: Any) -> ModuleFeature:
        for name, value in values.items():
            setattr(feature, name, value)
        await self.session.flush()
        return feature

    async def delete(self, feature: ModuleFeature) -> None:
        await self.session.delete(feature)
        await self.session.flush()

    async def delete_for_module(self, module_key: str) -> int:
        result = await self.session.execute(
            delete(ModuleFeature).where(ModuleFeature.module_key == module_key)
        )
        return result.rowcount or 0
