import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.system_preset import SystemPreset


class SystemPresetRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **values: Any) -> SystemPreset:
        preset = SystemPreset(**values)
        self.session.add(preset)
        await self.session.flush()
        return preset

    async def get_by_id(self, preset_id: uuid.UUID) -> SystemPreset | None:
        return await self.session.get(SystemPreset, preset_id)

    async def get_by_key(self, key: str) -> SystemPreset | None:
        result = await self.session.execute(
            select(SystemPreset).where(SystemPreset.key == key)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[SystemPreset]:
        result = await self.session.execute(
            select(SystemPreset).order_by(SystemPreset.created_at, SystemPreset.key)
        )
        return list(result.scalars().all())

    async def get_default(self) -> SystemPreset | None:
        result = await self.session.execute(
            select(SystemPreset).where(SystemPreset.is_default.is_(True))
        )
        return result.scalars().first()

    async def lock_all(self) -> list[SystemPreset]:
        result = await self.session.execute(
            select(SystemPreset).with_for_update()
        )
        return list(result.scalars().all())

    async def update(self, preset: SystemPreset, **values: Any) -> SystemPreset:
        for field, value in values.items():
            setattr(preset, field, value)
        await self.session.flush()
        return preset

    async def delete(self, preset: SystemPreset) -> None:
        await self.session.delete(preset)
        await self.session.flush()
