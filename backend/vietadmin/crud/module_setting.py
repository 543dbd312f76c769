from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.module_setting import ModuleSetting


class ModuleSettingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(
        self, module_key: str, setting_key: str, *, for_update: bool = False
    ) -> ModuleSetting | None:
        stmt = select(ModuleSetting).where(
            ModuleSetting.module_key == module_key,
            ModuleSetting.setting_key == setting_key,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_module(self, module_key: str) -> list[ModuleSetting]:
        result = await self.session.execute(
            select(ModuleSetting)
            .where(ModuleSetting.module_key == module_key)
            .order_by(ModuleSetting.setting_key)
        )
        return list(result.scalars().all())

    async def create(self, module_key: str, setting_key: str, value: Any) -> ModuleSetting:
        setting = ModuleSetting(module_key=module_key, setting_key=setting_key, value=value)
        self.session.add(setting)
        await self.session.flush()
        return setting

    async def update_value(self, setting: ModuleSetting, value: Any) -> ModuleSetting:
        setting.value = value
        await self.session.flush()
        return setting

    async def delete(self, setting: ModuleSetting) -> None:
        await self.session.delete(setting)
        await self.session.flush()

    async def delete_for_module(self, module_key: str) -> int:
        result = await self.session.execute(
            delete(ModuleSetting).where(ModuleSetting.module_key == module_key)
        )
        return result.rowcount or 0
