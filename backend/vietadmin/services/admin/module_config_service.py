"""
Per-module configuration: form fields, feature switches and settings.

System fields can be edited but never disabled or deleted. Toggling a
feature carries its linked field along unless that field is a system field.
"""
import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.admin_module import AdminModuleRepository
from ...crud.module_feature import ModuleFeatureRepository
from ...crud.module_field import ModuleFieldRepository
from ...crud.module_setting import ModuleSettingRepository
from ...errors import ConflictError, NotFoundError, ValidationError
from ...models.module_feature import ModuleFeature
from ...models.module_field import ModuleField
from ...models.module_setting import ModuleSetting
from ...schemas.module_config import FeatureCreate, FieldCreate, FieldUpdate
from .module_service import MODULE_NOT_FOUND

logger = logging.getLogger("vietadmin.modules")

FIELD_NOT_FOUND = "Field not found"
FEATURE_NOT_FOUND = "Feature not found"


class ModuleConfigService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.modules = AdminModuleRepository(session)
        self.fields = ModuleFieldRepository(session)
        self.features = ModuleFeatureRepository(session)
        self.settings = ModuleSettingRepository(session)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def _require_module(self, module_key: str) -> None:
        if await self.modules.get_by_key(module_key) is None:
            raise NotFoundError(MODULE_NOT_FOUND, details={"module_key": module_key})

    async def _require_field(self, module_key: str, field_id: uuid.UUID) -> ModuleField:
        field = await self.fields.get_by_id(field_id)
        if field is None or field.module_key != module_key:
            raise NotFoundError(FIELD_NOT_FOUND, details={"field_id": str(field_id)})
        return field

    # fields

    async def list_fields(self, module_key: str, *, enabled_only: bool = False) -> list[ModuleField]:
        return await self.fields.list_for_module(module_key, enabled_only=enabled_only)

    async def create_field(self, module_key: str, data: FieldCreate) -> ModuleField:
        await self._require_module(module_key)
        if await self.fields.get_by_key(module_key, data.field_key) is not None:
            raise ConflictError(
                "Field key already exists",
                details={"module_key": module_key, "field_key": data.field_key},
            )
        order = data.order
        if order is None:
            order = await self.fields.count_for_module(module_key)
        field = await self.fields.create(
            module_key=module_key,
            field_key=data.field_key,
            name=data.name,
            type=data.type.value,
            group=data.group,
            linked_feature=data.linked_feature,
            required=data.required,
            enabled=data.enabled,
            is_system=data.is_system,
            order=order,
        )
        await self._commit()
        return field

    async def update_field(
        self, module_key: str, field_id: uuid.UUID, data: FieldUpdate
    ) -> ModuleField:
        field = await self._require_field(module_key, field_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        for required in ("name", "type", "required", "enabled", "order"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be null")
        if field.is_system and changes.get("enabled") is False:
            raise ValidationError(
                "Cannot disable system field", details={"field_key": field.field_key}
            )
        if changes.get("type") is not None:
            changes["type"] = changes["type"].value

        await self.fields.update(field, **changes)
        await self._commit()
        return field

    async def remove_field(self, module_key: str, field_id: uuid.UUID) -> None:
        field = await self._require_field(module_key, field_id)
        if field.is_system:
            raise ValidationError(
                "Cannot delete system field", details={"field_key": field.field_key}
            )
        await self.fields.delete(field)
        await self._commit()

    # features

    async def list_features(self, module_key: str) -> list[ModuleFeature]:
        return await self.features.list_for_module(module_key)

    async def get_feature(self, module_key: str, feature_key: str) -> ModuleFeature | None:
        return await self.features.get_by_key(module_key, feature_key)

    async def create_feature(self, module_key: str, data: FeatureCreate) -> ModuleFeature:
        await self._require_module(module_key)
        if await self.features.get_by_key(module_key, data.feature_key) is not None:
            raise ConflictError(
                "Feature key already exists",
                details={"module_key": module_key, "feature_key": data.feature_key},
            )
        feature = await self.features.create(
            module_key=module_key,
            feature_key=data.feature_key,
            name=data.name,
            description=data.description,
            enabled=data.enabled,
            linked_field_key=data.linked_field_key,
        )
        await self._commit()
        return feature

    async def toggle_feature(
        self, module_key: str, feature_key: str, enabled: bool
    ) -> ModuleFeature:
        feature = await self.features.get_by_key(module_key, feature_key, for_update=True)
        if feature is None:
            raise NotFoundError(
                FEATURE_NOT_FOUND,
                details={"module_key": module_key, "feature_key": feature_key},
            )
        await self.features.update(feature, enabled=enabled)

        if feature.linked_field_key:
            linked = await self.fields.get_by_key(module_key, feature.linked_field_key)
            if linked is not None and not linked.is_system:
                await self.fields.update(linked, enabled=enabled)

        await self._commit()
        logger.info(
            "module_feature_toggled module=%s feature=%s enabled=%s",
            module_key,
            feature_key,
            enabled,
        )
        return feature

    async def remove_feature(self, module_key: str, feature_id: uuid.UUID) -> None:
        feature = await self.features.get_by_id(feature_id)
        if feature is None or feature.module_key != module_key:
            raise NotFoundError(FEATURE_NOT_FOUND, details={"feature_id": str(feature_id)})
        await self.features.delete(feature)
        await self._commit()

    # settings

    async def list_settings(self, module_key: str) -> list[ModuleSetting]:
        return await self.settings.list_for_module(module_key)

    async def get_setting(self, module_key: str, setting_key: str) -> ModuleSetting | None:
        return await self.settings.get(module_key, setting_key)

    async def set_setting(self, module_key: str, setting_key: str, value: Any) -> ModuleSetting:
        """Create the setting or overwrite its value."""
        await self._require_module(module_key)
        setting = await self.settings.get(module_key, setting_key, for_update=True)
        if setting is None:
            setting = await self.settings.create(module_key, setting_key, value)
        else:
            await self.settings.update_value(setting, value)
        await self._commit()
        return setting

    async def remove_setting(self, module_key: str, setting_key: str) -> None:
        setting = await self.settings.get(module_key, setting_key, for_update=True)
        if setting is None:
            return
        await self.settings.delete(setting)
        await self._commit()
