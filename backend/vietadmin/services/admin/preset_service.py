"""
Service layer for system presets.

A preset names the set of non-core modules that should be enabled together.
Every write path that can raise ``is_default`` goes through
``_claim_default`` so at most one preset is the default at any time.
"""
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.admin_module import AdminModuleRepository
from ...crud.system_preset import SystemPresetRepository
from ...domain.module_graph import unmet_dependencies
from ...errors import ConflictError, NotFoundError, ValidationError
from ...models.admin_module import AdminModule
from ...models.system_preset import SystemPreset
from ...schemas.preset import PresetCreate, PresetUpdate

logger = logging.getLogger("vietadmin.presets")

PRESET_NOT_FOUND = "Preset not found"
PRESET_KEY_EXISTS = "Preset key already exists"
DEFAULT_PRESET_UNDELETABLE = "Cannot delete default preset"


def _target_state(modules: list[AdminModule], enabled_modules: list[str]) -> dict[str, bool]:
    wanted = set(enabled_modules)
    return {
        module.key: True if module.is_core else module.key in wanted
        for module in modules
    }


def _unsatisfied(modules: list[AdminModule], state: dict[str, bool]) -> dict[str, list[str]]:
    enabled_keys = {key for key, enabled in state.items() if enabled}
    problems: dict[str, list[str]] = {}
    for module in modules:
        if not state[module.key]:
            continue
        missing = unmet_dependencies(module.dependencies, module.dependency_type, enabled_keys)
        if missing:
            problems[module.key] = missing
    return problems


class PresetService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = SystemPresetRepository(session)
        self.modules = AdminModuleRepository(session)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def _require(self, preset_id: uuid.UUID) -> SystemPreset:
        preset = await self.repo.get_by_id(preset_id)
        if preset is None:
            raise NotFoundError(PRESET_NOT_FOUND, details={"preset_id": str(preset_id)})
        return preset

    async def _ensure_key_free(self, key: str) -> None:
        if await self.repo.get_by_key(key) is not None:
            raise ConflictError(PRESET_KEY_EXISTS, details={"key": key})

    async def _claim_default(self, owner_id: uuid.UUID | None = None) -> None:
        """Clear ``is_default`` on every preset except ``owner_id``.

        Locks the whole preset set first so concurrent claims serialise; the
        partial unique index rejects whatever slips through.
        """
        cleared = []
        for preset in await self.repo.lock_all():
            if preset.is_default and preset.id != owner_id:
                preset.is_default = False
                cleared.append(preset.key)
        await self.session.flush()
        if cleared:
            logger.info("preset_default_cleared keys=%s", ",".join(cleared))

    async def list_presets(self) -> list[SystemPreset]:
        return await self.repo.list_all()

    async def get_preset_by_key(self, key: str) -> SystemPreset | None:
        return await self.repo.get_by_key(key)

    async def get_default_preset(self) -> SystemPreset | None:
        return await self.repo.get_default()

    async def create_preset(self, data: PresetCreate) -> SystemPreset:
        await self._ensure_key_free(data.key)
        if data.is_default:
            await self._claim_default()

        preset = await self.repo.create(
            key=data.key,
            name=data.name,
            description=data.description,
            enabled_modules=list(data.enabled_modules),
            is_default=data.is_default,
        )
        await self._commit()
        logger.info("preset_created key=%s is_default=%s", preset.key, preset.is_default)
        return preset

    async def update_preset(self, preset_id: uuid.UUID, data: PresetUpdate) -> SystemPreset:
        preset = await self._require(preset_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("is_default") is None:
            changes.pop("is_default", None)
        for required in ("name", "description", "enabled_modules"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be null")

        if changes.get("is_default"):
            await self._claim_default(owner_id=preset.id)

        await self.repo.update(preset, **changes)
        await self._commit()
        return preset

    async def remove_preset(self, preset_id: uuid.UUID) -> None:
        preset = await self._require(preset_id)
        if preset.is_default:
            raise ConflictError(DEFAULT_PRESET_UNDELETABLE, details={"key": preset.key})
        await self.repo.delete(preset)
        await self._commit()
        logger.info("preset_removed key=%s", preset.key)

    async def apply_preset(self, key: str, updated_by: uuid.UUID | None = None) -> list[str]:
        """Enable exactly the preset's modules, leaving core modules on.

        The resulting registry is validated before anything is written.
        Modules already in the wanted state are not touched.

        Returns:
            Keys of the modules whose ``enabled`` flag changed.
        """
        preset = await self.repo.get_by_key(key)
        if preset is None:
            raise NotFoundError(PRESET_NOT_FOUND, details={"key": key})

        modules = await self.modules.list_all(for_update=True)
        state = _target_state(modules, preset.enabled_modules)
        problems = _unsatisfied(modules, state)
        if problems:
            raise ValidationError(
                "Preset leaves module dependencies unmet",
                details={"key": key, "unsatisfied": problems},
            )

        changed: list[str] = []
        for module in modules:
            if module.is_core or module.enabled == state[module.key]:
                continue
            module.enabled = state[module.key]
            if updated_by is not None:
                module.updated_by = updated_by
            changed.append(module.key)

        if changed:
            await self._commit()
        logger.info("preset_applied key=%s changed=%d", key, len(changed))
        return changed

    async def create_preset_from_current(
        self, key: str, name: str, description: str = ""
    ) -> SystemPreset:
        await self._ensure_key_free(key)
        enabled = await self.modules.list_enabled()
        preset = await self.repo.create(
            key=key,
            name=name,
            description=description,
            enabled_modules=[module.key for module in enabled],
            is_default=False,
        )
        await self._commit()
        return preset

    async def duplicate_preset(
        self, preset_id: uuid.UUID, new_key: str, new_name: str
    ) -> SystemPreset:
        source = await self._require(preset_id)
        await self._ensure_key_free(new_key)
        preset = await self.repo.create(
            key=new_key,
            name=new_name,
            description=source.description,
            enabled_modules=list(source.enabled_modules),
            is_default=False,
        )
        await self._commit()
        return preset
