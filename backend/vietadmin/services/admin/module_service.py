"""
Service layer for the admin module registry.

Enabling a module requires its dependencies to be satisfied, core modules
can never be disabled or removed, and the dependency graph is kept acyclic.
"""
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.admin_module import AdminModuleRepository
from ...crud.module_feature import ModuleFeatureRepository
from ...crud.module_field import ModuleFieldRepository
from ...crud.module_setting import ModuleSettingRepository
from ...domain.module_graph import find_cycle, unmet_dependencies
from ...errors import ConflictError, NotFoundError, ValidationError
from ...models.admin_module import AdminModule, DependencyType, ModuleCategory
from ...schemas.module import ModuleCreate, ModuleUpdate

logger = logging.getLogger("vietadmin.modules")

MODULE_NOT_FOUND = "Module not found"


@dataclass(frozen=True)
class CascadeToggleResult:
    success: bool
    disabled_modules: list[str] = field(default_factory=list)


def dependency_error(
    module_key: str, dependency_type: str | None, missing: list[str]
) -> ValidationError:
    if dependency_type == DependencyType.ANY.value:
        quoted = ", ".join(f'"{key}"' for key in missing)
        message = f"At least one dependency module of {quoted} must be enabled first"
    else:
        message = f'Dependency module "{missing[0]}" must be enabled first'
    return ValidationError(
        message,
        details={"module_key": module_key, "missing_dependencies": missing},
    )


class ModuleService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = AdminModuleRepository(session)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def _require(self, key: str, *, for_update: bool = False) -> AdminModule:
        module = await self.repo.get_by_key(key, for_update=for_update)
        if module is None:
            raise NotFoundError(MODULE_NOT_FOUND, details={"module_key": key})
        return module

    async def _enabled_keys(self) -> set[str]:
        return {module.key for module in await self.repo.list_enabled()}

    async def _ensure_acyclic(self, key: str, dependencies: list[str] | None) -> None:
        if not dependencies:
            return
        graph = {
            module.key: list(module.dependencies or [])
            for module in await self.repo.list_all()
        }
        graph[key] = list(dependencies)
        cycle = find_cycle(graph, key)
        if cycle:
            raise ValidationError(
                "Module dependencies must not form a cycle",
                details={"module_key": key, "cycle": cycle},
            )

    async def list_modules(self) -> list[AdminModule]:
        return await self.repo.list_all()

    async def list_enabled_modules(self) -> list[AdminModule]:
        return await self.repo.list_enabled()

    async def list_modules_by_category(self, category: ModuleCategory | str) -> list[AdminModule]:
        try:
            value = ModuleCategory(category).value
        except ValueError:
            raise ValidationError(
                f"Invalid category '{category}'", details={"category": category}
            ) from None
        return await self.repo.list_by_category(value)

    async def get_module_by_key(self, key: str) -> AdminModule | None:
        return await self.repo.get_by_key(key)

    async def get_dependent_modules(self, key: str) -> list[AdminModule]:
        """Enabled modules that list ``key`` among their dependencies."""
        return [
            module
            for module in await self.repo.list_enabled()
            if key in (module.dependencies or [])
        ]

    async def create_module(
        self, data: ModuleCreate, updated_by: uuid.UUID | None = None
    ) -> AdminModule:
        if await self.repo.get_by_key(data.key) is not None:
            raise ConflictError("Module key already exists", details={"module_key": data.key})

        dependency_type = data.dependency_type.value if data.dependency_type else None
        if data.dependencies and dependency_type is None:
            dependency_type = DependencyType.ALL.value

        await self._ensure_acyclic(data.key, data.dependencies)

        enabled = True if data.enabled is None else data.enabled
        if data.is_core:
            enabled = True
        if enabled:
            missing = unmet_dependencies(
                data.dependencies, dependency_type, await self._enabled_keys()
            )
            if missing:
                raise dependency_error(data.key, dependency_type, missing)

        order = data.order if data.order is not None else await self.repo.count()
        module = await self.repo.create(
            key=data.key,
            name=data.name,
            description=data.description,
            icon=data.icon,
            category=data.category.value,
            enabled=enabled,
            is_core=data.is_core,
            dependencies=data.dependencies,
            dependency_type=dependency_type,
            order=order,
            updated_by=updated_by,
        )
        await self._commit()
        logger.info("module_created key=%s enabled=%s", module.key, module.enabled)
        return module

    async def update_module(
        self, key: str, data: ModuleUpdate, updated_by: uuid.UUID | None = None
    ) -> AdminModule:
        module = await self._require(key, for_update=True)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        for enum_field in ("category", "dependency_type"):
            if changes.get(enum_field) is not None:
                changes[enum_field] = changes[enum_field].value
        for required in ("name", "description", "icon", "category", "order"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be null")

        if "dependencies" in changes:
            await self._ensure_acyclic(key, changes["dependencies"])

        dependencies = changes.get("dependencies", module.dependencies)
        dependency_type = changes.get("dependency_type", module.dependency_type)
        if dependencies and dependency_type is None:
            dependency_type = DependencyType.ALL.value
            changes["dependency_type"] = dependency_type

        if module.enabled and ("dependencies" in changes or "dependency_type" in changes):
            missing = unmet_dependencies(
                dependencies, dependency_type, await self._enabled_keys() - {key}
            )
            if missing:
                raise dependency_error(key, dependency_type, missing)

        await self.repo.update(module, updated_by=updated_by, **changes)
        await self._commit()
        return module

    async def toggle_module(
        self, key: str, enabled: bool, updated_by: uuid.UUID | None = None
    ) -> AdminModule:
        module = await self._require(key, for_update=True)
        await self._check_toggle(module, enabled)
        await self.repo.update(module, enabled=enabled, updated_by=updated_by)
        await self._commit()
        logger.info("module_toggled key=%s enabled=%s", key, enabled)
        return module

    async def toggle_module_with_cascade(
        self,
        key: str,
        enabled: bool,
        cascade_keys: list[str] | None = None,
        updated_by: uuid.UUID | None = None,
    ) -> CascadeToggleResult:
        """Toggle ``key`` and, when disabling, also disable ``cascade_keys``.

        Core or already disabled cascade targets are skipped. An unknown
        ``key`` reports ``success=False`` instead of raising.
        """
        module = await self.repo.get_by_key(key, for_update=True)
        if module is None:
            return CascadeToggleResult(success=False)
        await self._check_toggle(module, enabled)

        disabled: list[str] = []
        if not enabled and cascade_keys:
            targets = await self.repo.get_many_by_keys(cascade_keys)
            for cascade_key in cascade_keys:
                target = targets.get(cascade_key)
                if target is None or not target.enabled or target.is_core:
                    continue
                target.enabled = False
                target.updated_by = updated_by
                disabled.append(cascade_key)

        await self.repo.update(module, enabled=enabled, updated_by=updated_by)
        await self._commit()
        logger.info(
            "module_toggled key=%s enabled=%s cascade_disabled=%s",
            key,
            enabled,
            ",".join(disabled) or "-",
        )
        return CascadeToggleResult(success=True, disabled_modules=disabled)

    async def _check_toggle(self, module: AdminModule, enabled: bool) -> None:
        if not enabled:
            if module.is_core:
                raise ValidationError(
                    "Cannot disable core module", details={"module_key": module.key}
                )
            return

        missing = unmet_dependencies(
            module.dependencies, module.dependency_type, await self._enabled_keys()
        )
        if missing:
            raise dependency_error(module.key, module.dependency_type, missing)

    async def remove_module(self, key: str) -> None:
        module = await self._require(key, for_update=True)
        if module.is_core:
            raise ValidationError("Cannot delete core module", details={"module_key": key})
        fields = await ModuleFieldRepository(self.session).delete_for_module(key)
        features = await ModuleFeatureRepository(self.session).delete_for_module(key)
        settings = await ModuleSettingRepository(self.session).delete_for_module(key)
        await self.repo.delete(module)
        await self._commit()
        logger.info(
            "module_removed key=%s fields=%d features=%d settings=%d",
            key,
            fields,
            features,
            settings,
        )
