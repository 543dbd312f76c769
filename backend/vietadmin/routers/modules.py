from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_module_service, rate_limit, require_admin_permission
from ..errors import NotFoundError
from ..models.admin_module import AdminModule, ModuleCategory
from ..schemas.module import (
    DependentModule,
    ModuleCreate,
    ModuleRead,
    ModuleToggleRequest,
    ModuleToggleResult,
    ModuleUpdate,
)
from ..services.admin.auth_service import AuthorizedAdmin
from ..services.admin.module_service import MODULE_NOT_FOUND, ModuleService

router = APIRouter(prefix="/admin/modules", tags=["admin-modules"])

SETTINGS_MODULE = "settings"


@router.get(
    "",
    response_model=list[ModuleRead],
    dependencies=[
        Depends(rate_limit("modules.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def list_modules(
    module_service: ModuleService = Depends(get_module_service),
) -> list[AdminModule]:
    return await module_service.list_modules()


@router.get(
    "/enabled",
    response_model=list[ModuleRead],
    dependencies=[
        Depends(rate_limit("modules.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def list_enabled_modules(
    module_service: ModuleService = Depends(get_module_service),
) -> list[AdminModule]:
    return await module_service.list_enabled_modules()


@router.get(
    "/category/{category}",
    response_model=list[ModuleRead],
    dependencies=[
        Depends(rate_limit("modules.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def list_modules_by_category(
    category: ModuleCategory,
    module_service: ModuleService = Depends(get_module_service),
) -> list[AdminModule]:
    return await module_service.list_modules_by_category(category)


@router.post(
    "",
    response_model=ModuleRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("modules.create"))],
)
async def create_module(
    payload: ModuleCreate,
    admin: AuthorizedAdmin = Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    module_service: ModuleService = Depends(get_module_service),
) -> AdminModule:
    return await module_service.create_module(payload, updated_by=admin.user.id)


@router.get(
    "/{key}",
    response_model=ModuleRead,
    dependencies=[
        Depends(rate_limit("modules.get")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def get_module(
    key: str,
    module_service: ModuleService = Depends(get_module_service),
) -> AdminModule:
    module = await module_service.get_module_by_key(key)
    if module is None:
        raise NotFoundError(MODULE_NOT_FOUND, details={"module_key": key})
    return module


@router.patch(
    "/{key}",
    response_model=ModuleRead,
    dependencies=[Depends(rate_limit("modules.update"))],
)
async def update_module(
    key: str,
    payload: ModuleUpdate,
    admin: AuthorizedAdmin = Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    module_service: ModuleService = Depends(get_module_service),
) -> AdminModule:
    return await module_service.update_module(key, payload, updated_by=admin.user.id)


@router.delete(
    "/{key}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[
        Depends(rate_limit("modules.remove")),
        Depends(require_admin_permission(SETTINGS_MODULE, "delete")),
    ],
)
async def remove_module(
    key: str,
    module_service: ModuleService = Depends(get_module_service),
) -> Response:
    await module_service.remove_module(key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{key}/dependents",
    response_model=list[DependentModule],
    dependencies=[
        Depends(rate_limit("modules.dependents")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def get_dependent_modules(
    key: str,
    module_service: ModuleService = Depends(get_module_service),
) -> list[AdminModule]:
    return await module_service.get_dependent_modules(key)


@router.post(
    "/{key}/toggle",
    response_model=ModuleToggleResult,
    dependencies=[Depends(rate_limit("modules.toggle"))],
)
async def toggle_module(
    key: str,
    payload: ModuleToggleRequest,
    admin: AuthorizedAdmin = Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    module_service: ModuleService = Depends(get_module_service),
) -> ModuleToggleResult:
    if payload.cascade_keys is None:
        await module_service.toggle_module(key, payload.enabled, updated_by=admin.user.id)
        return ModuleToggleResult(success=True)

    result = await module_service.toggle_module_with_cascade(
        key,
        payload.enabled,
        cascade_keys=payload.cascade_keys,
        updated_by=admin.user.id,
    )
    if not result.success:
        raise NotFoundError(MODULE_NOT_FOUND, details={"module_key": key})
    return ModuleToggleResult(success=True, disabled_modules=result.disabled_modules)
