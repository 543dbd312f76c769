import uuid

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_preset_service, rate_limit, require_admin_permission
from ..errors import NotFoundError
from ..models.system_preset import SystemPreset
from ..schemas.preset import (
    PresetApplyResult,
    PresetCreate,
    PresetDuplicateRequest,
    PresetFromCurrentRequest,
    PresetRead,
    PresetUpdate,
)
from ..services.admin.auth_service import AuthorizedAdmin
from ..services.admin.preset_service import PRESET_NOT_FOUND, PresetService

router = APIRouter(prefix="/admin/presets", tags=["admin-presets"])

SETTINGS_MODULE = "settings"


@router.get(
    "",
    response_model=list[PresetRead],
    dependencies=[
        Depends(rate_limit("presets.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def list_presets(
    preset_service: PresetService = Depends(get_preset_service),
) -> list[SystemPreset]:
    return await preset_service.list_presets()


@router.post(
    "",
    response_model=PresetRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(rate_limit("presets.create")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def create_preset(
    payload: PresetCreate,
    preset_service: PresetService = Depends(get_preset_service),
) -> SystemPreset:
    return await preset_service.create_preset(payload)


@router.get(
    "/default",
    response_model=PresetRead | None,
    dependencies=[
        Depends(rate_limit("presets.get")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def get_default_preset(
    preset_service: PresetService = Depends(get_preset_service),
) -> SystemPreset | None:
    return await preset_service.get_default_preset()


@router.post(
    "/from-current",
    response_model=PresetRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(rate_limit("presets.create_from_current")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def create_preset_from_current(
    payload: PresetFromCurrentRequest,
    preset_service: PresetService = Depends(get_preset_service),
) -> SystemPreset:
    return await preset_service.create_preset_from_current(
        payload.key, payload.name, payload.description
    )


@router.get(
    "/{key}",
    response_model=PresetRead,
    dependencies=[
        Depends(rate_limit("presets.get")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def get_preset(
    key: str,
    preset_service: PresetService = Depends(get_preset_service),
) -> SystemPreset:
    preset = await preset_service.get_preset_by_key(key)
    if preset is None:
        raise NotFoundError(PRESET_NOT_FOUND, details={"key": key})
    return preset


@router.patch(
    "/{preset_id}",
    response_model=PresetRead,
    dependencies=[
        Depends(rate_limit("presets.update")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def update_preset(
    preset_id: uuid.UUID,
    payload: PresetUpdate,
    preset_service: PresetService = Depends(get_preset_service),
) -> SystemPreset:
    return await preset_service.update_preset(preset_id, payload)


@router.delete(
    "/{preset_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[
        Depends(rate_limit("presets.remove")),
        Depends(require_admin_permission(SETTINGS_MODULE, "delete")),
    ],
)
async def remove_preset(
    preset_id: uuid.UUID,
    preset_service: PresetService = Depends(get_preset_service),
) -> Response:
    await preset_service.remove_preset(preset_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{key}/apply",
    response_model=PresetApplyResult,
    dependencies=[Depends(rate_limit("presets.apply"))],
)
async def apply_preset(
    key: str,
    admin: AuthorizedAdmin = Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    preset_service: PresetService = Depends(get_preset_service),
) -> PresetApplyResult:
    changed = await preset_service.apply_preset(key, updated_by=admin.user.id)
    return PresetApplyResult(key=key, changed_modules=changed)


@router.post(
    "/{preset_id}/duplicate",
    response_model=PresetRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(rate_limit("presets.duplicate")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def duplicate_preset(
    preset_id: uuid.UUID,
    payload: PresetDuplicateRequest,
    preset_service: PresetService = Depends(get_preset_service),
) -> SystemPreset:
    return await preset_service.duplicate_preset(preset_id, payload.new_key, payload.new_name)
