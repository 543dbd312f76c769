import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from ..dependencies import get_module_config_service, rate_limit, require_admin_permission
from ..errors import NotFoundError
from ..models.module_feature import ModuleFeature
from ..models.module_field import ModuleField
from ..models.module_setting import ModuleSetting
from ..schemas.module_config import (
    FeatureCreate,
    FeatureRead,
    FeatureToggleRequest,
    FieldCreate,
    FieldRead,
    FieldUpdate,
    SettingRead,
    SettingValue,
)
from ..services.admin.module_config_service import FEATURE_NOT_FOUND, ModuleConfigService

router = APIRouter(prefix="/admin/modules", tags=["admin-module-config"])

SETTINGS_MODULE = "settings"


@router.get(
    "/{key}/fields",
    response_model=list[FieldRead],
    dependencies=[
        Depends(rate_limit("module_fields.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def list_fields(
    key: str,
    enabled_only: bool = Query(False),
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> list[ModuleField]:
    return await config_service.list_fields(key, enabled_only=enabled_only)


@router.post(
    "/{key}/fields",
    response_model=FieldRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(rate_limit("module_fields.create")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def create_field(
    key: str,
    payload: FieldCreate,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> ModuleField:
    return await config_service.create_field(key, payload)


@router.patch(
    "/{key}/fields/{field_id}",
    response_model=FieldRead,
    dependencies=[
        Depends(rate_limit("module_fields.update")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def update_field(
    key: str,
    field_id: uuid.UUID,
    payload: FieldUpdate,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> ModuleField:
    return await config_service.update_field(key, field_id, payload)


@router.delete(
    "/{key}/fields/{field_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[
        Depends(rate_limit("module_fields.remove")),
        Depends(require_admin_permission(SETTINGS_MODULE, "delete")),
    ],
)
async def remove_field(
    key: str,
    field_id: uuid.UUID,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> Response:
    await config_service.remove_field(key, field_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{key}/features",
    response_model=list[FeatureRead],
    dependencies=[
        Depends(rate_limit("module_features.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def list_features(
    key: str,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> list[ModuleFeature]:
    return await config_service.list_features(key)


@router.get(
    "/{key}/features/{feature_key}",
    response_model=FeatureRead,
    dependencies=[
        Depends(rate_limit("module_features.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def get_feature(
    key: str,
    feature_key: str,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> ModuleFeature:
    feature = await config_service.get_feature(key, feature_key)
    if feature is None:
        raise NotFoundError(FEATURE_NOT_FOUND, details={"feature_key": feature_key})
    return feature


@router.post(
    "/{key}/features",
    response_model=FeatureRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(rate_limit("module_features.create")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def create_feature(
    key: str,
    payload: FeatureCreate,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> ModuleFeature:
    return await config_service.create_feature(key, payload)


@router.post(
    "/{key}/features/{feature_key}/toggle",
    response_model=FeatureRead,
    dependencies=[
        Depends(rate_limit("module_features.toggle")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def toggle_feature(
    key: str,
    feature_key: str,
    payload: FeatureToggleRequest,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> ModuleFeature:
    return await config_service.toggle_feature(key, feature_key, payload.enabled)


@router.delete(
    "/{key}/features/{feature_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[
        Depends(rate_limit("module_features.remove")),
        Depends(require_admin_permission(SETTINGS_MODULE, "delete")),
    ],
)
async def remove_feature(
    key: str,
    feature_id: uuid.UUID,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> Response:
    await config_service.remove_feature(key, feature_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{key}/settings",
    response_model=list[SettingRead],
    dependencies=[
        Depends(rate_limit("module_settings.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def list_settings(
    key: str,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> list[ModuleSetting]:
    return await config_service.list_settings(key)


@router.get(
    "/{key}/settings/{setting_key}",
    response_model=SettingRead | None,
    dependencies=[
        Depends(rate_limit("module_settings.list")),
        Depends(require_admin_permission(SETTINGS_MODULE, "view")),
    ],
)
async def get_setting(
    key: str,
    setting_key: str,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> ModuleSetting | None:
    return await config_service.get_setting(key, setting_key)


@router.put(
    "/{key}/settings/{setting_key}",
    response_model=SettingRead,
    dependencies=[
        Depends(rate_limit("module_settings.set")),
        Depends(require_admin_permission(SETTINGS_MODULE, "edit")),
    ],
)
async def set_setting(
    key: str,
    setting_key: str,
    payload: SettingValue,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> ModuleSetting:
    return await config_service.set_setting(key, setting_key, payload.value)


@router.delete(
    "/{key}/settings/{setting_key}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[
        Depends(rate_limit("module_settings.remove")),
        Depends(require_admin_permission(SETTINGS_MODULE, "delete")),
    ],
)
async def remove_setting(
    key: str,
    setting_key: str,
    config_service: ModuleConfigService = Depends(get_module_config_service),
) -> Response:
    await config_service.remove_setting(key, setting_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
