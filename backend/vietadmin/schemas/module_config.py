import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..models.module_field import FieldType

# camelCase keys such as "enableGallery" or "salePrice"
CONFIG_KEY_PATTERN = r"^[A-Za-z][A-Za-z0-9_]*$"


class FieldRead(BaseModel):
    id: uuid.UUID
    module_key: str
    field_key: str
    name: str
    type: FieldType
    group: str | None = None
    linked_feature: str | None = None
    required: bool
    enabled: bool
    is_system: bool
    order: int

    model_config = ConfigDict(from_attributes=True)


class FieldCreate(BaseModel):
    field_key: str = Field(..., min_length=1, max_length=100, pattern=CONFIG_KEY_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    type: FieldType
    group: str | None = None
    linked_feature: str | None = None
    required: bool = False
    enabled: bool = True
    is_system: bool = False
    order: int | None = Field(None, ge=0)


class FieldUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    type: FieldType | None = None
    group: str | None = None
    linked_feature: str | None = None
    required: bool | None = None
    enabled: bool | None = None
    order: int | None = Field(None, ge=0)


class FeatureRead(BaseModel):
    id: uuid.UUID
    module_key: str
    feature_key: str
    name: str
    description: str | None = None
    enabled: bool
    linked_field_key: str | None = None

    model_config = ConfigDict(from_attributes=True)


class FeatureCreate(BaseModel):
    feature_key: str = Field(..., min_length=1, max_length=100, pattern=CONFIG_KEY_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    enabled: bool = True
    linked_field_key: str | None = None


class FeatureToggleRequest(BaseModel):
    enabled: bool


class SettingRead(BaseModel):
    module_key: str
    setting_key: str
    value: Any = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class SettingValue(BaseModel):
    value: Any = None
