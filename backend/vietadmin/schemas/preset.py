import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .module import MODULE_KEY_PATTERN


class PresetRead(BaseModel):
    id: uuid.UUID
    key: str
    name: str
    description: str
    enabled_modules: list[str]
    is_default: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PresetCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=100, pattern=MODULE_KEY_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    enabled_modules: list[str] = Field(default_factory=list)
    is_default: bool = False


class PresetUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    enabled_modules: list[str] | None = None
    is_default: bool | None = None


class PresetFromCurrentRequest(BaseModel):
    key: str = Field(..., min_length=1, max_length=100, pattern=MODULE_KEY_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""


class PresetDuplicateRequest(BaseModel):
    new_key: str = Field(..., min_length=1, max_length=100, pattern=MODULE_KEY_PATTERN)
    new_name: str = Field(..., min_length=1, max_length=255)


class PresetApplyResult(BaseModel):
    key: str
    changed_modules: list[str]
