import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models.admin_module import DependencyType, ModuleCategory

MODULE_KEY_PATTERN = r"^[a-z0-9][a-z0-9_-]*$"


class ModuleRead(BaseModel):
    id: uuid.UUID
    key: str
    name: str
    description: str
    icon: str
    category: ModuleCategory
    enabled: bool
    is_core: bool
    dependencies: list[str] | None = None
    dependency_type: DependencyType | None = None
    order: int
    updated_by: uuid.UUID | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ModuleCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=100, pattern=MODULE_KEY_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    icon: str = Field("", max_length=100)
    category: ModuleCategory
    enabled: bool | None = None
    is_core: bool = False
    dependencies: list[str] | None = None
    dependency_type: DependencyType | None = None
    order: int | None = Field(None, ge=0)


class ModuleUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    icon: str | None = Field(None, max_length=100)
    category: ModuleCategory | None = None
    dependencies: list[str] | None = None
    dependency_type: DependencyType | None = None
    order: int | None = Field(None, ge=0)


class ModuleToggleRequest(BaseModel):
    enabled: bool
    # only honoured when disabling
    cascade_keys: list[str] | None = None


class ModuleToggleResult(BaseModel):
    success: bool
    disabled_modules: list[str] = Field(default_factory=list)


class DependentModule(BaseModel):
    key: str
    name: str
    enabled: bool

    model_config = ConfigDict(from_attributes=True)
