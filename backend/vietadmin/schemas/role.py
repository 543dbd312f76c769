import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _check_permissions(value: dict[str, list[str]] | None) -> dict[str, list[str]] | None:
    if value is None:
        return value
    for module_key, actions in value.items():
        if not module_key.strip():
            raise ValueError("permission module key must not be empty")
        if any(not action.strip() for action in actions):
            raise ValueError(f"empty action for module '{module_key}'")
    return value


class RoleRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    color: str | None = None
    is_system: bool
    is_super_admin: bool
    permissions: dict[str, list[str]]
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    color: str | None = Field(None, max_length=20)
    permissions: dict[str, list[str]] = Field(default_factory=dict)
    is_system: bool = False
    is_super_admin: bool = False

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, value):
        return _check_permissions(value)


class RoleUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    color: str | None = Field(None, max_length=20)
    permissions: dict[str, list[str]] | None = None

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, value):
        return _check_permissions(value)


class RoleUserCount(BaseModel):
    role_id: uuid.UUID
    role_name: str
    user_count: int
