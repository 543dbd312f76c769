import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)


class AdminUserRead(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    status: str
    role_id: uuid.UUID
    is_super_admin: bool = False
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    token: str
    expires_at: datetime
    user: AdminUserRead


class SessionResponse(BaseModel):
    valid: bool
    message: str
    user: AdminUserRead | None = None
    permissions: dict[str, list[str]] = Field(default_factory=dict)


class PermissionCheckResponse(BaseModel):
    allowed: bool
    reason: str
