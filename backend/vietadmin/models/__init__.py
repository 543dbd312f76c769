from .base import Base
from .rate_limit_bucket import RateLimitBucket
from .role import Role
from .user import AdminUser, UserStatus
from .admin_session import AdminSession
from .admin_module import AdminModule, DependencyType, ModuleCategory
from .module_field import FieldType, ModuleField
from .module_feature import ModuleFeature
from .module_setting import ModuleSetting
from .system_preset import SystemPreset

__all__ = [
    "Base",
    "RateLimitBucket",
    "Role",
    "AdminUser",
    "UserStatus",
    "AdminSession",
    "AdminModule",
    "DependencyType",
    "ModuleCategory",
    "FieldType",
    "ModuleField",
    "ModuleFeature",
    "ModuleSetting",
    "SystemPreset",
]
