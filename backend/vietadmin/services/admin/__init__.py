from .auth_service import AdminAuthService, AuthorizedAdmin
from .module_service import ModuleService
from .preset_service import PresetService

__all__ = ["AdminAuthService", "AuthorizedAdmin", "ModuleService", "PresetService"]
