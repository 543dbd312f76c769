from fastapi import APIRouter, Depends, Query

from ..dependencies import get_auth_service, get_bearer_token, rate_limit
from ..schemas.auth import PermissionCheckResponse
from ..services.admin.auth_service import AdminAuthService

router = APIRouter(prefix="/admin/permissions", tags=["admin-permissions"])


@router.get(
    "/check",
    response_model=PermissionCheckResponse,
    dependencies=[Depends(rate_limit("permissions.check"))],
)
async def check_permission(
    module_key: str = Query(..., min_length=1, max_length=100),
    action: str = Query(..., min_length=1, max_length=50),
    token: str | None = Depends(get_bearer_token),
    auth_service: AdminAuthService = Depends(get_auth_service),
) -> PermissionCheckResponse:
    decision = await auth_service.check_permission(token, module_key, action)
    return PermissionCheckResponse(allowed=decision.allowed, reason=decision.reason)
