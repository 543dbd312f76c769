from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_auth_service, get_bearer_token, rate_limit
from ..models.role import Role
from ..models.user import AdminUser
from ..schemas.auth import AdminUserRead, LoginRequest, LoginResponse, SessionResponse
from ..services.admin.auth_service import AdminAuthService

router = APIRouter(prefix="/admin/auth", tags=["admin-auth"])


def _user_read(user: AdminUser, role: Role | None) -> AdminUserRead:
    return AdminUserRead(
        id=user.id,
        email=user.email,
        name=user.name,
        status=user.status,
        role_id=user.role_id,
        is_super_admin=bool(role and role.is_super_admin),
        last_login_at=user.last_login_at,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit("auth.login"))],
)
async def login(
    payload: LoginRequest,
    auth_service: AdminAuthService = Depends(get_auth_service),
) -> LoginResponse:
    result = await auth_service.login(payload.email, payload.password)
    return LoginResponse(
        token=result.token,
        expires_at=result.expires_at,
        user=_user_read(result.user, result.role),
    )


@router.get(
    "/session",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit("auth.session"))],
)
async def get_session_state(
    token: str | None = Depends(get_bearer_token),
    auth_service: AdminAuthService = Depends(get_auth_service),
) -> SessionResponse:
    check = await auth_service.verify_session(token)
    return SessionResponse(
        valid=check.valid,
        message=check.message,
        user=_user_read(check.user, check.role) if check.user else None,
        permissions=check.permissions,
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("auth.logout"))],
)
async def logout(
    token: str | None = Depends(get_bearer_token),
    auth_service: AdminAuthService = Depends(get_auth_service),
) -> Response:
    await auth_service.logout(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
