import uuid

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_role_service, rate_limit, require_admin_permission
from ..models.role import Role
from ..schemas.role import RoleCreate, RoleRead, RoleUpdate, RoleUserCount
from ..services.admin.role_service import RoleService

router = APIRouter(prefix="/admin/roles", tags=["admin-roles"])

ROLES_MODULE = "roles"


@router.get(
    "",
    response_model=list[RoleRead],
    dependencies=[
        Depends(rate_limit("roles.list")),
        Depends(require_admin_permission(ROLES_MODULE, "view")),
    ],
)
async def list_roles(
    role_service: RoleService = Depends(get_role_service),
) -> list[Role]:
    return await role_service.list_roles()


@router.get(
    "/user-counts",
    response_model=list[RoleUserCount],
    dependencies=[
        Depends(rate_limit("roles.list")),
        Depends(require_admin_permission(ROLES_MODULE, "view")),
    ],
)
async def user_counts_by_role(
    role_service: RoleService = Depends(get_role_service),
) -> list[RoleUserCount]:
    return await role_service.user_counts_by_role()


@router.post(
    "",
    response_model=RoleRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(rate_limit("roles.create")),
        Depends(require_admin_permission(ROLES_MODULE, "create")),
    ],
)
async def create_role(
    payload: RoleCreate,
    role_service: RoleService = Depends(get_role_service),
) -> Role:
    return await role_service.create_role(payload)


@router.get(
    "/{role_id}",
    response_model=RoleRead,
    dependencies=[
        Depends(rate_limit("roles.get")),
        Depends(require_admin_permission(ROLES_MODULE, "view")),
    ],
)
async def get_role(
    role_id: uuid.UUID,
    role_service: RoleService = Depends(get_role_service),
) -> Role:
    return await role_service.get_role(role_id)


@router.patch(
    "/{role_id}",
    response_model=RoleRead,
    dependencies=[
        Depends(rate_limit("roles.update")),
        Depends(require_admin_permission(ROLES_MODULE, "edit")),
    ],
)
async def update_role(
    role_id: uuid.UUID,
    payload: RoleUpdate,
    role_service: RoleService = Depends(get_role_service),
) -> Role:
    return await role_service.update_role(role_id, payload)


@router.delete(
    "/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[
        Depends(rate_limit("roles.remove")),
        Depends(require_admin_permission(ROLES_MODULE, "delete")),
    ],
)
async def remove_role(
    role_id: uuid.UUID,
    role_service: RoleService = Depends(get_role_service),
) -> Response:
    await role_service.remove_role(role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
