"""
Service layer for admin roles.

System roles are read-only, role names are unique, and a role still
assigned to users cannot be deleted.
"""
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.role import RoleRepository
from ...errors import ConflictError, NotFoundError, ValidationError
from ...models.role import Role
from ...schemas.role import RoleCreate, RoleUpdate, RoleUserCount

logger = logging.getLogger("vietadmin.roles")

ROLE_NOT_FOUND = "Không tìm thấy vai trò"


def duplicate_name_error(name: str) -> ConflictError:
    return ConflictError(f'Tên vai trò "{name}" đã tồn tại', details={"name": name})


class RoleService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = RoleRepository(session)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def _require(self, role_id: uuid.UUID, *, for_update: bool = False) -> Role:
        role = await self.repo.get_by_id(role_id, for_update=for_update)
        if role is None:
            raise NotFoundError(ROLE_NOT_FOUND, details={"role_id": str(role_id)})
        return role

    async def list_roles(self) -> list[Role]:
        return await self.repo.list_all()

    async def get_role(self, role_id: uuid.UUID) -> Role:
        return await self._require(role_id)

    async def user_counts_by_role(self) -> list[RoleUserCount]:
        return [
            RoleUserCount(role_id=role.id, role_name=role.name, user_count=count)
            for role, count in await self.repo.user_counts()
        ]

    async def create_role(self, data: RoleCreate) -> Role:
        if await self.repo.get_by_name(data.name) is not None:
            raise duplicate_name_error(data.name)
        role = await self.repo.create(
            name=data.name,
            permissions=data.permissions,
            description=data.description,
            color=data.color,
            is_system=data.is_system,
            is_super_admin=data.is_super_admin,
        )
        await self._commit()
        logger.info("role_created id=%s name=%s", role.id, role.name)
        return role

    async def update_role(self, role_id: uuid.UUID, data: RoleUpdate) -> Role:
        role = await self._require(role_id, for_update=True)
        if role.is_system:
            raise ValidationError(
                "Không thể chỉnh sửa vai trò hệ thống", details={"role_id": str(role_id)}
            )

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        for required in ("name", "description", "permissions"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be null")

        new_name = changes.get("name")
        if new_name and new_name != role.name and await self.repo.get_by_name(new_name):
            raise duplicate_name_error(new_name)

        await self.repo.update(role, **changes)
        await self._commit()
        logger.info("role_updated id=%s fields=%s", role.id, ",".join(sorted(changes)))
        return role

    async def remove_role(self, role_id: uuid.UUID) -> None:
        role = await self._require(role_id, for_update=True)
        if role.is_system:
            raise ValidationError(
                "Không thể xóa vai trò hệ thống", details={"role_id": str(role_id)}
            )

        assigned = await self.repo.count_users(role.id)
        if assigned:
            raise ConflictError(
                f'Vai trò "{role.name}" đang được gán cho người dùng',
                details={"role_id": str(role_id), "user_count": assigned},
            )

        await self.repo.delete(role)
        await self._commit()
        logger.info("role_removed id=%s name=%s", role_id, role.name)
