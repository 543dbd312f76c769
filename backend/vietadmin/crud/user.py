import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import AdminUser, UserStatus


class AdminUserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        email: str,
        name: str,
        password_hash: str,
        role_id: uuid.UUID,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> AdminUser:
        user = AdminUser(
            email=email.strip().lower(),
            name=name,
            password_hash=password_hash,
            role_id=role_id,
            status=status.value,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> AdminUser | None:
        return await self.session.get(AdminUser, user_id)

    async def get_by_email(self, email: str) -> AdminUser | None:
        result = await self.session.execute(
            select(AdminUser).where(AdminUser.email == email)
        )
        return result.scalar_one_or_none()

    async def record_login(
        self, user: AdminUser, logged_in_at: datetime, password_hash: str | None = None
    ) -> AdminUser:
        user.last_login_at = logged_in_at
        if password_hash is not None:
            user.password_hash = password_hash
        await self.session.flush()
        return user
