import uuid
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.admin_session import AdminSession


class AdminSessionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, user_id: uuid.UUID, token_hash: str, expires_at: datetime
    ) -> AdminSession:
        admin_session = AdminSession(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
        )
        self.session.add(admin_session)
        await self.session.flush()
        return admin_session

    async def get_by_token_hash(self, token_hash: str) -> AdminSession | None:
        result = await self.session.execute(
            select(AdminSession).where(AdminSession.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def delete_by_token_hash(self, token_hash: str) -> bool:
        result = await self.session.execute(
            delete(AdminSession).where(AdminSession.token_hash == token_hash)
        )
        return bool(result.rowcount)
