"""
Admin session authentication and permission checks.

Sessions are opaque ``adm_`` bearer tokens; only their sha256 digest is
stored. Every admin endpoint resolves its caller through
``require_admin_permission`` which raises, in order: missing token, invalid
or expired session, inactive account, missing role, permission denied.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ...auth.passwords import hash_password, needs_rehash, verify_password
from ...auth.permissions import (
    REASON_DENIED,
    PermissionDecision,
    evaluate_role,
)
from ...config import settings
from ...crud.admin_module import AdminModuleRepository
from ...crud.admin_session import AdminSessionRepository
from ...crud.role import RoleRepository
from ...crud.user import AdminUserRepository
from ...errors import (
    AuthError,
    InvalidAccountError,
    InvalidSessionError,
    MissingTokenError,
    PermissionError,
    RoleNotFoundError,
)
from ...models.role import Role
from ...models.user import AdminUser
from ...utils.security import (
    SESSION_TOKEN_PREFIX,
    generate_session_token,
    hash_session_token,
)

logger = logging.getLogger("vietadmin.auth")

INVALID_CREDENTIALS_MESSAGE = "Email hoặc mật khẩu không đúng"
ACCOUNT_DISABLED_MESSAGE = "Tài khoản đã bị vô hiệu hóa"
MODULE_DISABLED_REASON = "Module chưa được bật"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class AuthorizedAdmin:
    role: Role
    user: AdminUser


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: AdminUser
    role: Role | None
    expires_at: datetime


@dataclass(frozen=True)
class SessionCheck:
    valid: bool
    message: str
    user: AdminUser | None = None
    role: Role | None = None
    permissions: dict[str, list[str]] = field(default_factory=dict)


class AdminAuthService:
    def __init__(self, session: AsyncSession, clock=_utcnow):
        self.session = session
        self.users = AdminUserRepository(session)
        self.roles = RoleRepository(session)
        self.sessions = AdminSessionRepository(session)
        self.modules = AdminModuleRepository(session)
        self._clock = clock

    async def _resolve_user(self, token: str | None) -> AdminUser:
        if not token:
            raise MissingTokenError()

        admin_session = await self.sessions.get_by_token_hash(hash_session_token(token))
        if admin_session is None or _as_utc(admin_session.expires_at) <= self._clock():
            raise InvalidSessionError()

        user = await self.users.get_by_id(admin_session.user_id)
        if user is None or not user.is_active:
            raise InvalidAccountError()
        return user

    async def _resolve_role(self, user: AdminUser) -> Role:
        role = await self.roles.get_by_id(user.role_id)
        if role is None:
            raise RoleNotFoundError()
        return role

    async def require_admin_permission(
        self, token: str | None, module_key: str, action: str
    ) -> AuthorizedAdmin:
        """Resolve the caller and demand ``action`` on ``module_key``.

        Raises:
            AuthError: token, session, account or role could not be resolved
            PermissionError: the role does not grant the action
        """
        user = await self._resolve_user(token)
        role = await self._resolve_role(user)

        decision = evaluate_role(role, module_key, action)
        if not decision.allowed:
            raise PermissionError(
                details={"module_key": module_key, "action": action}
            )
        return AuthorizedAdmin(role=role, user=user)

    async def check_permission(
        self, token: str | None, module_key: str, action: str
    ) -> PermissionDecision:
        """Non-raising variant that also requires the module to be enabled."""
        try:
            user = await self._resolve_user(token)
            role = await self._resolve_role(user)
        except AuthError as exc:
            return PermissionDecision(False, exc.message)

        if not role.is_super_admin:
            module = await self.modules.get_by_key(module_key)
            if module is None or not module.enabled:
                return PermissionDecision(False, MODULE_DISABLED_REASON)

        decision = evaluate_role(role, module_key, action)
        if not decision.allowed:
            return PermissionDecision(False, REASON_DENIED)
        return decision

    async def login(self, email: str, password: str) -> LoginResult:
        user = await self.users.get_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            logger.info("admin_login_failed email=%s", email)
            raise AuthError(INVALID_CREDENTIALS_MESSAGE)

        if not user.is_active:
            logger.info("admin_login_rejected user_id=%s status=%s", user.id, user.status)
            raise AuthError(ACCOUNT_DISABLED_MESSAGE)

        now = self._clock()
        expires_at = now + timedelta(hours=settings.admin_session_ttl_hours)
        token = generate_session_token()
        new_hash = hash_password(password) if needs_rehash(user.password_hash) else None

        try:
            await self.sessions.create(user.id, hash_session_token(token), expires_at)
            await self.users.record_login(user, now, password_hash=new_hash)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        if new_hash is not None:
            logger.info("admin_password_rehashed user_id=%s scheme=bcrypt", user.id)
        role = await self.roles.get_by_id(user.role_id)
        return LoginResult(token=token, user=user, role=role, expires_at=expires_at)

    async def verify_session(self, token: str | None) -> SessionCheck:
        if not token or not token.startswith(SESSION_TOKEN_PREFIX):
            return SessionCheck(valid=False, message="Token không hợp lệ")

        admin_session = await self.sessions.get_by_token_hash(hash_session_token(token))
        if admin_session is None:
            return SessionCheck(valid=False, message="Session không tồn tại")
        if _as_utc(admin_session.expires_at) <= self._clock():
            return SessionCheck(valid=False, message="Session đã hết hạn")

        user = await self.users.get_by_id(admin_session.user_id)
        if user is None or not user.is_active:
            return SessionCheck(valid=False, message=InvalidAccountError.message)

        role = await self.roles.get_by_id(user.role_id)
        return SessionCheck(
            valid=True,
            message="Session hợp lệ",
            user=user,
            role=role,
            permissions=dict(role.permissions) if role else {},
        )

    async def logout(self, token: str | None) -> bool:
        if not token:
            return False
        try:
            deleted = await self.sessions.delete_by_token_hash(hash_session_token(token))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return deleted
