import logging
from collections.abc import AsyncGenerator
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .application.rate_limit import (
    OPERATION_RATE_LIMITS,
    RATE_LIMIT_MESSAGE,
    RateLimiter,
    RateLimitResult,
)
from .config import settings
from .crud.rate_limit_bucket import DatabaseBucketStore
from .database import AsyncSessionLocal, get_session
from .errors import AuthError, PermissionError, RateLimitedError
from .infra.redis import RedisBucketStore, get_redis
from .services.admin.auth_service import AdminAuthService, AuthorizedAdmin
from .services.admin.module_config_service import ModuleConfigService
from .services.admin.module_service import ModuleService
from .services.admin.preset_service import PresetService
from .services.admin.role_service import RoleService

logger = logging.getLogger("vietadmin.rbac")
rate_limit_logger = logging.getLogger("vietadmin.ratelimit")

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def client_ip(request: Request) -> str:
    client_host = request.client.host if request.client else None
    return client_host or "unknown-ip"


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    return credentials.credentials or None


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AdminAuthService:
    return AdminAuthService(db)


def get_module_service(db: AsyncSession = Depends(get_db)) -> ModuleService:
    return ModuleService(db)


def get_module_config_service(db: AsyncSession = Depends(get_db)) -> ModuleConfigService:
    return ModuleConfigService(db)


def get_preset_service(db: AsyncSession = Depends(get_db)) -> PresetService:
    return PresetService(db)


def get_role_service(db: AsyncSession = Depends(get_db)) -> RoleService:
    return RoleService(db)


async def get_rate_limiter() -> AsyncGenerator[RateLimiter, None]:
    """Yield a limiter bound to the configured bucket store.

    The database store runs in its own session so consumed tokens are
    committed even when the request itself fails and rolls back.
    """
    if settings.rate_limit_backend == "redis":
        yield RateLimiter(RedisBucketStore(get_redis(settings.redis_url)))
        return

    async with AsyncSessionLocal() as limiter_session:
        yield RateLimiter(DatabaseBucketStore(limiter_session))


def enforce_rate_limit(result: RateLimitResult, operation: str) -> RateLimitResult:
    if result.allowed:
        return result
    rate_limit_logger.warning(
        "rate_limited operation=%s reset_in_ms=%d", operation, result.reset_in
    )
    raise RateLimitedError(
        RATE_LIMIT_MESSAGE,
        retry_after=result.retry_after_seconds,
        details={"remaining": result.remaining, "reset_in": result.reset_in},
    )


def rate_limit(operation: str) -> Callable:
    """
    Consume one token of ``operation``'s class for the calling client.

    Args:
        operation: Registered operation identifier, e.g. ``"presets.apply"``

    Raises:
        ValueError: at route definition time if ``operation`` is not registered
    """
    if operation not in OPERATION_RATE_LIMITS:
        raise ValueError(f"Operation '{operation}' has no rate limit class")
    limit_type = OPERATION_RATE_LIMITS[operation]

    async def dependency(
        request: Request,
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> RateLimitResult:
        result = await limiter.consume(client_ip(request), limit_type)
        return enforce_rate_limit(result, operation)

    return dependency


def require_admin_permission(module_key: str, action: str) -> Callable:
    """
    Resolve the admin behind the bearer token and demand ``action`` on
    ``module_key``.

    Authentication failures answer 401, missing grants answer 403. Both are
    logged with the request path and method.
    """
    async def dependency(
        request: Request,
        token: str | None = Depends(get_bearer_token),
        auth_service: AdminAuthService = Depends(get_auth_service),
    ) -> AuthorizedAdmin:
        try:
            return await auth_service.require_admin_permission(token, module_key, action)
        except PermissionError:
            logger.warning(
                "permission_denied module=%s action=%s method=%s path=%s",
                module_key,
                action,
                request.method,
                request.url.path,
            )
            raise
        except AuthError as exc:
            logger.warning(
                "admin_auth_failed code=%s method=%s path=%s",
                exc.code,
                request.method,
                request.url.path,
            )
            raise

    return dependency
