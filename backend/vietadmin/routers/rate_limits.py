from fastapi import APIRouter, Depends, Query

from ..application.rate_limit import RateLimiter, RateLimitType
from ..dependencies import get_rate_limiter, rate_limit, require_admin_permission
from ..schemas.rate_limit import RateLimitStatus

router = APIRouter(prefix="/admin/rate-limits", tags=["admin-rate-limits"])


@router.get(
    "/{limit_type}",
    response_model=RateLimitStatus,
    dependencies=[
        Depends(rate_limit("rate_limits.inspect")),
        Depends(require_admin_permission("settings", "view")),
    ],
)
async def inspect_bucket(
    limit_type: RateLimitType,
    identifier: str = Query(..., min_length=1, max_length=200),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RateLimitStatus:
    result = await limiter.check(identifier, limit_type)
    return RateLimitStatus(
        limit_type=limit_type,
        identifier=identifier,
        allowed=result.allowed,
        remaining=result.remaining,
        reset_in=result.reset_in,
    )
