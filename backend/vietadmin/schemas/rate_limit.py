from pydantic import BaseModel

from ..application.rate_limit import RateLimitType


class RateLimitStatus(BaseModel):
    limit_type: RateLimitType
    identifier: str
    allowed: bool
    remaining: int
    reset_in: int
