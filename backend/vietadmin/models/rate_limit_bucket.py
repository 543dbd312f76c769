import uuid

from sqlalchemy import BigInteger, CheckConstraint, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class RateLimitBucket(Base):
    __tablename__ = "rate_limit_buckets"
    __table_args__ = (
        CheckConstraint("tokens >= 0", name="ck_rate_limit_buckets_tokens_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # "{class}:{identifier}"
    key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    tokens: Mapped[int] = mapped_column(Integer, nullable=False)
    # epoch milliseconds
    last_refill: Mapped[int] = mapped_column(BigInteger, nullable=False)
