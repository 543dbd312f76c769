import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy.sql import expression

from .base import Base


class ModuleCategory(str, Enum):
    CONTENT = "content"
    COMMERCE = "commerce"
    USER = "user"
    SYSTEM = "system"
    MARKETING = "marketing"


class DependencyType(str, Enum):
    ALL = "all"
    ANY = "any"


class AdminModule(Base):
    __tablename__ = "admin_modules"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        Index("ix_admin_modules_category_enabled", "category", "enabled"),
        Index("ix_admin_modules_enabled_order", "enabled", "order"),
        CheckConstraint(
            "category IN ('content', 'commerce', 'user', 'system', 'marketing')",
            name="ck_admin_modules_category",
        ),
        CheckConstraint(
            "dependency_type IS NULL OR dependency_type IN ('all', 'any')",
            name="ck_admin_modules_dependency_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    is_core: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    dependencies: Mapped[list[str] | None] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql")
    )
    dependency_type: Mapped[str | None] = mapped_column(String(10))
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("admin_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @validates("category")
    def validate_category(self, key: str, value: str) -> str:
        allowed = {category.value for category in ModuleCategory}
        if value not in allowed:
            raise ValueError(
                f"Invalid category '{value}'. Must be one of: {', '.join(sorted(allowed))}"
            )
        return value

    @validates("dependency_type")
    def validate_dependency_type(self, key: str, value: str | None) -> str | None:
        if value is not None and value not in {item.value for item in DependencyType}:
            raise ValueError(f"Invalid dependency_type '{value}'. Must be 'all' or 'any'")
        return value
