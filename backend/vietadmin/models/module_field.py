import uuid
from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy.sql import expression

from .base import Base


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    RICHTEXT = "richtext"
    NUMBER = "number"
    PRICE = "price"
    BOOLEAN = "boolean"
    IMAGE = "image"
    GALLERY = "gallery"
    SELECT = "select"
    DATE = "date"
    DATERANGE = "daterange"
    EMAIL = "email"
    PHONE = "phone"
    TAGS = "tags"
    PASSWORD = "password"
    JSON = "json"
    COLOR = "color"


class ModuleField(Base):
    """A configurable form field shown for a module's records."""

    __tablename__ = "module_fields"
    __table_args__ = (
        UniqueConstraint("module_key", "field_key", name="uq_module_fields_module_field"),
        Index("ix_module_fields_module_order", "module_key", "order"),
        Index("ix_module_fields_module_enabled", "module_key", "enabled"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    module_key: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("admin_modules.key", ondelete="CASCADE"),
        nullable=False,
    )
    field_key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    group: Mapped[str | None] = mapped_column(String(100))
    linked_feature: Mapped[str | None] = mapped_column(String(100))
    required: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    is_system: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @validates("type")
    def validate_type(self, key: str, value: str) -> str:
        if value not in {item.value for item in FieldType}:
            raise ValueError(f"Invalid field type '{value}'")
        return value
