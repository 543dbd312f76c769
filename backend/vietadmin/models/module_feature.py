import uuid

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import expression

from .base import Base


class ModuleFeature(Base):
    __tablename__ = "module_features"
    __table_args__ = (
        UniqueConstraint("module_key", "feature_key", name="uq_module_features_module_feature"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    module_key: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("admin_modules.key", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    feature_key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    # field_key of a module field that follows this feature's enabled flag
    linked_field_key: Mapped[str | None] = mapped_column(String(100))
