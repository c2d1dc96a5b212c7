"""Tenant database models."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from erp_access.core.constants import MAX_NAME_LENGTH, MAX_SLUG_LENGTH
from erp_access.core.database.base import Base, TimestampMixin, UUIDMixin


class Tenant(Base, UUIDMixin, TimestampMixin):
    """Tenant model representing a restaurant group or central kitchen.

    Tenant-scoped roles reference this table via tenant_id.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
        index=True,
    )
    slug: Mapped[str] = mapped_column(
        String(MAX_SLUG_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name}, slug={self.slug})>"
