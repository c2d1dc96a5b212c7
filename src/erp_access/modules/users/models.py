"""User database models."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from erp_access.core.constants import MAX_EMAIL_LENGTH, MAX_NAME_LENGTH
from erp_access.core.database.base import Base, TenantMixin, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """User model representing an authenticated subject.

    Only the columns the access-control tables and the seeding tools
    need are mapped here; profile data is owned by the identity service.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH),
        nullable=False,
        index=True,
    )
    full_name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, tenant_id={self.tenant_id})>"
