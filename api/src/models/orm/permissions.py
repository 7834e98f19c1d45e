"""
GroupPermission and AppGroupPermission ORM models.

Group permissions are the organization's user groups ("admin",
"all_users", ...). App group permissions grant a group rights on one
application.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.orm.base import Base

if TYPE_CHECKING:
    from src.models.orm.organizations import Organization


class GroupPermission(Base):
    """User group of an organization."""

    __tablename__ = "group_permissions"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    group: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="group_permissions"
    )

    __table_args__ = (
        Index("ix_group_permissions_org_group", "organization_id", "group"),
    )


class AppGroupPermission(Base):
    """Rights of one group on one application."""

    __tablename__ = "app_group_permissions"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    app_id: Mapped[UUID] = mapped_column(
        ForeignKey("apps.id", ondelete="CASCADE"), nullable=False
    )
    group_permission_id: Mapped[UUID] = mapped_column(
        ForeignKey("group_permissions.id", ondelete="CASCADE"), nullable=False
    )
    read: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    update: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    delete: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        Index("ix_app_group_permissions_app_id", "app_id"),
    )
