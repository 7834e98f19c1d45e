"""
Organization ORM model.

Represents tenant organizations. Applications and permission groups are
always scoped to one organization.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.orm.base import Base

if TYPE_CHECKING:
    from src.models.orm.applications import Application
    from src.models.orm.permissions import GroupPermission


class Organization(Base):
    """Organization database table."""

    __tablename__ = "organizations"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    # Relationships
    applications: Mapped[list["Application"]] = relationship(back_populates="organization")
    group_permissions: Mapped[list["GroupPermission"]] = relationship(
        back_populates="organization"
    )
