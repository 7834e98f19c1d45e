"""
Application, AppVersion and AppEnvironment ORM models.

An application is a versioned definition graph:
- apps: metadata, organization, pointer to the current version
- app_versions: one row per version, holding the component definition tree
- app_environments: named environments of a version (one is the default)
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.orm.base import Base, JSONType

if TYPE_CHECKING:
    from src.models.orm.data_sources import DataSource
    from src.models.orm.organizations import Organization
    from src.models.orm.permissions import AppGroupPermission


class Application(Base):
    """Application entity for the app builder.

    Imported applications are created with slug = NULL and receive
    slug = str(id) once the import transaction has committed.
    """

    __tablename__ = "apps"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(255), unique=True, default=None)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[UUID | None] = mapped_column(default=None)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")

    current_version_id: Mapped[UUID | None] = mapped_column(
        ForeignKey(
            "app_versions.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_apps_current_version_id",
        ),
        default=None,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="applications"
    )
    versions: Mapped[list["AppVersion"]] = relationship(
        "AppVersion",
        back_populates="app",
        cascade="all, delete-orphan",
        foreign_keys="AppVersion.app_id",
    )
    group_permissions: Mapped[list["AppGroupPermission"]] = relationship(
        "AppGroupPermission", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_apps_organization_id", "organization_id"),
    )


class AppVersion(Base):
    """Version of an application.

    The definition is a JSON tree:
    {"components": {"<component id>": {"component": {"component": "Table",
     "definition": {"events": [...], "properties": {...}}}}}}
    """

    __tablename__ = "app_versions"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    app_id: Mapped[UUID] = mapped_column(
        ForeignKey("apps.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(255), default=None)
    definition: Mapped[dict[str, Any] | None] = mapped_column(JSONType, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )

    # Relationships
    app: Mapped["Application"] = relationship(
        "Application", back_populates="versions", foreign_keys=[app_id]
    )
    environments: Mapped[list["AppEnvironment"]] = relationship(
        "AppEnvironment", back_populates="version", cascade="all, delete-orphan"
    )
    data_sources: Mapped[list["DataSource"]] = relationship(
        "DataSource", back_populates="version", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_app_versions_app_id", "app_id"),
    )


class AppEnvironment(Base):
    """Environment of a version (e.g. "production", "staging").

    Data source options are stored per environment.
    """

    __tablename__ = "app_environments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    app_version_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_versions.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )

    # Relationships
    version: Mapped["AppVersion"] = relationship("AppVersion", back_populates="environments")

    __table_args__ = (
        Index("ix_app_environments_app_version_id", "app_version_id"),
    )
