"""
DataSource, DataSourceOptions and DataQuery ORM models.

- data_sources: a connection definition (postgres, restapi, ...) of a version
- data_source_options: the option bag of a data source in one environment
- data_queries: queries run against a data source; their options may hold
  event bindings that trigger other queries by id
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.orm.base import Base, JSONType

if TYPE_CHECKING:
    from src.models.orm.applications import AppEnvironment, AppVersion


class DataSource(Base):
    """Data source of an app version."""

    __tablename__ = "data_sources"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    app_version_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_versions.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[str] = mapped_column(String(255), nullable=False)
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
    version: Mapped["AppVersion"] = relationship("AppVersion", back_populates="data_sources")
    queries: Mapped[list["DataQuery"]] = relationship(
        "DataQuery", back_populates="data_source", cascade="all, delete-orphan"
    )
    options: Mapped[list["DataSourceOptions"]] = relationship(
        "DataSourceOptions", back_populates="data_source", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_data_sources_app_version_id", "app_version_id"),
    )


class DataSourceOptions(Base):
    """Option bag of a data source in one environment.

    options: {"<key>": {"value": ..., "encrypted": False}}
             {"<key>": {"credential_id": "<uuid>", "encrypted": True}}
    """

    __tablename__ = "data_source_options"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    data_source_id: Mapped[UUID] = mapped_column(
        ForeignKey("data_sources.id", ondelete="CASCADE"), nullable=False
    )
    environment_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_environments.id", ondelete="CASCADE"), nullable=False
    )
    options: Mapped[dict[str, Any] | None] = mapped_column(JSONType, default=None)
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
    data_source: Mapped["DataSource"] = relationship("DataSource", back_populates="options")
    environment: Mapped["AppEnvironment"] = relationship("AppEnvironment")

    __table_args__ = (
        Index("ix_data_source_options_environment_id", "environment_id"),
        Index(
            "ix_data_source_options_source_environment",
            "data_source_id",
            "environment_id",
        ),
    )


class DataQuery(Base):
    """Query run against a data source.

    options may contain {"events": [{"eventId": "onDataQuerySuccess",
    "actionId": "run-query", "queryId": "<query id>"}]}.
    """

    __tablename__ = "data_queries"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    data_source_id: Mapped[UUID] = mapped_column(
        ForeignKey("data_sources.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[str] = mapped_column(String(255), nullable=False)
    options: Mapped[dict[str, Any] | None] = mapped_column(JSONType, default=None)
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
    data_source: Mapped["DataSource"] = relationship("DataSource", back_populates="queries")

    __table_args__ = (
        Index("ix_data_queries_data_source_id", "data_source_id"),
    )
