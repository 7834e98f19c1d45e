"""
Pydantic models for app import/export.

The snapshot document is camelCase on the wire. Ids are the exporting
installation's ids, kept as strings; they are only used to resolve
references between entries of the same snapshot.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

SNAPSHOT_EXPORT_VERSION = "2.0"


class SnapshotApp(BaseModel):
    """Application record of a snapshot."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    name: str = "Untitled app"
    slug: str | None = None
    is_public: bool = Field(default=False, alias="isPublic")
    current_version_id: str | None = Field(default=None, alias="currentVersionId")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class SnapshotVersion(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str | None = None
    definition: dict[str, Any] | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class SnapshotEnvironment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    version_id: str | None = Field(default=None, alias="versionId")
    name: str
    is_default: bool = Field(default=False, alias="isDefault")


class SnapshotDataSource(BaseModel):
    """Data source entry.

    options is only present in snapshots exported before options moved to
    per-environment rows; app_version_id is absent in snapshots older still.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str
    kind: str
    app_version_id: str | None = Field(default=None, alias="appVersionId")
    options: dict[str, Any] | None = None


class SnapshotDataSourceOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    environment_id: str | None = Field(default=None, alias="environmentId")
    data_source: str | None = Field(default=None, alias="dataSource")
    options: dict[str, Any] | None = None


class SnapshotDataQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str
    kind: str
    data_source_id: str | None = Field(default=None, alias="dataSourceId")
    options: dict[str, Any] | None = None


class AppSnapshot(BaseModel):
    """Portable document holding one application's versioned definition graph."""

    model_config = ConfigDict(populate_by_name=True)

    app: SnapshotApp
    current_version_id: str | None = Field(default=None, alias="currentVersionId")
    app_versions: list[SnapshotVersion] = Field(default_factory=list, alias="appVersions")
    app_environments: list[SnapshotEnvironment] = Field(
        default_factory=list, alias="appEnvironments"
    )
    data_sources: list[SnapshotDataSource] = Field(default_factory=list, alias="dataSources")
    data_source_options: list[SnapshotDataSourceOptions] = Field(
        default_factory=list, alias="dataSourceOptions"
    )
    data_queries: list[SnapshotDataQuery] = Field(default_factory=list, alias="dataQueries")
    export_version: str = Field(default=SNAPSHOT_EXPORT_VERSION, alias="exportVersion")
    exported_at: datetime | None = Field(default=None, alias="exportedAt")


class ImportedApplication(BaseModel):
    """Response for a successful import."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    name: str
    slug: str | None = None
    is_public: bool = Field(alias="isPublic")
    current_version_id: UUID | None = Field(default=None, alias="currentVersionId")
    organization_id: UUID = Field(alias="organizationId")
