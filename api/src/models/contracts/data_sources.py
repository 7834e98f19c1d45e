"""Pydantic models for data sources and their options."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DataSourceOption(BaseModel):
    """One option of a data source, as entered by a user."""

    key: str
    value: Any = None
    encrypted: bool = False


class DataSourceCreate(BaseModel):
    """Input for creating a data source interactively."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    kind: str = Field(min_length=1, max_length=255)
    options: list[DataSourceOption] = Field(default_factory=list)
    environment_id: UUID | None = Field(default=None, alias="environmentId")


class DataSourcePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    name: str
    kind: str
    app_version_id: UUID = Field(alias="appVersionId")
