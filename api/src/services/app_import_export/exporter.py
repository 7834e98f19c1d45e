"""
App graph exporter.

Loads an application and every entity that depends on it, each collection
ordered by creation time, and assembles them into an AppSnapshot.
Credential-backed option values are inlined so the snapshot does not
depend on credential rows of this database.
"""

import copy
import logging
from datetime import datetime
from typing import Any, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AppNotFoundError
from src.models.contracts.app_import_export import (
    AppSnapshot,
    SnapshotApp,
    SnapshotDataQuery,
    SnapshotDataSource,
    SnapshotDataSourceOptions,
    SnapshotEnvironment,
    SnapshotVersion,
)
from src.models.orm.applications import AppEnvironment, Application, AppVersion
from src.models.orm.data_sources import DataQuery, DataSource, DataSourceOptions
from src.services.data_source_options import export_options

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def _str_id(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


class AppExporter:
    """Reads one application graph through the given session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _all(self, query: Select[tuple[ModelT]]) -> Sequence[ModelT]:
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_app(self, organization_id: UUID, app_id: UUID) -> Application:
        """Get an application of the organization, or raise AppNotFoundError."""
        query = select(Application).where(
            Application.id == app_id,
            Application.organization_id == organization_id,
        )
        result = await self.session.execute(query)
        app = result.scalar_one_or_none()
        if app is None:
            raise AppNotFoundError(app_id)
        return app

    async def export(self, organization_id: UUID, app_id: UUID) -> AppSnapshot:
        """
        Export an application graph.

        Each query is scoped by the ids loaded by the previous one:
        versions -> data sources -> queries, versions -> environments ->
        data source options.
        """
        app = await self.get_app(organization_id, app_id)

        versions = await self._all(
            select(AppVersion)
            .where(AppVersion.app_id == app.id)
            .order_by(AppVersion.created_at, AppVersion.id)
        )
        version_ids = [v.id for v in versions]

        data_sources: Sequence[DataSource] = []
        environments: Sequence[AppEnvironment] = []
        if version_ids:
            data_sources = await self._all(
                select(DataSource)
                .where(DataSource.app_version_id.in_(version_ids))
                .order_by(DataSource.created_at, DataSource.id)
            )
            environments = await self._all(
                select(AppEnvironment)
                .where(AppEnvironment.app_version_id.in_(version_ids))
                .order_by(AppEnvironment.created_at, AppEnvironment.id)
            )

        data_queries: Sequence[DataQuery] = []
        if data_sources:
            data_queries = await self._all(
                select(DataQuery)
                .where(DataQuery.data_source_id.in_([s.id for s in data_sources]))
                .order_by(DataQuery.created_at, DataQuery.id)
            )

        data_source_options: Sequence[DataSourceOptions] = []
        if environments:
            data_source_options = await self._all(
                select(DataSourceOptions)
                .where(DataSourceOptions.environment_id.in_([e.id for e in environments]))
                .order_by(DataSourceOptions.created_at, DataSourceOptions.id)
            )

        exported_options = [
            await export_options(self.session, o.options) for o in data_source_options
        ]

        logger.info(
            f"Exported app {app.id}: {len(versions)} versions, {len(environments)} environments, "
            f"{len(data_sources)} data sources, {len(data_queries)} queries"
        )

        return AppSnapshot(
            app=SnapshotApp(
                id=str(app.id),
                name=app.name,
                slug=app.slug,
                is_public=app.is_public,
                current_version_id=_str_id(app.current_version_id),
                created_at=app.created_at,
                updated_at=app.updated_at,
            ),
            current_version_id=_str_id(app.current_version_id),
            app_versions=[
                SnapshotVersion(
                    id=str(v.id),
                    name=v.name,
                    definition=_copy_json(v.definition),
                    created_at=v.created_at,
                    updated_at=v.updated_at,
                )
                for v in versions
            ],
            app_environments=[
                SnapshotEnvironment(
                    id=str(e.id),
                    version_id=str(e.app_version_id),
                    name=e.name,
                    is_default=e.is_default,
                )
                for e in environments
            ],
            data_sources=[
                SnapshotDataSource(
                    id=str(s.id),
                    name=s.name,
                    kind=s.kind,
                    app_version_id=str(s.app_version_id),
                )
                for s in data_sources
            ],
            data_source_options=[
                SnapshotDataSourceOptions(
                    id=str(o.id),
                    environment_id=str(o.environment_id),
                    data_source=str(o.data_source_id),
                    options=options,
                )
                for o, options in zip(data_source_options, exported_options)
            ],
            data_queries=[
                SnapshotDataQuery(
                    id=str(q.id),
                    name=q.name,
                    kind=q.kind,
                    data_source_id=str(q.data_source_id),
                    options=_copy_json(q.options),
                )
                for q in data_queries
            ],
            exported_at=datetime.utcnow(),
        )


def _copy_json(value: dict[str, Any] | None) -> dict[str, Any] | None:
    return copy.deepcopy(value) if value is not None else None
