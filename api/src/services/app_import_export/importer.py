"""
App graph importer.

Rebuilds a normalized snapshot as a new application, in dependency order:
application -> versions -> environments -> data sources -> data source
options -> queries, then rewrites the event bindings of queries and
definitions to the new query ids.

All work goes through the session it is given; the caller owns the
transaction.
"""

import copy
import logging
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from src.models.contracts.app_import_export import SnapshotVersion
from src.models.orm.applications import AppEnvironment, Application, AppVersion
from src.models.orm.data_sources import DataQuery, DataSource, DataSourceOptions
from src.services.app_import_export.legacy import NormalizedSnapshot
from src.services.app_import_export.permissions import seed_admin_permissions
from src.services.app_import_export.remapper import (
    ReferenceMap,
    remap_definition,
    remap_query_options,
)
from src.services.data_source_options import import_options, parse_options_for_create

logger = logging.getLogger(__name__)


class AppImporter:
    """Builds one application from one normalized snapshot."""

    def __init__(
        self,
        session: AsyncSession,
        default_environment_name: str = "production",
        admin_group: str = "admin",
    ):
        self.session = session
        self.default_environment_name = default_environment_name
        self.admin_group = admin_group
        self.refs = ReferenceMap()
        self._versions: dict[str, AppVersion] = {}

    async def build(
        self,
        normalized: NormalizedSnapshot,
        organization_id: UUID,
        user_id: UUID | None = None,
    ) -> Application:
        """Create the application graph and seed its admin permissions."""
        snapshot = normalized.snapshot

        app = await self.create_shell_app(normalized, organization_id, user_id)

        for source_version in snapshot.app_versions:
            await self.create_version(app, source_version, normalized)

        for source_version in snapshot.app_versions:
            await self.build_version_graph(source_version, normalized)

        await self.touch_latest_version(snapshot.app_versions)
        await seed_admin_permissions(self.session, app, organization_id, group=self.admin_group)

        logger.info(
            f"Imported app '{app.name}' as {app.id}: {len(self.refs.versions)} versions, "
            f"{sum(len(m) for m in self.refs.data_sources.values())} data sources, "
            f"{sum(len(m) for m in self.refs.data_queries.values())} queries"
        )
        return app

    async def create_shell_app(
        self,
        normalized: NormalizedSnapshot,
        organization_id: UUID,
        user_id: UUID | None,
    ) -> Application:
        # slug stays NULL until after commit, so the unique index is never hit mid-import
        app = Application(
            name=normalized.snapshot.app.name,
            organization_id=organization_id,
            created_by=user_id,
            slug=None,
            is_public=False,
        )
        self.session.add(app)
        await self.session.flush()
        return app

    async def create_version(
        self,
        app: Application,
        source_version: SnapshotVersion,
        normalized: NormalizedSnapshot,
    ) -> AppVersion:
        version = AppVersion(
            app_id=app.id,
            name=source_version.name,
            definition=copy.deepcopy(source_version.definition),
        )
        self.session.add(version)
        await self.session.flush()

        if normalized.synthesize_environments:
            environment = await self._create_default_environment(version)
            self.refs.default_environments[source_version.id] = environment.id

        if source_version.id == normalized.snapshot.current_version_id:
            app.current_version_id = version.id
            await self.session.flush()

        self.refs.versions[source_version.id] = version.id
        self._versions[source_version.id] = version
        return version

    async def _create_default_environment(self, version: AppVersion) -> AppEnvironment:
        environment = AppEnvironment(
            app_version_id=version.id,
            name=self.default_environment_name,
            is_default=True,
        )
        self.session.add(environment)
        await self.session.flush()
        return environment

    async def build_version_graph(
        self,
        source_version: SnapshotVersion,
        normalized: NormalizedSnapshot,
    ) -> None:
        """Create everything that hangs off one version, then remap its references."""
        version = self._versions[source_version.id]

        await self.create_environments(source_version, version, normalized)
        legacy_bags = await self.create_data_sources(source_version, version, normalized)
        await self.create_data_source_options(source_version, normalized, legacy_bags)
        queries = await self.create_data_queries(source_version, normalized)

        query_ids = self.refs.query_ids_for(source_version.id)
        for query in queries:
            query.options = remap_query_options(query.options, query_ids)
        version.definition = remap_definition(version.definition, query_ids)
        await self.session.flush()

    async def create_environments(
        self,
        source_version: SnapshotVersion,
        version: AppVersion,
        normalized: NormalizedSnapshot,
    ) -> None:
        if normalized.synthesize_environments:
            return

        environment_ids = self.refs.environments_for(source_version.id)
        default_id: UUID | None = None
        first_id: UUID | None = None

        for source_env in normalized.snapshot.app_environments:
            if source_env.version_id != source_version.id:
                continue
            environment = AppEnvironment(
                id=uuid4(),
                app_version_id=version.id,
                name=source_env.name,
                is_default=source_env.is_default,
            )
            self.session.add(environment)
            environment_ids[source_env.id] = environment.id
            first_id = first_id or environment.id
            if source_env.is_default and default_id is None:
                default_id = environment.id

        await self.session.flush()

        if first_id is None:
            logger.debug(f"Version {source_version.id} has no environments; creating a default one")
            environment = await self._create_default_environment(version)
            default_id = environment.id

        self.refs.default_environments[source_version.id] = default_id or first_id

    async def create_data_sources(
        self,
        source_version: SnapshotVersion,
        version: AppVersion,
        normalized: NormalizedSnapshot,
    ) -> dict[str, dict[str, Any]]:
        """
        Create the data sources of one version.

        Sources bound to another version are skipped; sources without a
        version are created for every version.

        Returns:
            Parsed inline option bags, keyed by snapshot data source id
        """
        source_ids = self.refs.data_sources_for(source_version.id)
        legacy_bags: dict[str, dict[str, Any]] = {}

        for source in normalized.snapshot.data_sources:
            if source.app_version_id is not None and source.app_version_id != source_version.id:
                continue

            if source.id in normalized.legacy_options:
                legacy_bags[source.id] = await parse_options_for_create(
                    self.session, normalized.legacy_options[source.id]
                )

            data_source = DataSource(
                id=uuid4(),
                app_version_id=version.id,
                name=source.name,
                kind=source.kind,
            )
            self.session.add(data_source)
            source_ids[source.id] = data_source.id

        await self.session.flush()
        return legacy_bags

    async def create_data_source_options(
        self,
        source_version: SnapshotVersion,
        normalized: NormalizedSnapshot,
        legacy_bags: dict[str, dict[str, Any]],
    ) -> None:
        snapshot = normalized.snapshot
        source_ids = self.refs.data_sources_for(source_version.id)

        if not snapshot.data_source_options and normalized.legacy_options:
            environment_id = self.refs.default_environments[source_version.id]
            for old_source_id, new_source_id in source_ids.items():
                self.session.add(
                    DataSourceOptions(
                        environment_id=environment_id,
                        data_source_id=new_source_id,
                        options=legacy_bags.get(old_source_id, {}),
                    )
                )
        else:
            environment_ids = self.refs.environments_for(source_version.id)
            for entry in snapshot.data_source_options:
                environment_id = environment_ids.get(entry.environment_id or "")
                data_source_id = source_ids.get(entry.data_source or "")
                if environment_id is None or data_source_id is None:
                    continue
                self.session.add(
                    DataSourceOptions(
                        environment_id=environment_id,
                        data_source_id=data_source_id,
                        options=await import_options(self.session, entry.options),
                    )
                )

        await self.session.flush()

    async def create_data_queries(
        self,
        source_version: SnapshotVersion,
        normalized: NormalizedSnapshot,
    ) -> list[DataQuery]:
        """Create the queries whose data source was created for this version."""
        source_ids = self.refs.data_sources_for(source_version.id)
        query_ids = self.refs.data_queries_for(source_version.id)
        queries: list[DataQuery] = []

        for source_query in normalized.snapshot.data_queries:
            data_source_id = source_ids.get(source_query.data_source_id or "")
            if data_source_id is None:
                continue
            query = DataQuery(
                id=uuid4(),
                data_source_id=data_source_id,
                name=source_query.name,
                kind=source_query.kind,
                options=copy.deepcopy(source_query.options),
            )
            self.session.add(query)
            query_ids[source_query.id] = query.id
            queries.append(query)

        await self.session.flush()
        return queries

    async def touch_latest_version(self, source_versions: list[SnapshotVersion]) -> None:
        """Mark the last version of the snapshot as the most recently edited one."""
        if not source_versions:
            return

        version = self._versions[source_versions[-1].id]
        version.updated_at = datetime.utcnow()
        await self.session.flush()
