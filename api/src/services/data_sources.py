"""
Data Source Service

Interactive creation of data sources. Options go through the same parser
that converts legacy snapshot options during import.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import EnvironmentNotFoundError
from src.models.contracts.data_sources import DataSourceCreate
from src.models.orm.applications import AppEnvironment
from src.models.orm.data_sources import DataSource, DataSourceOptions
from src.services.data_source_options import parse_options_for_create

logger = logging.getLogger(__name__)


class DataSourceService:
    """Creates data sources and their per-environment options."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_default_environment(self, app_version_id: UUID) -> AppEnvironment | None:
        """Get the default environment of a version, falling back to the oldest one."""
        query = (
            select(AppEnvironment)
            .where(AppEnvironment.app_version_id == app_version_id)
            .order_by(AppEnvironment.is_default.desc(), AppEnvironment.created_at)
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_environment(
        self, app_version_id: UUID, environment_id: UUID
    ) -> AppEnvironment | None:
        query = select(AppEnvironment).where(
            AppEnvironment.id == environment_id,
            AppEnvironment.app_version_id == app_version_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create_data_source(
        self,
        app_version_id: UUID,
        data: DataSourceCreate,
    ) -> DataSource:
        """
        Create a data source with its options in one environment.

        Uses data.environment_id when given, otherwise the version's default
        environment.

        Raises:
            EnvironmentNotFoundError: If the environment does not belong to
                the version, or the version has no environment at all
        """
        if data.environment_id is not None:
            environment = await self.get_environment(app_version_id, data.environment_id)
        else:
            environment = await self.get_default_environment(app_version_id)

        if environment is None:
            raise EnvironmentNotFoundError(
                f"No environment found for app version {app_version_id}"
            )

        data_source = DataSource(
            app_version_id=app_version_id,
            name=data.name,
            kind=data.kind,
        )
        self.session.add(data_source)
        await self.session.flush()

        options = await parse_options_for_create(self.session, data.options)
        self.session.add(
            DataSourceOptions(
                data_source_id=data_source.id,
                environment_id=environment.id,
                options=options,
            )
        )
        await self.session.flush()

        logger.info(
            f"Created data source '{data.name}' ({data.kind}) in environment '{environment.name}'"
        )
        return data_source
