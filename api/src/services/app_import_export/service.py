"""
App Import/Export Service

Entry point for copying an application between installations. Each call
owns its unit of work:

- export_app reads the whole graph in one read-only transaction at
  snapshot isolation
- import_app builds the whole graph in one transaction, then assigns the
  slug in a second, short transaction once the id is committed
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import get_settings
from src.core.exceptions import SlugAssignmentError
from src.models.contracts.app_import_export import AppSnapshot
from src.models.orm.applications import Application
from src.services.app_import_export.exporter import AppExporter
from src.services.app_import_export.importer import AppImporter
from src.services.app_import_export.legacy import normalize_snapshot

logger = logging.getLogger(__name__)


class AppImportExportService:
    """Exports and imports application graphs."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        isolation_level: str | None = None,
        default_environment_name: str | None = None,
        admin_group: str | None = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.isolation_level = isolation_level or settings.export_isolation_level or None
        self.default_environment_name = (
            default_environment_name or settings.default_environment_name
        )
        self.admin_group = admin_group or settings.admin_group

    async def export_app(self, organization_id: UUID, app_id: UUID) -> AppSnapshot:
        """
        Export an application of the organization as a snapshot.

        Raises:
            AppNotFoundError: If the application does not exist in the organization
        """
        async with self.session_factory() as session:
            if self.isolation_level:
                # Must run before the first statement of the transaction
                await session.connection(
                    execution_options={"isolation_level": self.isolation_level}
                )
            try:
                return await AppExporter(session).export(organization_id, app_id)
            finally:
                # Read-only: never commit
                await session.rollback()

    async def import_app(
        self,
        organization_id: UUID,
        document: Any,
        user_id: UUID | None = None,
    ) -> Application:
        """
        Import a snapshot document as a new application of the organization.

        Raises:
            InvalidSnapshotError: If the document is not a snapshot; nothing
                is written
            SlugAssignmentError: If the application was created but its slug
                could not be set
        """
        normalized = normalize_snapshot(document)

        async with self.session_factory() as session:
            async with session.begin():
                importer = AppImporter(
                    session,
                    default_environment_name=self.default_environment_name,
                    admin_group=self.admin_group,
                )
                app = await importer.build(normalized, organization_id, user_id)

        return await self._assign_slug(app.id)

    async def _assign_slug(self, app_id: UUID) -> Application:
        """Set the slug of a committed application to its id."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    app = await session.get(Application, app_id)
                    if app is None:
                        raise SlugAssignmentError(
                            app_id, "Imported application disappeared before slug assignment"
                        )
                    app.slug = str(app.id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to assign slug to imported app {app_id}: {e}")
            raise SlugAssignmentError(app_id) from e

        return app
