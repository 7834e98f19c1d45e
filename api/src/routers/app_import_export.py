"""
App Import/Export Router

Export an application to a portable snapshot, import a snapshot as a new
application, and create data sources on an application version.
"""

import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, status

from src.core.auth import Context, CurrentUser
from src.core.database import get_session_factory
from src.core.exceptions import (
    AppNotFoundError,
    EnvironmentNotFoundError,
    InvalidSnapshotError,
)
from src.models.contracts.app_import_export import AppSnapshot, ImportedApplication
from src.models.contracts.data_sources import DataSourceCreate, DataSourcePublic
from src.services.app_import_export import AppImportExportService
from src.services.data_sources import DataSourceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/apps", tags=["App Import/Export"])


def get_app_import_export_service() -> AppImportExportService:
    """
    Build the import/export service.

    The service opens its own sessions: imports commit before the slug is
    assigned, so they cannot share the request-scoped session.
    """
    return AppImportExportService(get_session_factory())


ImportExportService = Annotated[AppImportExportService, Depends(get_app_import_export_service)]


@router.get(
    "/{app_id}/export",
    response_model=AppSnapshot,
    summary="Export application snapshot",
)
async def export_app(
    app_id: UUID,
    user: CurrentUser,
    service: ImportExportService,
) -> AppSnapshot:
    """
    Export an application with its versions, environments, data sources,
    data source options and queries.
    """
    try:
        return await service.export_app(user.organization_id, app_id)
    except AppNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.message,
        )


@router.post(
    "/import",
    response_model=ImportedApplication,
    status_code=status.HTTP_201_CREATED,
    summary="Import application snapshot",
)
async def import_app(
    user: CurrentUser,
    service: ImportExportService,
    document: Any = Body(...),
) -> ImportedApplication:
    """
    Import a snapshot as a new application in the caller's organization.

    Snapshots from older exports (flat app fields, inline data source
    options, no environments) are accepted.
    """
    try:
        app = await service.import_app(user.organization_id, document, user_id=user.user_id)
    except InvalidSnapshotError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )
    except Exception as e:
        logger.error(f"Failed to import application: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to import application",
        )

    logger.info(f"User {user.email} imported app {app.id}")
    return ImportedApplication.model_validate(app)


@router.post(
    "/versions/{version_id}/data-sources",
    response_model=DataSourcePublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create a data source",
)
async def create_data_source(
    version_id: UUID,
    data: DataSourceCreate,
    ctx: Context,
) -> DataSourcePublic:
    """Create a data source with its options in one environment of a version."""
    service = DataSourceService(ctx.db)
    try:
        data_source = await service.create_data_source(version_id, data)
    except EnvironmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.message,
        )

    return DataSourcePublic.model_validate(data_source)
