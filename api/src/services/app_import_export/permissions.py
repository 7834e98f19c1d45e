"""
Default permissions for imported applications.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.orm.applications import Application
from src.models.orm.permissions import AppGroupPermission, GroupPermission

logger = logging.getLogger(__name__)

ADMIN_PERMISSIONS = {"read": True, "update": True, "delete": True}


async def seed_admin_permissions(
    session: AsyncSession,
    app: Application,
    organization_id: UUID,
    group: str = "admin",
) -> AppGroupPermission | None:
    """
    Grant the organization's admin group full rights on an application.

    Only the oldest matching group receives a grant, even when the
    organization has several groups with the admin tag.

    Returns:
        The grant that was created, or None if the organization has no
        admin group
    """
    result = await session.execute(
        select(GroupPermission)
        .where(
            GroupPermission.organization_id == organization_id,
            GroupPermission.group == group,
        )
        .order_by(GroupPermission.created_at, GroupPermission.id)
    )

    for group_permission in result.scalars().all():
        grant = AppGroupPermission(
            group_permission_id=group_permission.id,
            app_id=app.id,
            **ADMIN_PERMISSIONS,
        )
        session.add(grant)
        await session.flush()
        logger.debug(f"Granted group {group_permission.id} admin rights on app {app.id}")
        return grant

    logger.warning(f"Organization {organization_id} has no '{group}' group; app {app.id} has no grants")
    return None
