"""
appforge Models

ORM models (database tables):
    from src.models import Application, AppVersion
    from src.models.orm import Application, AppVersion
    from src.models.orm.applications import Application  # Granular access

Pydantic contracts (API request/response):
    from src.models.contracts.app_import_export import AppSnapshot
"""

# ORM models (database tables)
from src.models.orm import (
    AppEnvironment,
    AppGroupPermission,
    Application,
    AppVersion,
    Base,
    Credential,
    DataQuery,
    DataSource,
    DataSourceOptions,
    GroupPermission,
    Organization,
)

__all__ = [
    "AppEnvironment",
    "AppGroupPermission",
    "Application",
    "AppVersion",
    "Base",
    "Credential",
    "DataQuery",
    "DataSource",
    "DataSourceOptions",
    "GroupPermission",
    "Organization",
]
