"""
SQLAlchemy ORM Models for appforge

Pure database models using SQLAlchemy 2.0 declarative style.
These models define the database schema and relationships.

For API schemas, see src/models/contracts.
"""

from src.models.orm.applications import AppEnvironment, Application, AppVersion
from src.models.orm.base import Base
from src.models.orm.credentials import Credential
from src.models.orm.data_sources import DataQuery, DataSource, DataSourceOptions
from src.models.orm.organizations import Organization
from src.models.orm.permissions import AppGroupPermission, GroupPermission

__all__ = [
    # Base
    "Base",
    # Organizations
    "Organization",
    # Applications
    "Application",
    "AppVersion",
    "AppEnvironment",
    # Data sources
    "DataSource",
    "DataSourceOptions",
    "DataQuery",
    "Credential",
    # Permissions
    "GroupPermission",
    "AppGroupPermission",
]
