"""
Declarative base for all ORM models.

JSON columns use JSONB on PostgreSQL and the generic JSON type on other
dialects (SQLite in tests).
"""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""
