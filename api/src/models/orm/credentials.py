"""
Credential ORM model.

Holds the encrypted values of data source options flagged as encrypted.
The option bag only stores the credential id.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.orm.base import Base


class Credential(Base):
    """Encrypted secret referenced by data source options."""

    __tablename__ = "credentials"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    value_ciphertext: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )
