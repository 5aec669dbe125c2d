"""
Module: production_kernel.db.base
Responsibility: Declarative bases shared by every production table.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    imports nothing from models/, services/, selectors/ or domain/.

Invariants enforced:
    - Every row has a uuid4 primary key, stored as a 36-character string
      so the same schema runs on PostgreSQL and SQLite.
    - Timestamps are timezone-aware columns.
    - TrackedBase rows carry created_at / updated_at (database clock) and
      the id of the user who created them.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID column stored as String(36).

    Accepts UUID instances or their string form on the way in (job step ids
    arrive as strings from route parameters) and always returns UUID.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, PyUUID):
            value = PyUUID(str(value))
        return str(value)

    def process_result_value(self, value, dialect):
        return PyUUID(value) if value is not None else None


class Base(DeclarativeBase):
    """Declarative base: uuid4 ``id`` on every table."""

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: Integer,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base for mutable production records.

    Guarantees:
        - created_at is stamped by the database on INSERT.
        - updated_at is re-stamped on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Opaque user id from the auth layer; None for system writes
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)


UUID = PyUUID
