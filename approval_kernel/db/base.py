"""
Module: approval_kernel.db.base
Responsibility: Declarative base for the approval tables: UUID primary keys,
    the column type map, and the row-timestamp mixin used by approval steps.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - Every row is keyed by a uuid4, stored as 36 characters so the same
      schema runs on PostgreSQL and SQLite.
    - Timestamp columns are timezone-aware.  SQLite drops the offset; the
      model DTO converters put UTC back.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID in Python, String(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TimestampedBase(Base):
    """
    Rows that record when they were opened and last changed.

    Both values are written by the service from its injected Clock.  There
    are no server defaults, so decisions replayed in tests carry exact times.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
