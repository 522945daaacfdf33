"""
Declarative bases for the back-office ORM models.

Every table gets a UUID primary key stored as text so the same schema runs
on PostgreSQL and SQLite.  Money columns are declared as ``Mapped[Decimal]``
and land as Numeric(38, 9); quantities are ``Mapped[int]`` and land as
BigInteger.  Rows that users create carry the acting user's id.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` on the Python side, String(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Root of every mapped class."""

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(38, 9),
        int: BigInteger,
        date: Date,
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Base for user-created records.

    ``created_by_id`` is mandatory; ``updated_by_id`` is filled in by the
    service that edits the row.  Both timestamps come from the database
    clock.
    """

    __abstract__ = True

    created_by_id: Mapped[UUID] = mapped_column(nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False,
    )
