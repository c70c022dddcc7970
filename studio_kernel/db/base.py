"""
Declarative base for the pay tables.

Column conventions shared by every ORM model:

- ``id`` is a uuid4 primary key, stored natively on PostgreSQL and as
  CHAR(32) on SQLite (SQLAlchemy ``Uuid``).
- ``Decimal`` annotations map to ``Numeric(38, 9)``; money is never a float.
- ``datetime`` annotations map to timezone-aware ``DateTime``.

``TrackedBase`` adds the audit columns a recalculated row needs: who first
created it, who last recalculated it, and when.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict[Any, Any]] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: Uuid(as_uuid=True),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Audit columns; ``created_by_id`` never changes after the first insert."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(),
    )
    created_by_id: Mapped[UUID]
    updated_by_id: Mapped[UUID | None]
