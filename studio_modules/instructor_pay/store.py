"""
Payment store -- the persistence sink for calculated payments.

Contract:
    ``PaymentStore`` reads the existing payment for an (instructor, period)
    pair and upserts payments and resolved categories.  ``SqlPaymentStore``
    implements it with ``INSERT ... ON CONFLICT DO UPDATE`` against the
    unique constraints declared in ``orm.py``, so two concurrent
    recalculations of the same pair serialize in the database and can
    neither duplicate nor drop a record.

Invariants enforced:
    - At most one payment per (instructor_id, period_id).
    - An upsert never changes ``created_by_id`` or ``status`` of an
      existing row; ``updated_by_id`` and ``updated_at`` are refreshed.
    - Class detail rows are replaced as a whole on every payment upsert.
    - Flush-only: the caller owns the transaction or SAVEPOINT.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from studio_kernel.logging_config import get_logger
from studio_kernel.services.base import BaseService
from studio_modules.instructor_pay.models import InstructorCategoryRecord, PaymentRecord
from studio_modules.instructor_pay.orm import (
    InstructorCategoryModel,
    PaymentClassDetailModel,
    PaymentRecordModel,
)

logger = get_logger("modules.instructor_pay.store")

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

# Columns an upsert must leave alone on an existing row
_PAYMENT_IMMUTABLE = frozenset({"instructor_id", "period_id", "status"})
_CATEGORY_IMMUTABLE = frozenset({"instructor_id", "discipline_id", "period_id"})


@runtime_checkable
class PaymentStore(Protocol):
    """Write side of a calculation."""

    def get_existing_payment(self, instructor_id: UUID, period_id: UUID) -> PaymentRecord | None: ...

    def upsert_payment(self, record: PaymentRecord, actor_id: UUID) -> UUID: ...

    def upsert_category(self, record: InstructorCategoryRecord, actor_id: UUID) -> UUID: ...


class SqlPaymentStore(BaseService[PaymentRecordModel]):
    """SQLAlchemy ``PaymentStore`` for PostgreSQL and SQLite."""

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError:
            raise NotImplementedError(f"Upsert not supported for dialect '{dialect}'") from None

    def get_existing_payment(self, instructor_id: UUID, period_id: UUID) -> PaymentRecord | None:
        model = self.session.execute(
            select(PaymentRecordModel)
            .where(
                PaymentRecordModel.instructor_id == instructor_id,
                PaymentRecordModel.period_id == period_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            return None
        details = self.session.execute(
            select(PaymentClassDetailModel)
            .where(PaymentClassDetailModel.payment_id == model.id)
            .order_by(PaymentClassDetailModel.position)
        ).scalars().all()
        return model.to_dto(details)

    def upsert_payment(self, record: PaymentRecord, actor_id: UUID) -> UUID:
        values = PaymentRecordModel.values_from_dto(record)
        insert = self._insert()
        stmt = insert(PaymentRecordModel).values(
            id=uuid4(), created_by_id=actor_id, updated_by_id=actor_id, **values,
        )
        update_cols = {
            name: stmt.excluded[name] for name in values if name not in _PAYMENT_IMMUTABLE
        }
        stmt = stmt.on_conflict_do_update(
            index_elements=["instructor_id", "period_id"],
            set_={**update_cols, "updated_by_id": actor_id, "updated_at": func.now()},
        ).returning(PaymentRecordModel.id)
        payment_id = self.session.execute(stmt).scalar_one()

        self.session.execute(
            delete(PaymentClassDetailModel).where(PaymentClassDetailModel.payment_id == payment_id)
        )
        self.session.add_all(
            PaymentClassDetailModel.from_dto(detail, payment_id, position, actor_id)
            for position, detail in enumerate(record.class_details)
        )
        self.session.flush()

        logger.info(
            "payment_upserted",
            extra={
                "payment_id": str(payment_id),
                "instructor_id": str(record.instructor_id),
                "period_id": str(record.period_id),
                "final_pay": str(record.final_pay),
                "class_count": len(record.class_details),
            },
        )
        return payment_id

    def upsert_category(self, record: InstructorCategoryRecord, actor_id: UUID) -> UUID:
        values = InstructorCategoryModel.values_from_dto(record)
        insert = self._insert()
        stmt = insert(InstructorCategoryModel).values(
            id=uuid4(), created_by_id=actor_id, updated_by_id=actor_id, **values,
        )
        update_cols = {
            name: stmt.excluded[name] for name in values if name not in _CATEGORY_IMMUTABLE
        }
        stmt = stmt.on_conflict_do_update(
            index_elements=["instructor_id", "discipline_id", "period_id"],
            set_={**update_cols, "updated_by_id": actor_id, "updated_at": func.now()},
        ).returning(InstructorCategoryModel.id)
        category_id = self.session.execute(stmt).scalar_one()
        self.session.flush()

        logger.debug(
            "instructor_category_upserted",
            extra={
                "instructor_id": str(record.instructor_id),
                "discipline_id": str(record.discipline_id),
                "category": record.category.value,
                "is_manual": record.is_manual,
            },
        )
        return category_id
