"""
Catalog provider protocol and an in-memory implementation.

Contract:
    ``CatalogProvider`` is the read side the instructor pay service consumes:
    disciplines, periods, formula definitions, and per-instructor snapshots
    (classes, penalties, manual categories, covers and other activities).
    Implementations return ``None`` for unknown instructors or periods; the
    service turns that into a NotFound error.

Non-goals:
    - No writes.  Payment records go through ``PaymentStore``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable
from uuid import UUID

from studio_kernel.logging_config import get_logger
from studio_modules.instructor_pay.models import (
    Discipline,
    FormulaDefinition,
    InstructorSnapshot,
    Period,
)

logger = get_logger("modules.instructor_pay.catalog")


@runtime_checkable
class CatalogProvider(Protocol):
    """Read-only source of the data a calculation needs."""

    def get_disciplines(self) -> Sequence[Discipline]: ...

    def get_period(self, period_id: UUID) -> Period | None: ...

    def get_formulas(self, period_id: UUID) -> Sequence[FormulaDefinition]: ...

    def get_instructor(self, instructor_id: UUID, period_id: UUID) -> InstructorSnapshot | None: ...

    def get_instructor_ids(self, period_id: UUID) -> Sequence[UUID]: ...


class InMemoryCatalog:
    """
    Dictionary-backed ``CatalogProvider``.

    Instructor snapshots are registered per period; ``get_instructor_ids``
    returns them in registration order.
    """

    def __init__(
        self,
        disciplines: Sequence[Discipline] = (),
        periods: Sequence[Period] = (),
        formulas: Sequence[FormulaDefinition] = (),
    ):
        self._disciplines: dict[UUID, Discipline] = {d.id: d for d in disciplines}
        self._periods: dict[UUID, Period] = {p.id: p for p in periods}
        self._formulas: dict[UUID, list[FormulaDefinition]] = {}
        for formula in formulas:
            self.add_formula(formula)
        self._instructors: dict[UUID, dict[UUID, InstructorSnapshot]] = {}

    def add_discipline(self, discipline: Discipline) -> None:
        self._disciplines[discipline.id] = discipline

    def add_period(self, period: Period) -> None:
        self._periods[period.id] = period

    def add_formula(self, formula: FormulaDefinition) -> None:
        existing = self._formulas.setdefault(formula.period_id, [])
        existing[:] = [f for f in existing if f.discipline_id != formula.discipline_id]
        existing.append(formula)

    def add_instructor(self, period_id: UUID, snapshot: InstructorSnapshot) -> None:
        self._instructors.setdefault(period_id, {})[snapshot.id] = snapshot
        logger.debug(
            "catalog_instructor_added",
            extra={
                "instructor_id": str(snapshot.id),
                "period_id": str(period_id),
                "class_count": len(snapshot.classes),
            },
        )

    def get_disciplines(self) -> Sequence[Discipline]:
        return tuple(self._disciplines.values())

    def get_period(self, period_id: UUID) -> Period | None:
        return self._periods.get(period_id)

    def get_formulas(self, period_id: UUID) -> Sequence[FormulaDefinition]:
        return tuple(self._formulas.get(period_id, ()))

    def get_instructor(self, instructor_id: UUID, period_id: UUID) -> InstructorSnapshot | None:
        return self._instructors.get(period_id, {}).get(instructor_id)

    def get_instructor_ids(self, period_id: UUID) -> Sequence[UUID]:
        return tuple(self._instructors.get(period_id, {}))
