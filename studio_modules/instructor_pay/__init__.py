"""
Instructor Pay Module (``studio_modules.instructor_pay``).

Responsibility
--------------
Computes what each instructor earns for a pay period: class pricing by
category tariff, versus and full-house adjustments, penalty discounts,
extra activities, manual adjustments and retention.  Results are
upserted as one payment record per (instructor, period).

Architecture position
---------------------
**Modules layer** -- DTOs, a config schema, ORM models, a catalog
protocol, a payment store and a service facade that delegates all
arithmetic to ``studio_engines``.

Failure modes
-------------
* ``PeriodNotFoundError`` / ``InstructorNotFoundError`` abort one
  instructor's calculation.
* ``PaymentLockedError`` when a stored payment is approved.
* Per-class errors are isolated and reported in ``skipped_classes``.
"""

from studio_modules.instructor_pay.catalog import CatalogProvider, InMemoryCatalog
from studio_modules.instructor_pay.config import InstructorPayConfig
from studio_modules.instructor_pay.models import (
    BatchCalculationResult,
    BatchItemError,
    Brandeo,
    CalculationOutcome,
    CalculationResult,
    CategoryOverride,
    ClassPaymentDetail,
    Cover,
    CoverStatus,
    Discipline,
    FormulaDefinition,
    InstructorCategoryRecord,
    InstructorSnapshot,
    PaymentRecord,
    PaymentStatus,
    PenaltyRecord,
    Period,
    SkippedClass,
    ThemeRide,
    Workshop,
)
from studio_modules.instructor_pay.service import InstructorPaymentService
from studio_modules.instructor_pay.store import PaymentStore, SqlPaymentStore

__all__ = [
    "BatchCalculationResult",
    "BatchItemError",
    "Brandeo",
    "CalculationOutcome",
    "CalculationResult",
    "CatalogProvider",
    "CategoryOverride",
    "ClassPaymentDetail",
    "Cover",
    "CoverStatus",
    "Discipline",
    "FormulaDefinition",
    "InMemoryCatalog",
    "InstructorCategoryRecord",
    "InstructorPayConfig",
    "InstructorPaymentService",
    "InstructorSnapshot",
    "PaymentRecord",
    "PaymentStatus",
    "PaymentStore",
    "PenaltyRecord",
    "Period",
    "SkippedClass",
    "SqlPaymentStore",
    "ThemeRide",
    "Workshop",
]
