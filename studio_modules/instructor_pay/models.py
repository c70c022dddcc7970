"""
Instructor Pay Domain Models (``studio_modules.instructor_pay.models``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of instructor pay: periods,
disciplines, formula definitions, penalties, category overrides, covers
and other paid activities, the catalog snapshot of an instructor, and the
payment records and calculation results the service produces.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Engine value
types (``ClassSession``, ``PaymentParameters``, ``CategoryRequirement``)
are reused rather than duplicated.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal``.
* A ``PaymentRecord`` never carries a negative final pay.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from studio_engines.assembler import AdjustmentType, PaymentComponents, StoredAdjustments
from studio_engines.category import Category, CategoryRequirement
from studio_engines.extras import ExtrasBreakdown
from studio_engines.metrics import InstructorMetrics
from studio_engines.penalty import PenaltyDiscount
from studio_engines.tariff import PaymentParameters
from studio_engines.types import ZERO, ClassSession
from studio_kernel.exceptions import MissingTariffError
from studio_kernel.logging_config import get_logger

logger = get_logger("modules.instructor_pay.models")


class PaymentStatus(Enum):
    """Payment record lifecycle states."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"


class CoverStatus(Enum):
    """Review state of a cover (substitution) request."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CalculationOutcome(Enum):
    """What a calculation did with the payment record."""
    CREATED = "created"
    UPDATED = "updated"
    NO_BILLABLE_CLASSES = "no_billable_classes"
    PREVIEW = "preview"


@dataclass(frozen=True)
class Discipline:
    id: UUID
    name: str


@dataclass(frozen=True)
class Period:
    """A pay period (inclusive dates)."""
    id: UUID
    name: str
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")

    @property
    def weeks(self) -> int:
        days = (self.end_date - self.start_date).days + 1
        return max(1, math.ceil(days / 7))


@dataclass(frozen=True)
class FormulaDefinition:
    """Payment parameters and category requirements for one discipline in one period."""
    discipline_id: UUID
    period_id: UUID
    parameters: dict[Category, PaymentParameters] = field(default_factory=dict)
    requirements: dict[Category, CategoryRequirement] = field(default_factory=dict)

    def parameters_for(self, category: Category) -> PaymentParameters:
        try:
            return self.parameters[category]
        except KeyError:
            raise MissingTariffError(str(self.discipline_id), category.value) from None


@dataclass(frozen=True)
class PenaltyRecord:
    """Penalty points recorded against an instructor. Read-only to the engine."""
    id: UUID
    instructor_id: UUID
    period_id: UUID
    points: Decimal
    penalty_type: str
    applied_at: datetime
    discipline_id: UUID | None = None
    description: str = ""

    def __post_init__(self):
        if self.points < 0:
            logger.warning(
                "penalty_negative_points",
                extra={"penalty_id": str(self.id), "points": str(self.points)},
            )
            raise ValueError("points cannot be negative")


@dataclass(frozen=True)
class CategoryOverride:
    """Manual category for one (instructor, discipline) pair."""
    instructor_id: UUID
    discipline_id: UUID
    category: Category


@dataclass(frozen=True)
class Cover:
    """A class covered by ``covering_instructor_id`` on someone else's behalf."""
    id: UUID
    class_id: UUID
    covering_instructor_id: UUID
    period_id: UUID
    status: CoverStatus
    pays_bonus: bool = False
    pays_full_house: bool = False


@dataclass(frozen=True)
class Brandeo:
    id: UUID
    instructor_id: UUID
    period_id: UUID
    units: int


@dataclass(frozen=True)
class ThemeRide:
    id: UUID
    instructor_id: UUID
    period_id: UUID
    units: int


@dataclass(frozen=True)
class Workshop:
    id: UUID
    instructor_id: UUID
    period_id: UUID
    name: str
    payment: Decimal


@dataclass(frozen=True)
class InstructorSnapshot:
    """Everything the catalog knows about an instructor for one period."""
    id: UUID
    name: str
    classes: tuple[ClassSession, ...] = ()
    penalties: tuple[PenaltyRecord, ...] = ()
    category_overrides: tuple[CategoryOverride, ...] = ()
    covers: tuple[Cover, ...] = ()
    brandeos: tuple[Brandeo, ...] = ()
    theme_rides: tuple[ThemeRide, ...] = ()
    workshops: tuple[Workshop, ...] = ()
    event_participation: bool = True
    guideline_compliance: bool = True


@dataclass(frozen=True)
class ClassPaymentDetail:
    """Per-class line of a payment record."""
    class_id: UUID
    discipline_id: UUID
    category: Category
    reservations: int
    capacity: int
    amount: Decimal
    bonus: Decimal
    tier_label: str
    is_full_house: bool
    full_house_forced: bool
    versus_count: int
    trace: str = ""


@dataclass(frozen=True)
class InstructorCategoryRecord:
    """Category held by an instructor in a discipline for a period."""
    instructor_id: UUID
    discipline_id: UUID
    period_id: UUID
    category: Category
    is_manual: bool
    metrics: InstructorMetrics


@dataclass(frozen=True)
class PaymentRecord:
    """One instructor's payment for one period (unique per pair).

    ``bonus`` is the sum of ``manual_bonus`` and the four activity amounts,
    which are also kept one by one.  ``metrics`` covers every discipline
    the instructor taught in the period.
    """
    instructor_id: UUID
    period_id: UUID
    base_amount: Decimal
    reajuste: Decimal
    reajuste_type: AdjustmentType
    manual_bonus: Decimal
    bonus: Decimal
    cover: Decimal
    reservation_bonus: Decimal
    penalty_discount_percent: Decimal
    penalty_discount_amount: Decimal
    retention: Decimal
    final_pay: Decimal
    brandeo: Decimal = ZERO
    theme_ride: Decimal = ZERO
    workshop: Decimal = ZERO
    versus_bonus: Decimal = ZERO
    metrics: InstructorMetrics | None = None
    event_participation: bool = True
    guideline_compliance: bool = True
    status: PaymentStatus = PaymentStatus.PENDING
    class_details: tuple[ClassPaymentDetail, ...] = ()
    id: UUID | None = None
    calculated_at: datetime | None = None

    def __post_init__(self):
        if self.final_pay < 0:
            logger.warning(
                "payment_record_negative_final_pay",
                extra={
                    "instructor_id": str(self.instructor_id),
                    "period_id": str(self.period_id),
                    "final_pay": str(self.final_pay),
                },
            )
            raise ValueError("final_pay cannot be negative")

    @property
    def stored_adjustments(self) -> StoredAdjustments:
        return StoredAdjustments(
            reajuste=self.reajuste,
            reajuste_type=self.reajuste_type,
            manual_bonus=self.manual_bonus,
        )


@dataclass(frozen=True)
class SkippedClass:
    class_id: UUID
    error_code: str
    message: str


@dataclass(frozen=True)
class CalculationResult:
    """Outcome of one instructor's calculation."""
    instructor_id: UUID
    period_id: UUID
    outcome: CalculationOutcome
    final_pay: Decimal = ZERO
    summary: PaymentComponents | None = None
    class_details: tuple[ClassPaymentDetail, ...] = ()
    categories: tuple[InstructorCategoryRecord, ...] = ()
    metrics: InstructorMetrics | None = None
    penalty: PenaltyDiscount | None = None
    extras: ExtrasBreakdown | None = None
    skipped_classes: tuple[SkippedClass, ...] = ()
    skipped_disciplines: tuple[UUID, ...] = ()
    trace: tuple[str, ...] = ()
    payment_id: UUID | None = None


@dataclass(frozen=True)
class BatchItemError:
    instructor_id: UUID
    error_code: str
    message: str


@dataclass(frozen=True)
class BatchCalculationResult:
    """Counts and per-instructor results of a period-wide calculation."""
    period_id: UUID
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    results: tuple[CalculationResult, ...] = ()
    errors: tuple[BatchItemError, ...] = ()

    @property
    def succeeded(self) -> int:
        return self.created + self.updated

    @property
    def total(self) -> int:
        return self.succeeded + self.skipped + self.failed
