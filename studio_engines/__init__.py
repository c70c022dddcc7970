"""
Module: studio_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure pay
    calculation engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import studio_kernel (logging, exceptions) and sibling engines.
    MUST NOT import studio_config or studio_modules.

Invariants enforced:
    - Decimal-only arithmetic; floats never reach an amount.
    - Determinism: identical inputs always produce identical outputs.
    - Every engine entry point is traced via ``@traced_engine``.

Usage:
    from studio_engines import TariffResolver, VersusAdjuster, PaymentAssembler
"""

from studio_kernel.logging_config import get_logger

logger = get_logger("engines")

from studio_engines.assembler import (
    AdjustmentType,
    PaymentAssembler,
    PaymentComponents,
    RecalculationPolicy,
    StoredAdjustments,
)
from studio_engines.category import (
    BASE_CATEGORY,
    CATEGORY_PRIORITY,
    Category,
    CategoryDecision,
    CategoryRequirement,
    CategoryResolver,
)
from studio_engines.expression import (
    EvaluationResult,
    ExpressionEvaluator,
    ExpressionProblem,
    validate_expression,
)
from studio_engines.extras import ExtrasBreakdown, ExtrasRates, calculate_extras
from studio_engines.metrics import InstructorMetrics, MetricsAggregator, NonPrimeSchedule
from studio_engines.penalty import PenaltyAggregator, PenaltyDiscount
from studio_engines.tariff import (
    BonusPolicy,
    PaymentParameters,
    TariffResolver,
    TariffResult,
    TariffTier,
    clamp_amount,
    select_rate,
)
from studio_engines.types import ClassSession, format_money, quantize_money
from studio_engines.versus import AdjustedAttendance, ClassPricing, VersusAdjuster

__all__ = [
    "AdjustedAttendance",
    "AdjustmentType",
    "BASE_CATEGORY",
    "BonusPolicy",
    "CATEGORY_PRIORITY",
    "Category",
    "CategoryDecision",
    "CategoryRequirement",
    "CategoryResolver",
    "ClassPricing",
    "ClassSession",
    "EvaluationResult",
    "ExpressionEvaluator",
    "ExpressionProblem",
    "ExtrasBreakdown",
    "ExtrasRates",
    "InstructorMetrics",
    "MetricsAggregator",
    "NonPrimeSchedule",
    "PaymentAssembler",
    "PaymentComponents",
    "PaymentParameters",
    "PenaltyAggregator",
    "PenaltyDiscount",
    "RecalculationPolicy",
    "StoredAdjustments",
    "TariffResolver",
    "TariffResult",
    "TariffTier",
    "VersusAdjuster",
    "calculate_extras",
    "clamp_amount",
    "format_money",
    "quantize_money",
    "select_rate",
    "validate_expression",
]
