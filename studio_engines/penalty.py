"""
studio_engines.penalty -- Penalty points to discount percentage.

Responsibility:
    Sum an instructor's penalty points for a period and convert the points
    above the allowance into a discount percentage (one excess point is one
    percent).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - allowed_points = floor(total_classes x allowance_ratio).
    - discount is zero whenever total points <= allowed points.
    - No cap unless ``max_discount_percent`` is configured; callers clamp
      the resulting pay at zero.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from studio_engines.tracer import traced_engine
from studio_engines.types import ZERO
from studio_kernel.logging_config import get_logger

logger = get_logger("engines.penalty")


@dataclass(frozen=True)
class PenaltyDiscount:
    total_points: Decimal
    allowed_points: Decimal
    excess_points: Decimal
    discount_percent: Decimal
    capped: bool = False


class PenaltyAggregator:
    def __init__(
        self,
        allowance_ratio: Decimal = Decimal("0.10"),
        max_discount_percent: Decimal | None = None,
    ):
        if allowance_ratio < 0:
            raise ValueError("allowance_ratio cannot be negative")
        self._allowance_ratio = allowance_ratio
        self._max_discount = max_discount_percent

    @traced_engine("penalty", "1.0", fingerprint_fields=("total_classes",))
    def calculate(self, points: Iterable[Decimal], *, total_classes: int) -> PenaltyDiscount:
        total_points = sum((Decimal(p) for p in points), ZERO)
        allowed = (Decimal(total_classes) * self._allowance_ratio).to_integral_value(
            rounding=ROUND_FLOOR
        )
        excess = max(ZERO, total_points - allowed)
        discount = excess
        capped = False
        if self._max_discount is not None and discount > self._max_discount:
            discount = self._max_discount
            capped = True

        if excess:
            logger.info(
                "penalty_discount_applied",
                extra={
                    "total_points": str(total_points),
                    "allowed_points": str(allowed),
                    "discount_percent": str(discount),
                    "capped": capped,
                },
            )

        return PenaltyDiscount(
            total_points=total_points,
            allowed_points=allowed,
            excess_points=excess,
            discount_percent=discount,
            capped=capped,
        )
