"""
studio_engines.assembler -- Final payment assembly.

Responsibility:
    Combine base pay (sum of class amounts), the manual adjustment
    (reajuste), bonuses, cover pay, the penalty discount and the retention
    into the final net payment, and decide which stored adjustments
    survive a recalculation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The instructor pay
    service passes in the stored adjustments of an existing record.

Pipeline:
    reajuste_amount = base x reajuste / 100  (PERCENTAGE) or reajuste (FIXED)
    subtotal        = base + reajuste_amount + bonus + cover
    discount        = subtotal x discount_percent / 100
    net             = subtotal - discount
    retention       = net x retention_rate
    final_pay       = max(0, net - retention)

Invariants enforced:
    - final_pay is never negative.
    - Retention, discount and final pay are always recomputed; only the
      reajuste, its type and the manual bonus can be carried over, and only
      under ``RecalculationPolicy.PRESERVE_ADJUSTMENTS``.
    - Caller-supplied reajuste values win over stored ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from studio_engines.tracer import traced_engine
from studio_engines.types import HUNDRED, ZERO, format_money, quantize_money
from studio_kernel.logging_config import get_logger

logger = get_logger("engines.assembler")


class AdjustmentType(str, Enum):
    """How a reajuste value is applied to base pay."""

    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"


class RecalculationPolicy(str, Enum):
    """Which stored adjustments survive a recalculation."""

    PRESERVE_ADJUSTMENTS = "preserve_adjustments"
    RECOMPUTE_ALL = "recompute_all"


@dataclass(frozen=True)
class StoredAdjustments:
    """Manual values held by an existing payment record."""

    reajuste: Decimal = ZERO
    reajuste_type: AdjustmentType = AdjustmentType.FIXED
    manual_bonus: Decimal = ZERO


@dataclass(frozen=True)
class PaymentComponents:
    base_amount: Decimal
    reajuste: Decimal
    reajuste_type: AdjustmentType
    reajuste_amount: Decimal
    manual_bonus: Decimal
    bonus: Decimal
    cover: Decimal
    subtotal: Decimal
    penalty_discount_percent: Decimal
    discount_amount: Decimal
    net_amount: Decimal
    retention_rate: Decimal
    retention: Decimal
    final_pay: Decimal
    trace: tuple[str, ...]


class PaymentAssembler:
    def __init__(
        self,
        retention_rate: Decimal = Decimal("0.08"),
        policy: RecalculationPolicy = RecalculationPolicy.PRESERVE_ADJUSTMENTS,
        currency_symbol: str = "S/.",
    ):
        if not ZERO <= retention_rate < 1:
            raise ValueError("retention_rate must be in [0, 1)")
        self._retention_rate = retention_rate
        self._policy = policy
        self._symbol = currency_symbol

    @property
    def policy(self) -> RecalculationPolicy:
        return self._policy

    def carried_adjustments(
        self,
        stored: StoredAdjustments | None,
        *,
        reajuste: Decimal | None = None,
        reajuste_type: AdjustmentType | None = None,
        manual_bonus: Decimal | None = None,
    ) -> StoredAdjustments:
        """Adjustments to apply: caller values, then stored ones (policy permitting), then defaults."""
        base = StoredAdjustments()
        if stored is not None:
            match self._policy:
                case RecalculationPolicy.PRESERVE_ADJUSTMENTS:
                    base = stored
                case RecalculationPolicy.RECOMPUTE_ALL:
                    base = StoredAdjustments()
        return StoredAdjustments(
            reajuste=base.reajuste if reajuste is None else reajuste,
            reajuste_type=base.reajuste_type if reajuste_type is None else reajuste_type,
            manual_bonus=base.manual_bonus if manual_bonus is None else manual_bonus,
        )

    @traced_engine(
        "assembler", "1.0",
        fingerprint_fields=("base_amount", "activity_bonus", "cover", "penalty_discount_percent"),
    )
    def assemble(
        self,
        *,
        base_amount: Decimal,
        activity_bonus: Decimal = ZERO,
        cover: Decimal = ZERO,
        penalty_discount_percent: Decimal = ZERO,
        adjustments: StoredAdjustments = StoredAdjustments(),
    ) -> PaymentComponents:
        money = lambda amount: format_money(amount, self._symbol)  # noqa: E731

        match adjustments.reajuste_type:
            case AdjustmentType.PERCENTAGE:
                reajuste_amount = quantize_money(base_amount * adjustments.reajuste / HUNDRED)
            case AdjustmentType.FIXED:
                reajuste_amount = quantize_money(adjustments.reajuste)

        bonus = adjustments.manual_bonus + activity_bonus
        subtotal = base_amount + reajuste_amount + bonus + cover
        discount = quantize_money(subtotal * penalty_discount_percent / HUNDRED)
        net = subtotal - discount
        retention = quantize_money(net * self._retention_rate)
        final = net - retention

        trace = [
            f"Base pay: {money(base_amount)}",
            f"Reajuste ({adjustments.reajuste_type.value} {adjustments.reajuste}): {money(reajuste_amount)}",
            f"Bonus: {money(bonus)}",
            f"Cover: {money(cover)}",
            f"Subtotal: {money(subtotal)}",
        ]
        if penalty_discount_percent:
            trace.append(f"Penalty discount {penalty_discount_percent}%: -{money(discount)}")
        trace.append(f"Retention {self._retention_rate * HUNDRED:.0f}%: -{money(retention)}")

        if final < 0:
            logger.warning(
                "final_pay_clamped_to_zero",
                extra={"computed_final_pay": str(final), "subtotal": str(subtotal)},
            )
            trace.append(f"Final pay {money(final)} clamped to {money(ZERO)}")
            final = ZERO
        trace.append(f"Final pay: {money(final)}")

        return PaymentComponents(
            base_amount=quantize_money(base_amount),
            reajuste=adjustments.reajuste,
            reajuste_type=adjustments.reajuste_type,
            reajuste_amount=reajuste_amount,
            manual_bonus=adjustments.manual_bonus,
            bonus=quantize_money(bonus),
            cover=quantize_money(cover),
            subtotal=quantize_money(subtotal),
            penalty_discount_percent=penalty_discount_percent,
            discount_amount=discount,
            net_amount=quantize_money(net),
            retention_rate=self._retention_rate,
            retention=retention,
            final_pay=quantize_money(final),
            trace=tuple(trace),
        )
