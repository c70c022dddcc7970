"""
studio_engines.tariff -- Per-class tariff resolution.

Responsibility:
    Price one class from its (already adjusted) reservation and capacity
    figures and the category's ``PaymentParameters``: pick the rate
    (full house or tier), compute the raw amount, add the fixed quota,
    clamp to minimum guaranteed / maximum, and compute the per-reservation
    bonus according to the configured ``BonusPolicy``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Called through ``studio_engines.versus.VersusAdjuster`` for every class.

Invariants enforced:
    - Full house is exact: reservations >= capacity with capacity > 0 always
      selects the full-house rate.
    - Tier selection is the first tier (ascending) whose threshold is >= the
      reservation count; beyond the last threshold the highest tier's rate
      is used (overflow policy, not an error).
    - Rate selection is monotonic in reservations below full house.
    - Clamps are mutually exclusive and checked minimum first; a maximum of
      0 means "no maximum".  Re-clamping a clamped amount is a no-op.

Failure modes:
    - TariffConfigurationError when no tier is defined and the class is
      not a full house.
    - EvaluationError from the expression evaluator on the formula path.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from studio_engines.expression import ExpressionEvaluator
from studio_engines.tracer import traced_engine
from studio_engines.types import ZERO, format_money, quantize_money
from studio_kernel.exceptions import TariffConfigurationError
from studio_kernel.logging_config import get_logger

logger = get_logger("engines.tariff")

FULL_HOUSE_LABEL = "Full House"
OVERFLOW_LABEL = "Maximum rate applied"


class BonusPolicy(str, Enum):
    """How the per-reservation bonus relates to the class amount."""

    TRACK_SEPARATELY = "track_separately"  # reported, not part of class pay
    ADD_TO_CLASS_AMOUNT = "add_to_class_amount"  # added after clamping


@dataclass(frozen=True)
class TariffTier:
    """Rate paid per reservation up to ``reservation_threshold`` reservations."""

    reservation_threshold: int
    rate: Decimal

    @property
    def label(self) -> str:
        return f"Up to {self.reservation_threshold} reservations"


@dataclass(frozen=True)
class PaymentParameters:
    """Pay parameters for one category of one discipline in one period."""

    tiers: tuple[TariffTier, ...]
    full_house_rate: Decimal
    minimum_guaranteed: Decimal = ZERO
    maximum: Decimal = ZERO
    fixed_quota: Decimal = ZERO
    per_reservation_bonus: Decimal = ZERO
    amount_expression: str | None = None

    def __post_init__(self):
        thresholds = [t.reservation_threshold for t in self.tiers]
        if thresholds != sorted(thresholds):
            raise ValueError("tiers must be sorted by reservation_threshold ascending")
        if any(t.rate < 0 for t in self.tiers) or self.full_house_rate < 0:
            raise ValueError("rates cannot be negative")
        if self.minimum_guaranteed < 0 or self.maximum < 0:
            raise ValueError("minimum_guaranteed and maximum cannot be negative")
        if self.maximum > 0 and self.minimum_guaranteed > self.maximum:
            logger.warning(
                "payment_parameters_minimum_above_maximum",
                extra={
                    "minimum_guaranteed": str(self.minimum_guaranteed),
                    "maximum": str(self.maximum),
                },
            )
            raise ValueError("minimum_guaranteed cannot exceed maximum")


@dataclass(frozen=True)
class RateSelection:
    rate: Decimal
    label: str
    is_full_house: bool


@dataclass(frozen=True)
class TariffResult:
    """Priced class before any versus split."""

    amount: Decimal
    rate_applied: Decimal
    tier_label: str
    is_full_house: bool
    minimum_applied: bool
    maximum_applied: bool
    bonus: Decimal
    trace: tuple[str, ...]


def select_rate(reservations: int, capacity: int, parameters: PaymentParameters) -> RateSelection:
    """Choose the per-reservation rate for a reservation count."""
    if capacity > 0 and reservations >= capacity:
        return RateSelection(parameters.full_house_rate, FULL_HOUSE_LABEL, True)

    if not parameters.tiers:
        raise TariffConfigurationError("no tariff tiers defined")

    for tier in parameters.tiers:
        if tier.reservation_threshold >= reservations:
            return RateSelection(tier.rate, tier.label, False)

    return RateSelection(parameters.tiers[-1].rate, OVERFLOW_LABEL, False)


def clamp_amount(
    amount: Decimal, minimum: Decimal, maximum: Decimal,
) -> tuple[Decimal, bool, bool]:
    """Apply minimum guaranteed then maximum; returns (amount, min_applied, max_applied)."""
    if amount < minimum:
        return minimum, True, False
    if maximum > 0 and amount > maximum:
        return maximum, False, True
    return amount, False, False


class TariffResolver:
    """
    Prices a single class.

    ``bonus_policy`` decides whether the per-reservation bonus is folded into
    the class amount.  ``evaluator`` serves parameters that carry an
    ``amount_expression``.
    """

    def __init__(
        self,
        bonus_policy: BonusPolicy = BonusPolicy.TRACK_SEPARATELY,
        evaluator: ExpressionEvaluator | None = None,
        currency_symbol: str = "S/.",
    ):
        self._bonus_policy = bonus_policy
        self._evaluator = evaluator or ExpressionEvaluator()
        self._symbol = currency_symbol

    @property
    def bonus_policy(self) -> BonusPolicy:
        return self._bonus_policy

    @property
    def currency_symbol(self) -> str:
        return self._symbol

    @traced_engine("tariff", "1.0", fingerprint_fields=("reservations", "capacity"))
    def resolve(
        self,
        parameters: PaymentParameters,
        *,
        reservations: int,
        capacity: int,
        waitlist: int = 0,
        courtesies: int = 0,
        paid_reservations: int = 0,
    ) -> TariffResult:
        money = lambda amount: format_money(amount, self._symbol)  # noqa: E731
        selection = select_rate(reservations, capacity, parameters)
        trace: list[str] = [selection.label]

        if parameters.amount_expression:
            evaluated = self._evaluator.evaluate(
                parameters.amount_expression,
                {
                    "reservations": reservations,
                    "capacity": capacity,
                    "waitlist": waitlist,
                    "courtesies": courtesies,
                    "paid_reservations": paid_reservations,
                    "rate": selection.rate,
                    "full_house_rate": parameters.full_house_rate,
                },
            )
            raw = evaluated.value
            trace.extend(evaluated.trace)
        else:
            raw = selection.rate * reservations
            trace.append(
                f"{reservations} reservations x {money(selection.rate)} = {money(raw)}"
            )

        if parameters.fixed_quota:
            raw += parameters.fixed_quota
            trace.append(f"+ fixed quota {money(parameters.fixed_quota)} = {money(raw)}")

        amount, min_applied, max_applied = clamp_amount(
            raw, parameters.minimum_guaranteed, parameters.maximum,
        )
        if min_applied:
            trace.append(f"Minimum guaranteed applied: {money(amount)}")
        elif max_applied:
            trace.append(f"Maximum applied: {money(amount)}")

        bonus = parameters.per_reservation_bonus * reservations
        if bonus:
            match self._bonus_policy:
                case BonusPolicy.ADD_TO_CLASS_AMOUNT:
                    amount += bonus
                    trace.append(f"+ reservation bonus {money(bonus)} = {money(amount)}")
                case BonusPolicy.TRACK_SEPARATELY:
                    trace.append(f"Reservation bonus (not in class pay): {money(bonus)}")

        return TariffResult(
            amount=quantize_money(amount),
            rate_applied=selection.rate,
            tier_label=selection.label,
            is_full_house=selection.is_full_house,
            minimum_applied=min_applied,
            maximum_applied=max_applied,
            bonus=quantize_money(bonus),
            trace=tuple(trace),
        )
