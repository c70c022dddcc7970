"""
studio_engines.versus -- Versus and full-house adjustments around tariff lookup.

Responsibility:
    Prepare a class's attendance figures before pricing and split the
    priced amount afterwards:

    1. Full-house override: reservations := capacity.
    2. Versus (co-taught) class: reservations and capacity are multiplied by
       the versus count, the combined class is priced, and the clamped
       amount (and bonus) is divided by the versus count.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Wraps
    ``studio_engines.tariff.TariffResolver``.

Invariants enforced:
    - Override first, then versus scaling.
    - Multiply before pricing, divide after; clamps apply to the combined
      amount, never to the per-instructor share.

Failure modes:
    - VersusConfigurationError when a class is marked versus with fewer
      than two instructors.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from studio_engines.tariff import PaymentParameters, TariffResolver, TariffResult
from studio_engines.types import ClassSession, format_money, quantize_money
from studio_kernel.exceptions import VersusConfigurationError
from studio_kernel.logging_config import get_logger

logger = get_logger("engines.versus")


@dataclass(frozen=True)
class AdjustedAttendance:
    """Reservation and capacity figures to price, plus how they were derived."""

    reservations: int
    capacity: int
    versus_factor: int
    full_house_forced: bool
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassPricing:
    """Final pay for one class from one instructor's point of view."""

    class_id: UUID
    discipline_id: UUID
    amount: Decimal
    bonus: Decimal
    reservations: int
    capacity: int
    versus_factor: int
    full_house_forced: bool
    tariff: TariffResult
    trace: tuple[str, ...]


class VersusAdjuster:
    """Applies full-house override and versus scaling around a ``TariffResolver``."""

    def __init__(self, resolver: TariffResolver):
        self._resolver = resolver

    def prepare(self, session: ClassSession) -> AdjustedAttendance:
        if session.is_versus and session.versus_count < 2:
            raise VersusConfigurationError(str(session.id), session.versus_count)

        notes: list[str] = []
        reservations = session.total_reservations
        capacity = session.capacity

        if session.full_house_override:
            reservations = capacity
            notes.append(f"Full house forced: {reservations} reservations")

        factor = session.versus_count if session.is_versus_shared else 1
        if factor > 1:
            reservations *= factor
            capacity *= factor
            notes.append(
                f"Versus x{factor}: {reservations} reservations / {capacity} places combined"
            )

        return AdjustedAttendance(
            reservations=reservations,
            capacity=capacity,
            versus_factor=factor,
            full_house_forced=session.full_house_override,
            notes=tuple(notes),
        )

    def price(self, session: ClassSession, parameters: PaymentParameters) -> ClassPricing:
        adjusted = self.prepare(session)
        factor = adjusted.versus_factor
        result = self._resolver.resolve(
            parameters,
            reservations=adjusted.reservations,
            capacity=adjusted.capacity,
            waitlist=session.waitlist * factor,
            courtesies=session.courtesies * factor,
            paid_reservations=session.paid_reservations * factor,
        )

        amount = result.amount
        bonus = result.bonus
        trace = list(adjusted.notes) + list(result.trace)
        if factor > 1:
            amount = quantize_money(result.amount / factor)
            bonus = quantize_money(result.bonus / factor)
            symbol = self._resolver.currency_symbol
            trace.append(
                f"Versus split: {format_money(result.amount, symbol)} / {factor} "
                f"= {format_money(amount, symbol)}"
            )

        logger.debug(
            "class_priced",
            extra={
                "class_id": str(session.id),
                "amount": str(amount),
                "tier_label": result.tier_label,
                "versus_factor": factor,
            },
        )

        return ClassPricing(
            class_id=session.id,
            discipline_id=session.discipline_id,
            amount=amount,
            bonus=bonus,
            reservations=adjusted.reservations,
            capacity=adjusted.capacity,
            versus_factor=factor,
            full_house_forced=adjusted.full_house_forced,
            tariff=result,
            trace=tuple(trace),
        )
