"""
studio_engines.extras -- Activity bonuses paid on top of class pay.

Responsibility:
    Price the extra activities of a period: approved covers that pay a
    bonus, brandeos, theme rides, workshops and versus classes outside the
    flagship discipline.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Inputs are counts and
    amounts already filtered by the instructor pay service.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from studio_engines.tracer import traced_engine
from studio_engines.types import ZERO, quantize_money


@dataclass(frozen=True)
class ExtrasRates:
    cover_bonus: Decimal = Decimal("80")
    brandeo_rate: Decimal = Decimal("15")
    theme_ride_rate: Decimal = Decimal("30")
    versus_bonus: Decimal = Decimal("30")


@dataclass(frozen=True)
class ExtrasBreakdown:
    cover: Decimal
    brandeo: Decimal
    theme_ride: Decimal
    workshop: Decimal
    versus: Decimal

    @property
    def activity_bonus(self) -> Decimal:
        """Everything except covers, which are reported separately."""
        return self.brandeo + self.theme_ride + self.workshop + self.versus

    @property
    def total(self) -> Decimal:
        return self.cover + self.activity_bonus


@traced_engine(
    "extras", "1.0",
    fingerprint_fields=("covers_paid", "brandeo_units", "theme_ride_units", "versus_classes"),
)
def calculate_extras(
    *,
    covers_paid: int = 0,
    brandeo_units: int = 0,
    theme_ride_units: int = 0,
    workshop_payments: Iterable[Decimal] = (),
    versus_classes: int = 0,
    rates: ExtrasRates = ExtrasRates(),
) -> ExtrasBreakdown:
    return ExtrasBreakdown(
        cover=quantize_money(rates.cover_bonus * covers_paid),
        brandeo=quantize_money(rates.brandeo_rate * brandeo_units),
        theme_ride=quantize_money(rates.theme_ride_rate * theme_ride_units),
        workshop=quantize_money(sum(workshop_payments, ZERO)),
        versus=quantize_money(rates.versus_bonus * versus_classes),
    )
