"""
Engine settings schema.

Typed, frozen view of the tables and rates the pay engines need: studio
timezone, flagship discipline, non-prime schedule, retention rate,
penalty allowance and activity bonus rates.  YAML files are parsed into
these types by ``studio_config.loader``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NonPrimeSlotDef:
    """Local start times ("HH:MM") that are non-prime at a studio."""

    studio: str
    times: tuple[str, ...]


# ---------------------------------------------------------------------------
# Policies and rates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PenaltyPolicyDef:
    """Penalty points allowed per class and an optional discount cap (percent)."""

    allowance_ratio: Decimal = Decimal("0.10")
    max_discount_percent: Decimal | None = None


@dataclass(frozen=True)
class ExtrasRatesDef:
    cover_bonus: Decimal = Decimal("80")
    brandeo_rate: Decimal = Decimal("15")
    theme_ride_rate: Decimal = Decimal("30")
    versus_bonus: Decimal = Decimal("30")


@dataclass(frozen=True)
class EngineSettings:
    """Everything the engines read from configuration."""

    timezone: str = "America/Lima"
    flagship_discipline: str = "Síclo"
    non_prime_schedule: tuple[NonPrimeSlotDef, ...] = ()
    retention_rate: Decimal = Decimal("0.08")
    currency_symbol: str = "S/."
    penalty: PenaltyPolicyDef = field(default_factory=PenaltyPolicyDef)
    extras: ExtrasRatesDef = field(default_factory=ExtrasRatesDef)
    checksum: str = ""
