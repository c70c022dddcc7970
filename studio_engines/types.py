"""
studio_engines.types -- Shared value objects for the pay engines.

Responsibility:
    ``ClassSession`` (one taught class with its attendance figures) and the
    money helpers used by every engine to quantize and render amounts.

Architecture position:
    Engines -- pure value objects, zero I/O.  Imported by metrics, tariff,
    versus and the instructor pay module.

Invariants enforced:
    - capacity >= 0 and every attendance count >= 0.
    - Money is Decimal, quantized to cents with ROUND_HALF_UP.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from studio_kernel.logging_config import get_logger

logger = get_logger("engines.types")

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def quantize_money(amount: Decimal) -> Decimal:
    """Round an amount to cents (half up)."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, symbol: str = "S/.") -> str:
    """Render an amount for trace lines, e.g. ``S/.75.00``."""
    return f"{symbol}{quantize_money(amount)}"


@dataclass(frozen=True)
class ClassSession:
    """One class taught by an instructor in a pay period.

    ``starts_at`` is either timezone-aware or already in studio local time.
    ``full_house_override`` forces the class to be priced as full regardless
    of its reservation count.  ``special_text`` is a free-form note and is
    never parsed.
    """

    id: UUID
    instructor_id: UUID
    discipline_id: UUID
    period_id: UUID
    starts_at: datetime
    studio: str
    capacity: int
    total_reservations: int
    waitlist: int = 0
    courtesies: int = 0
    paid_reservations: int = 0
    is_versus: bool = False
    versus_count: int = 1
    full_house_override: bool = False
    special_text: str = ""

    def __post_init__(self):
        for name in ("capacity", "total_reservations", "waitlist", "courtesies", "paid_reservations"):
            if getattr(self, name) < 0:
                logger.warning(
                    "class_session_negative_count",
                    extra={"class_id": str(self.id), "field": name, "value": getattr(self, name)},
                )
                raise ValueError(f"{name} cannot be negative")

    @property
    def is_versus_shared(self) -> bool:
        """True when the class is co-taught and pay must be split."""
        return self.is_versus and self.versus_count > 1
