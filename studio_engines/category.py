"""
studio_engines.category -- Instructor category resolution.

Responsibility:
    Map a discipline's aggregated metrics (plus event participation and
    guideline compliance flags, plus an optional manual override) to one
    of the closed set of instructor categories.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``InstructorMetrics`` from ``studio_engines.metrics``.

Invariants enforced:
    - A manual override wins without evaluating any requirement.
    - Categories are evaluated from most to least senior; the first one
      whose requirements are all met is returned.
    - Guideline compliance is always required, whatever the requirement flag.
    - A category with no requirement entry is skipped.
    - When nothing qualifies the base ``INSTRUCTOR`` category is returned.
    - Monotonic: improving every metric never yields a less senior category.

Failure modes:
    - None at resolve time; unknown category strings raise ValueError when
      parsed with ``Category.parse``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from studio_engines.metrics import InstructorMetrics
from studio_engines.tracer import traced_engine
from studio_kernel.logging_config import get_logger

logger = get_logger("engines.category")


class Category(str, Enum):
    """Instructor seniority categories."""

    INSTRUCTOR = "INSTRUCTOR"
    EMBAJADOR_JUNIOR = "EMBAJADOR_JUNIOR"
    EMBAJADOR = "EMBAJADOR"
    EMBAJADOR_SENIOR = "EMBAJADOR_SENIOR"

    @classmethod
    def parse(cls, value: str | Category) -> Category:
        if isinstance(value, Category):
            return value
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown instructor category: {value!r}") from None

    @property
    def seniority(self) -> int:
        match self:
            case Category.INSTRUCTOR:
                return 0
            case Category.EMBAJADOR_JUNIOR:
                return 1
            case Category.EMBAJADOR:
                return 2
            case Category.EMBAJADOR_SENIOR:
                return 3


BASE_CATEGORY = Category.INSTRUCTOR

# Most senior first
CATEGORY_PRIORITY: tuple[Category, ...] = tuple(
    sorted(Category, key=lambda c: c.seniority, reverse=True)
)


@dataclass(frozen=True)
class CategoryRequirement:
    """Thresholds an instructor must meet to hold a category."""

    min_classes: int = 0
    min_occupancy: Decimal = Decimal("0")
    min_unique_studios: int = 0
    min_dobleteos: int = 0
    min_non_prime_hours: int = 0
    requires_event_participation: bool = False
    requires_guideline_compliance: bool = True

    def unmet(
        self,
        metrics: InstructorMetrics,
        *,
        event_participation: bool,
        guideline_compliance: bool,
    ) -> tuple[str, ...]:
        """Names of the requirements ``metrics`` fails; empty when all are met."""
        failures: list[str] = []
        if metrics.total_classes < self.min_classes:
            failures.append("classes")
        if metrics.occupancy_average < self.min_occupancy:
            failures.append("occupancy")
        if metrics.unique_studios < self.min_unique_studios:
            failures.append("unique_studios")
        if metrics.dobleteos < self.min_dobleteos:
            failures.append("dobleteos")
        if metrics.non_prime_hours < self.min_non_prime_hours:
            failures.append("non_prime_hours")
        if self.requires_event_participation and not event_participation:
            failures.append("event_participation")
        # Compliance is mandatory for every category
        if not guideline_compliance:
            failures.append("guideline_compliance")
        return tuple(failures)


@dataclass(frozen=True)
class CategoryDecision:
    """Outcome of category resolution with the reasons lower tiers were chosen."""

    category: Category
    is_manual: bool
    unmet_by_category: tuple[tuple[Category, tuple[str, ...]], ...] = ()

    def describe(self) -> str:
        if self.is_manual:
            return f"{self.category.value} (manual override)"
        return self.category.value


class CategoryResolver:
    """Resolves the category for one instructor and discipline."""

    @traced_engine("category", "1.0", fingerprint_fields=("override", "event_participation", "guideline_compliance"))
    def resolve(
        self,
        requirements: Mapping[Category, CategoryRequirement],
        metrics: InstructorMetrics,
        *,
        event_participation: bool = True,
        guideline_compliance: bool = True,
        override: Category | None = None,
    ) -> CategoryDecision:
        if override is not None:
            logger.info(
                "category_override_applied",
                extra={"category": override.value},
            )
            return CategoryDecision(category=override, is_manual=True)

        unmet_log: list[tuple[Category, tuple[str, ...]]] = []
        for category in CATEGORY_PRIORITY:
            requirement = requirements.get(category)
            if requirement is None:
                continue
            unmet = requirement.unmet(
                metrics,
                event_participation=event_participation,
                guideline_compliance=guideline_compliance,
            )
            if not unmet:
                logger.debug(
                    "category_resolved",
                    extra={"category": category.value, **metrics.as_dict()},
                )
                return CategoryDecision(
                    category=category,
                    is_manual=False,
                    unmet_by_category=tuple(unmet_log),
                )
            unmet_log.append((category, unmet))

        logger.debug(
            "category_defaulted",
            extra={"category": BASE_CATEGORY.value, **metrics.as_dict()},
        )
        return CategoryDecision(
            category=BASE_CATEGORY,
            is_manual=False,
            unmet_by_category=tuple(unmet_log),
        )
