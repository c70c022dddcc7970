"""
studio_engines.metrics -- Per-instructor performance metrics for a pay period.

Responsibility:
    Aggregate one instructor's classes (optionally restricted to one
    discipline) into the statistics used for category resolution:
    totals, average occupancy, distinct studios, dobleteos, non-prime-hour
    classes and classes per week.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by the category resolver and the instructor pay service.

Invariants enforced:
    - Occupancy average is the mean of per-class reservations/capacity x 100;
      classes with capacity 0 are excluded from the mean.
    - Dobleteos and non-prime hours only count classes of the flagship
      discipline(s).
    - Studio matching for the non-prime schedule is a case-insensitive
      substring match; time matching is exact "HH:MM" in studio local time.
    - Purity: identical inputs produce identical outputs.

Failure modes:
    - ValueError if weeks_in_period is not positive.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

from studio_engines.tracer import traced_engine
from studio_engines.types import HUNDRED, ZERO, ClassSession
from studio_kernel.logging_config import get_logger

logger = get_logger("engines.metrics")


@dataclass(frozen=True)
class NonPrimeSchedule:
    """(studio, local start time) combinations that count as non-prime.

    ``slots`` maps a lowercase studio fragment to the set of "HH:MM" times.
    """

    slots: dict[str, frozenset[str]] = field(default_factory=dict)
    timezone: str = "America/Lima"

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[tuple[str, Iterable[str]]], timezone: str = "America/Lima",
    ) -> NonPrimeSchedule:
        slots: dict[str, frozenset[str]] = {}
        for studio, times in pairs:
            key = studio.strip().lower()
            slots[key] = slots.get(key, frozenset()) | frozenset(times)
        return cls(slots=slots, timezone=timezone)

    def local_time(self, starts_at: datetime) -> datetime:
        """Convert an aware datetime to studio local time; naive values are already local."""
        if starts_at.tzinfo is None:
            return starts_at
        return starts_at.astimezone(ZoneInfo(self.timezone))

    def local_date(self, starts_at: datetime) -> date:
        return self.local_time(starts_at).date()

    def is_non_prime(self, studio: str, starts_at: datetime) -> bool:
        clock = self.local_time(starts_at).strftime("%H:%M")
        studio_key = studio.strip().lower()
        for fragment, times in self.slots.items():
            if fragment in studio_key and clock in times:
                return True
        return False


@dataclass(frozen=True)
class InstructorMetrics:
    """Aggregated statistics for one instructor (and optionally one discipline)."""

    total_classes: int
    total_reservations: int
    total_capacity: int
    occupancy_average: Decimal
    unique_studios: int
    dobleteos: int
    non_prime_hours: int
    classes_per_week: Decimal
    discipline_id: UUID | None = None

    def as_dict(self) -> dict[str, str]:
        """String-valued view for logging and persistence."""
        return {
            "total_classes": str(self.total_classes),
            "total_reservations": str(self.total_reservations),
            "total_capacity": str(self.total_capacity),
            "occupancy_average": str(self.occupancy_average),
            "unique_studios": str(self.unique_studios),
            "dobleteos": str(self.dobleteos),
            "non_prime_hours": str(self.non_prime_hours),
            "classes_per_week": str(self.classes_per_week),
        }


class MetricsAggregator:
    """
    Computes ``InstructorMetrics`` from class records.

    The non-prime schedule and flagship discipline ids are injected so that
    different studios (or tests) can supply their own tables.
    """

    def __init__(
        self,
        schedule: NonPrimeSchedule,
        flagship_discipline_ids: frozenset[UUID] = frozenset(),
    ):
        self._schedule = schedule
        self._flagship = flagship_discipline_ids

    def is_flagship(self, discipline_id: UUID) -> bool:
        return discipline_id in self._flagship

    @traced_engine("metrics", "1.0", fingerprint_fields=("discipline_id", "weeks_in_period"))
    def aggregate(
        self,
        sessions: Sequence[ClassSession],
        *,
        weeks_in_period: Decimal | int,
        discipline_id: UUID | None = None,
    ) -> InstructorMetrics:
        """Aggregate metrics over ``sessions``, filtered to ``discipline_id`` when given."""
        weeks = Decimal(weeks_in_period)
        if weeks <= 0:
            raise ValueError("weeks_in_period must be positive")

        selected = [
            s for s in sessions
            if discipline_id is None or s.discipline_id == discipline_id
        ]

        total_reservations = sum(s.total_reservations for s in selected)
        total_capacity = sum(s.capacity for s in selected)

        ratios = [
            Decimal(s.total_reservations) / Decimal(s.capacity) * HUNDRED
            for s in selected
            if s.capacity > 0
        ]
        occupancy = sum(ratios, ZERO) / len(ratios) if ratios else ZERO

        studios = {s.studio.strip() for s in selected if s.studio.strip()}

        flagship = [s for s in selected if self.is_flagship(s.discipline_id)]
        per_day = Counter(self._schedule.local_date(s.starts_at) for s in flagship)
        dobleteos = sum(1 for count in per_day.values() if count > 1)
        non_prime = sum(
            1 for s in flagship if self._schedule.is_non_prime(s.studio, s.starts_at)
        )

        metrics = InstructorMetrics(
            total_classes=len(selected),
            total_reservations=total_reservations,
            total_capacity=total_capacity,
            occupancy_average=occupancy,
            unique_studios=len(studios),
            dobleteos=dobleteos,
            non_prime_hours=non_prime,
            classes_per_week=Decimal(len(selected)) / weeks,
            discipline_id=discipline_id,
        )

        logger.debug("metrics_aggregated", extra=metrics.as_dict())
        return metrics
