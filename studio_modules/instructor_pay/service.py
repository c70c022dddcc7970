"""
Instructor Pay Module Service (``studio_modules.instructor_pay.service``).

Responsibility
--------------
Orchestrates a pay calculation: reads the catalog, aggregates metrics and
resolves a category per discipline, prices every class through the versus
adjuster and tariff resolver, converts penalties to a discount, prices
extra activities, assembles the payment and upserts it through the
``PaymentStore``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``InstructorPaymentService`` is the sole
public entry point.  It composes the stateless engines from
``studio_engines`` with a ``CatalogProvider`` and a ``PaymentStore``.

Invariants enforced
-------------------
* ``calculate_instructor`` owns the transaction (commit on success,
  rollback on exception).
* ``calculate_period`` runs each instructor inside a SAVEPOINT; one
  instructor's failure rolls back only that instructor.
* A class whose pricing raises is logged, reported in
  ``skipped_classes`` and left out of the total; its siblings still count.
* A discipline without a formula is skipped with a warning.
* Payments in a locked status (APPROVED by default) are never recalculated.

Failure modes
-------------
* ``PeriodNotFoundError`` / ``InstructorNotFoundError``  -> computation for
  that instructor aborts.
* ``PaymentLockedError``  -> raised by ``calculate_instructor``; counted as
  skipped by ``calculate_period``.

Usage::

    service = InstructorPaymentService(session, catalog, clock=clock)
    result = service.calculate_instructor(
        instructor_id, period_id, actor_id=actor_id,
    )
    batch = service.calculate_period(period_id, actor_id=actor_id)
"""

from __future__ import annotations

import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from studio_config.loader import load_engine_settings
from studio_config.schema import EngineSettings
from studio_engines.assembler import AdjustmentType, PaymentAssembler
from studio_engines.category import Category, CategoryResolver
from studio_engines.expression import ExpressionEvaluator
from studio_engines.extras import ExtrasRates, calculate_extras
from studio_engines.metrics import MetricsAggregator, NonPrimeSchedule
from studio_engines.penalty import PenaltyAggregator
from studio_engines.tariff import TariffResolver
from studio_engines.types import ZERO, ClassSession, format_money, quantize_money
from studio_engines.versus import VersusAdjuster
from studio_kernel.domain.clock import Clock, SystemClock
from studio_kernel.exceptions import (
    InstructorNotFoundError,
    PaymentLockedError,
    PeriodNotFoundError,
)
from studio_kernel.logging_config import LogContext, get_logger
from studio_modules.instructor_pay.catalog import CatalogProvider
from studio_modules.instructor_pay.config import InstructorPayConfig
from studio_modules.instructor_pay.models import (
    BatchCalculationResult,
    BatchItemError,
    CalculationOutcome,
    CalculationResult,
    CategoryOverride,
    ClassPaymentDetail,
    Cover,
    CoverStatus,
    InstructorCategoryRecord,
    InstructorSnapshot,
    PaymentRecord,
    PaymentStatus,
    Period,
    SkippedClass,
)
from studio_modules.instructor_pay.store import PaymentStore, SqlPaymentStore

logger = get_logger("modules.instructor_pay.service")


@dataclass(frozen=True)
class _Computation:
    """A priced payment before persistence."""

    record: PaymentRecord | None
    result: CalculationResult


def _normalize_name(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).strip().casefold()


class InstructorPaymentService:
    """
    Orchestrates instructor pay calculations.

    Engines are built once from ``EngineSettings`` and
    ``InstructorPayConfig``; the catalog and store are injected.
    """

    def __init__(
        self,
        session: Session,
        catalog: CatalogProvider,
        store: PaymentStore | None = None,
        settings: EngineSettings | None = None,
        config: InstructorPayConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._catalog = catalog
        self._store = store or SqlPaymentStore(session)
        self._settings = settings or load_engine_settings()
        self._config = config or InstructorPayConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._symbol = self._settings.currency_symbol

        self._schedule = NonPrimeSchedule.from_pairs(
            ((slot.studio, slot.times) for slot in self._settings.non_prime_schedule),
            timezone=self._settings.timezone,
        )
        self._category_resolver = CategoryResolver()
        self._tariff = TariffResolver(
            bonus_policy=self._config.bonus_policy,
            evaluator=ExpressionEvaluator(),
            currency_symbol=self._symbol,
        )
        self._versus = VersusAdjuster(self._tariff)
        self._penalty = PenaltyAggregator(
            allowance_ratio=self._settings.penalty.allowance_ratio,
            max_discount_percent=self._settings.penalty.max_discount_percent,
        )
        self._assembler = PaymentAssembler(
            retention_rate=self._settings.retention_rate,
            policy=self._config.recalculation_policy,
            currency_symbol=self._symbol,
        )
        self._extras_rates = ExtrasRates(
            cover_bonus=self._settings.extras.cover_bonus,
            brandeo_rate=self._settings.extras.brandeo_rate,
            theme_ride_rate=self._settings.extras.theme_ride_rate,
            versus_bonus=self._settings.extras.versus_bonus,
        )

    # =========================================================================
    # Public entry points
    # =========================================================================

    def calculate_instructor(
        self,
        instructor_id: UUID,
        period_id: UUID,
        *,
        actor_id: UUID,
        category_overrides: Sequence[CategoryOverride] = (),
        reajuste: Decimal | None = None,
        reajuste_type: AdjustmentType | None = None,
        manual_bonus: Decimal | None = None,
    ) -> CalculationResult:
        """Calculate and persist one instructor's payment; commits on success."""
        try:
            result = self._calculate_and_store(
                instructor_id, period_id,
                actor_id=actor_id,
                category_overrides=category_overrides,
                reajuste=reajuste,
                reajuste_type=reajuste_type,
                manual_bonus=manual_bonus,
            )
            self._session.commit()
            return result
        except Exception:
            self._session.rollback()
            raise

    def preview_instructor(
        self,
        instructor_id: UUID,
        period_id: UUID,
        *,
        category_overrides: Sequence[CategoryOverride] = (),
        reajuste: Decimal | None = None,
        reajuste_type: AdjustmentType | None = None,
        manual_bonus: Decimal | None = None,
    ) -> CalculationResult:
        """Calculate without persisting anything (locked payments included)."""
        period = self._require_period(period_id)
        existing = self._store.get_existing_payment(instructor_id, period_id)
        computation = self._compute(
            instructor_id, period,
            existing=existing,
            category_overrides=category_overrides,
            reajuste=reajuste,
            reajuste_type=reajuste_type,
            manual_bonus=manual_bonus,
        )
        if computation.record is None:
            return computation.result
        return replace(computation.result, outcome=CalculationOutcome.PREVIEW)

    def calculate_period(
        self,
        period_id: UUID,
        *,
        actor_id: UUID,
        instructor_ids: Sequence[UUID] | None = None,
        category_overrides: Sequence[CategoryOverride] = (),
    ) -> BatchCalculationResult:
        """
        Calculate every instructor of a period, isolating failures per instructor.

        Each instructor runs inside its own SAVEPOINT.  The outer transaction
        is committed once all instructors have been processed.
        """
        self._require_period(period_id)
        ids = tuple(instructor_ids) if instructor_ids is not None else tuple(
            self._catalog.get_instructor_ids(period_id)
        )
        logger.info(
            "period_calculation_started",
            extra={"period_id": str(period_id), "instructor_count": len(ids)},
        )

        created = updated = skipped = failed = 0
        results: list[CalculationResult] = []
        errors: list[BatchItemError] = []

        for instructor_id in ids:
            savepoint = self._session.begin_nested()
            try:
                result = self._calculate_and_store(
                    instructor_id, period_id,
                    actor_id=actor_id,
                    category_overrides=category_overrides,
                )
                savepoint.commit()
            except PaymentLockedError as exc:
                savepoint.rollback()
                skipped += 1
                logger.info(
                    "instructor_skipped_locked_payment",
                    extra={"instructor_id": str(instructor_id), "status": exc.status},
                )
                continue
            except Exception as exc:
                savepoint.rollback()
                failed += 1
                errors.append(
                    BatchItemError(
                        instructor_id=instructor_id,
                        error_code=getattr(exc, "code", "UNHANDLED_EXCEPTION"),
                        message=str(exc),
                    )
                )
                logger.error(
                    "instructor_calculation_failed",
                    extra={"instructor_id": str(instructor_id), "period_id": str(period_id)},
                    exc_info=True,
                )
                continue

            results.append(result)
            match result.outcome:
                case CalculationOutcome.CREATED:
                    created += 1
                case CalculationOutcome.UPDATED:
                    updated += 1
                case _:
                    skipped += 1

        self._session.commit()

        batch = BatchCalculationResult(
            period_id=period_id,
            created=created,
            updated=updated,
            skipped=skipped,
            failed=failed,
            results=tuple(results),
            errors=tuple(errors),
        )
        logger.info(
            "period_calculation_completed",
            extra={
                "period_id": str(period_id),
                "created_count": created,
                "updated_count": updated,
                "skipped_count": skipped,
                "failed_count": failed,
            },
        )
        return batch

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_period(self, period_id: UUID) -> Period:
        period = self._catalog.get_period(period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def _calculate_and_store(
        self,
        instructor_id: UUID,
        period_id: UUID,
        *,
        actor_id: UUID,
        category_overrides: Sequence[CategoryOverride] = (),
        reajuste: Decimal | None = None,
        reajuste_type: AdjustmentType | None = None,
        manual_bonus: Decimal | None = None,
    ) -> CalculationResult:
        with LogContext.bind(
            instructor_id=str(instructor_id),
            period_id=str(period_id),
            actor_id=str(actor_id),
        ):
            period = self._require_period(period_id)
            existing = self._store.get_existing_payment(instructor_id, period_id)
            if existing is not None and existing.status in self._config.locked_statuses:
                raise PaymentLockedError(
                    str(instructor_id), str(period_id), existing.status.value,
                )

            computation = self._compute(
                instructor_id, period,
                existing=existing,
                category_overrides=category_overrides,
                reajuste=reajuste,
                reajuste_type=reajuste_type,
                manual_bonus=manual_bonus,
            )
            if computation.record is None:
                return computation.result

            if self._config.persist_categories:
                for category_record in computation.result.categories:
                    self._store.upsert_category(category_record, actor_id)

            payment_id = self._store.upsert_payment(computation.record, actor_id)
            outcome = (
                CalculationOutcome.CREATED if existing is None else CalculationOutcome.UPDATED
            )
            logger.info(
                "payment_calculation_stored",
                extra={
                    "payment_id": str(payment_id),
                    "outcome": outcome.value,
                    "final_pay": str(computation.record.final_pay),
                },
            )
            return replace(computation.result, outcome=outcome, payment_id=payment_id)

    def _compute(
        self,
        instructor_id: UUID,
        period: Period,
        *,
        existing: PaymentRecord | None,
        category_overrides: Sequence[CategoryOverride],
        reajuste: Decimal | None,
        reajuste_type: AdjustmentType | None,
        manual_bonus: Decimal | None,
    ) -> _Computation:
        snapshot = self._catalog.get_instructor(instructor_id, period.id)
        if snapshot is None:
            raise InstructorNotFoundError(str(instructor_id), str(period.id))

        logger.info(
            "payment_calculation_started",
            extra={"instructor_name": snapshot.name, "class_count": len(snapshot.classes)},
        )
        money = lambda amount: format_money(amount, self._symbol)  # noqa: E731
        trace: list[str] = [f"Instructor: {snapshot.name}", f"Period: {period.name}"]

        classes = [c for c in snapshot.classes if c.period_id == period.id]
        if not classes:
            logger.info("no_billable_classes")
            trace.append("No billable classes in period")
            return _Computation(
                record=None,
                result=CalculationResult(
                    instructor_id=instructor_id,
                    period_id=period.id,
                    outcome=CalculationOutcome.NO_BILLABLE_CLASSES,
                    trace=tuple(trace),
                ),
            )

        covers = [
            c for c in snapshot.covers
            if c.status == CoverStatus.APPROVED
            and c.covering_instructor_id == instructor_id
            and c.period_id == period.id
        ]
        classes = self._apply_cover_full_house(covers, classes)

        flagship_ids = self._flagship_ids()
        aggregator = MetricsAggregator(self._schedule, flagship_ids)
        general_metrics = aggregator.aggregate(classes, weeks_in_period=period.weeks)
        trace.append(
            f"Period metrics: {general_metrics.total_classes} classes, "
            f"occupancy {general_metrics.occupancy_average:.2f}%, "
            f"{general_metrics.dobleteos} dobleteos, "
            f"{general_metrics.non_prime_hours} non-prime classes"
        )
        formulas = {f.discipline_id: f for f in self._catalog.get_formulas(period.id)}
        overrides = self._override_map(instructor_id, snapshot, category_overrides)

        details: list[ClassPaymentDetail] = []
        categories: list[InstructorCategoryRecord] = []
        skipped_classes: list[SkippedClass] = []
        skipped_disciplines: list[UUID] = []
        versus_bonus_classes = 0

        by_discipline: dict[UUID, list[ClassSession]] = {}
        for session in classes:
            by_discipline.setdefault(session.discipline_id, []).append(session)

        for discipline_id, sessions in by_discipline.items():
            formula = formulas.get(discipline_id)
            if formula is None:
                logger.warning(
                    "formula_missing_for_discipline",
                    extra={"discipline_id": str(discipline_id), "class_count": len(sessions)},
                )
                trace.append(f"Discipline {discipline_id}: no formula, {len(sessions)} classes skipped")
                skipped_disciplines.append(discipline_id)
                continue

            metrics = aggregator.aggregate(
                sessions, weeks_in_period=period.weeks, discipline_id=discipline_id,
            )
            decision = self._category_resolver.resolve(
                formula.requirements,
                metrics,
                event_participation=snapshot.event_participation,
                guideline_compliance=snapshot.guideline_compliance,
                override=overrides.get(discipline_id),
            )
            categories.append(
                InstructorCategoryRecord(
                    instructor_id=instructor_id,
                    discipline_id=discipline_id,
                    period_id=period.id,
                    category=decision.category,
                    is_manual=decision.is_manual,
                    metrics=metrics,
                )
            )
            trace.append(f"Discipline {discipline_id}: category {decision.describe()}")

            for session in sessions:
                try:
                    parameters = formula.parameters_for(decision.category)
                    pricing = self._versus.price(session, parameters)
                except Exception as exc:
                    logger.warning(
                        "class_calculation_failed",
                        extra={"class_id": str(session.id), "discipline_id": str(discipline_id)},
                        exc_info=True,
                    )
                    skipped_classes.append(
                        SkippedClass(
                            class_id=session.id,
                            error_code=getattr(exc, "code", type(exc).__name__),
                            message=str(exc),
                        )
                    )
                    trace.append(f"Class {session.id}: skipped ({exc})")
                    continue

                class_trace = " | ".join(pricing.trace)
                details.append(
                    ClassPaymentDetail(
                        class_id=session.id,
                        discipline_id=discipline_id,
                        category=decision.category,
                        reservations=pricing.reservations,
                        capacity=pricing.capacity,
                        amount=pricing.amount,
                        bonus=pricing.bonus,
                        tier_label=pricing.tariff.tier_label,
                        is_full_house=pricing.tariff.is_full_house,
                        full_house_forced=pricing.full_house_forced,
                        versus_count=pricing.versus_factor,
                        trace=class_trace,
                    )
                )
                trace.append(
                    f"Class {session.starts_at:%Y-%m-%d %H:%M} {session.studio}: "
                    f"{class_trace} -> {money(pricing.amount)}"
                )
                if session.is_versus_shared and discipline_id not in flagship_ids:
                    versus_bonus_classes += 1

        base_amount = sum((d.amount for d in details), ZERO)
        reservation_bonus = sum((d.bonus for d in details), ZERO)

        penalty = self._penalty.calculate(
            [p.points for p in snapshot.penalties if p.period_id == period.id],
            total_classes=len(classes),
        )
        if penalty.total_points:
            trace.append(
                f"Penalties: {penalty.total_points} points, {penalty.allowed_points} allowed, "
                f"discount {penalty.discount_percent}%"
            )

        extras = calculate_extras(
            covers_paid=sum(1 for c in covers if c.pays_bonus),
            brandeo_units=sum(b.units for b in snapshot.brandeos if b.period_id == period.id),
            theme_ride_units=sum(t.units for t in snapshot.theme_rides if t.period_id == period.id),
            workshop_payments=[w.payment for w in snapshot.workshops if w.period_id == period.id],
            versus_classes=versus_bonus_classes,
            rates=self._extras_rates,
        )
        if extras.total:
            trace.append(
                f"Extras: cover {money(extras.cover)}, brandeo {money(extras.brandeo)}, "
                f"theme ride {money(extras.theme_ride)}, workshop {money(extras.workshop)}, "
                f"versus {money(extras.versus)}"
            )

        adjustments = self._assembler.carried_adjustments(
            existing.stored_adjustments if existing is not None else None,
            reajuste=reajuste,
            reajuste_type=reajuste_type,
            manual_bonus=manual_bonus,
        )
        components = self._assembler.assemble(
            base_amount=base_amount,
            activity_bonus=extras.activity_bonus,
            cover=extras.cover,
            penalty_discount_percent=penalty.discount_percent,
            adjustments=adjustments,
        )
        trace.extend(components.trace)

        record = PaymentRecord(
            id=existing.id if existing is not None else None,
            instructor_id=instructor_id,
            period_id=period.id,
            base_amount=components.base_amount,
            reajuste=components.reajuste,
            reajuste_type=components.reajuste_type,
            manual_bonus=components.manual_bonus,
            bonus=components.bonus,
            cover=components.cover,
            reservation_bonus=quantize_money(reservation_bonus),
            penalty_discount_percent=components.penalty_discount_percent,
            penalty_discount_amount=components.discount_amount,
            retention=components.retention,
            final_pay=components.final_pay,
            brandeo=extras.brandeo,
            theme_ride=extras.theme_ride,
            workshop=extras.workshop,
            versus_bonus=extras.versus,
            metrics=general_metrics,
            event_participation=snapshot.event_participation,
            guideline_compliance=snapshot.guideline_compliance,
            status=existing.status if existing is not None else PaymentStatus.PENDING,
            class_details=tuple(details),
            calculated_at=self._clock.now(),
        )

        logger.info(
            "payment_calculation_completed",
            extra={
                "base_amount": str(components.base_amount),
                "final_pay": str(components.final_pay),
                "priced_classes": len(details),
                "skipped_classes": len(skipped_classes),
                "skipped_disciplines": len(skipped_disciplines),
            },
        )

        return _Computation(
            record=record,
            result=CalculationResult(
                instructor_id=instructor_id,
                period_id=period.id,
                outcome=(
                    CalculationOutcome.CREATED if existing is None else CalculationOutcome.UPDATED
                ),
                final_pay=components.final_pay,
                summary=components,
                class_details=tuple(details),
                categories=tuple(categories),
                metrics=general_metrics,
                penalty=penalty,
                extras=extras,
                skipped_classes=tuple(skipped_classes),
                skipped_disciplines=tuple(skipped_disciplines),
                trace=tuple(trace),
            ),
        )

    def _flagship_ids(self) -> frozenset[UUID]:
        target = _normalize_name(self._settings.flagship_discipline)
        return frozenset(
            d.id for d in self._catalog.get_disciplines() if _normalize_name(d.name) == target
        )

    def _override_map(
        self,
        instructor_id: UUID,
        snapshot: InstructorSnapshot,
        requested: Sequence[CategoryOverride],
    ) -> dict[UUID, Category]:
        """Stored manual categories, then request overrides on top."""
        overrides: dict[UUID, Category] = {}
        for override in (*snapshot.category_overrides, *requested):
            if override.instructor_id == instructor_id:
                overrides[override.discipline_id] = override.category
        return overrides

    def _apply_cover_full_house(
        self, covers: Sequence[Cover], classes: list[ClassSession],
    ) -> list[ClassSession]:
        if not self._config.apply_cover_full_house:
            return classes
        forced = {c.class_id for c in covers if c.pays_full_house}
        if not forced:
            return classes
        return [
            replace(c, full_house_override=True) if c.id in forced else c
            for c in classes
        ]
