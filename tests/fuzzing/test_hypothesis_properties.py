"""
Hypothesis property tests for the pay engines.

Properties checked:
- Class pay never decreases as reservations grow (below full house)
- A full class pays exactly full_house_rate x reservations
- A versus class pays the combined amount divided by the versus count
- Clamping to minimum/maximum is idempotent
- Better metrics never yield a less senior category
- Penalty points within the allowance never discount
- Final pay is never negative
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from studio_engines.assembler import AdjustmentType, PaymentAssembler, StoredAdjustments
from studio_engines.category import Category, CategoryRequirement, CategoryResolver
from studio_engines.metrics import InstructorMetrics
from studio_engines.penalty import PenaltyAggregator
from studio_engines.tariff import PaymentParameters, TariffResolver, TariffTier, clamp_amount
from studio_engines.types import ClassSession, quantize_money
from studio_engines.versus import VersusAdjuster

money = st.decimals(min_value=Decimal("0"), max_value=Decimal("10000"), places=2)
rates = st.decimals(min_value=Decimal("0"), max_value=Decimal("50"), places=2)


@composite
def tariff_parameters(draw):
    """Parameters with ascending thresholds and non-decreasing rates."""
    thresholds = sorted(draw(st.sets(st.integers(min_value=1, max_value=80), min_size=1, max_size=5)))
    tier_rates = sorted(draw(st.lists(rates, min_size=len(thresholds), max_size=len(thresholds))))
    return PaymentParameters(
        tiers=tuple(TariffTier(t, r) for t, r in zip(thresholds, tier_rates)),
        full_house_rate=draw(rates),
    )


@composite
def metrics(draw):
    total_classes = draw(st.integers(min_value=0, max_value=120))
    return InstructorMetrics(
        total_classes=total_classes,
        total_reservations=0,
        total_capacity=0,
        occupancy_average=draw(st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2)),
        unique_studios=draw(st.integers(min_value=0, max_value=6)),
        dobleteos=draw(st.integers(min_value=0, max_value=30)),
        non_prime_hours=draw(st.integers(min_value=0, max_value=30)),
        classes_per_week=Decimal(total_classes) / 4,
    )


REQUIREMENTS = {
    Category.EMBAJADOR_SENIOR: CategoryRequirement(
        min_classes=60, min_occupancy=Decimal("80"), min_unique_studios=3,
        min_dobleteos=10, min_non_prime_hours=10,
    ),
    Category.EMBAJADOR: CategoryRequirement(
        min_classes=40, min_occupancy=Decimal("65"), min_unique_studios=2, min_dobleteos=5,
    ),
    Category.EMBAJADOR_JUNIOR: CategoryRequirement(min_classes=20, min_occupancy=Decimal("50")),
}


class TestTariffProperties:

    @given(parameters=tariff_parameters(), reservations=st.integers(min_value=0, max_value=98))
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_pay_monotonic_in_reservations(self, parameters, reservations):
        resolver = TariffResolver()
        capacity = 100

        lower = resolver.resolve(parameters, reservations=reservations, capacity=capacity)
        higher = resolver.resolve(parameters, reservations=reservations + 1, capacity=capacity)

        assert higher.amount >= lower.amount

    @given(
        parameters=tariff_parameters(),
        capacity=st.integers(min_value=1, max_value=60),
        extra=st.integers(min_value=0, max_value=10),
    )
    @settings(max_examples=200)
    def test_full_house_exact(self, parameters, capacity, extra):
        reservations = capacity + extra

        result = TariffResolver().resolve(parameters, reservations=reservations, capacity=capacity)

        assert result.is_full_house
        assert result.amount == quantize_money(parameters.full_house_rate * reservations)


class TestVersusProperties:

    @given(
        parameters=tariff_parameters(),
        capacity=st.integers(min_value=1, max_value=40),
        data=st.data(),
        versus_count=st.integers(min_value=2, max_value=4),
    )
    @settings(max_examples=200)
    def test_split_equals_combined_over_count(self, parameters, capacity, data, versus_count):
        reservations = data.draw(st.integers(min_value=0, max_value=capacity))
        resolver = TariffResolver()
        session = ClassSession(
            id=uuid4(),
            instructor_id=uuid4(),
            discipline_id=uuid4(),
            period_id=uuid4(),
            starts_at=datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc),
            studio="Reducto",
            capacity=capacity,
            total_reservations=reservations,
            is_versus=True,
            versus_count=versus_count,
        )

        pricing = VersusAdjuster(resolver).price(session, parameters)
        combined = resolver.resolve(
            parameters,
            reservations=reservations * versus_count,
            capacity=capacity * versus_count,
        )

        assert pricing.amount == quantize_money(combined.amount / versus_count)


class TestClampProperties:

    @given(amount=money, minimum=money, maximum=money)
    @settings(max_examples=300)
    def test_idempotent(self, amount, minimum, maximum):
        assume(maximum == 0 or minimum <= maximum)

        once, _, _ = clamp_amount(amount, minimum, maximum)
        twice, min_applied, max_applied = clamp_amount(once, minimum, maximum)

        assert twice == once
        assert not min_applied and not max_applied


class TestCategoryProperties:

    @given(base=metrics(), bump=st.integers(min_value=0, max_value=20))
    @settings(max_examples=300)
    def test_better_metrics_never_demote(self, base, bump):
        better = InstructorMetrics(
            total_classes=base.total_classes + bump,
            total_reservations=0,
            total_capacity=0,
            occupancy_average=min(Decimal("100"), base.occupancy_average + bump),
            unique_studios=base.unique_studios + bump,
            dobleteos=base.dobleteos + bump,
            non_prime_hours=base.non_prime_hours + bump,
            classes_per_week=base.classes_per_week,
        )
        resolver = CategoryResolver()

        before = resolver.resolve(REQUIREMENTS, base).category
        after = resolver.resolve(REQUIREMENTS, better).category

        assert after.seniority >= before.seniority


class TestPenaltyProperties:

    @given(total_classes=st.integers(min_value=0, max_value=200), data=st.data())
    @settings(max_examples=200)
    def test_within_allowance_no_discount(self, total_classes, data):
        allowed = total_classes // 10
        points = data.draw(st.integers(min_value=0, max_value=allowed))
        zeros = data.draw(st.integers(min_value=0, max_value=3))

        result = PenaltyAggregator().calculate(
            [Decimal(1)] * points + [Decimal(0)] * zeros, total_classes=total_classes,
        )

        assert result.discount_percent == 0


class TestAssemblerProperties:

    @given(
        base_amount=money,
        activity_bonus=money,
        cover=money,
        penalty=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=0),
        reajuste=st.decimals(min_value=Decimal("-20000"), max_value=Decimal("5000"), places=2),
        reajuste_type=st.sampled_from(list(AdjustmentType)),
    )
    @settings(max_examples=300)
    def test_final_pay_never_negative(self, base_amount, activity_bonus, cover, penalty,
                                      reajuste, reajuste_type):
        components = PaymentAssembler().assemble(
            base_amount=base_amount,
            activity_bonus=activity_bonus,
            cover=cover,
            penalty_discount_percent=penalty,
            adjustments=StoredAdjustments(reajuste=reajuste, reajuste_type=reajuste_type),
        )

        assert components.final_pay >= 0
