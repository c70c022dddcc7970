"""
Tests for the Payment Assembler.

Covers:
- Subtotal -> penalty discount -> retention -> final pay
- Fixed and percentage reajuste
- Bonus and cover components
- Clamping final pay at zero
- Carrying stored adjustments under each recalculation policy
"""

from decimal import Decimal

import pytest

from studio_engines.assembler import (
    AdjustmentType,
    PaymentAssembler,
    RecalculationPolicy,
    StoredAdjustments,
)


class TestAssemble:
    """Tests for PaymentAssembler.assemble."""

    def setup_method(self):
        self.assembler = PaymentAssembler()

    def test_penalty_and_retention_example(self):
        components = self.assembler.assemble(
            base_amount=Decimal("500.00"), penalty_discount_percent=Decimal("3"),
        )

        assert components.subtotal == Decimal("500.00")
        assert components.discount_amount == Decimal("15.00")
        assert components.net_amount == Decimal("485.00")
        assert components.retention == Decimal("38.80")
        assert components.final_pay == Decimal("446.20")

    def test_trace_lines(self):
        components = self.assembler.assemble(
            base_amount=Decimal("500.00"), penalty_discount_percent=Decimal("3"),
        )

        assert components.trace[0] == "Base pay: S/.500.00"
        assert "Penalty discount 3%: -S/.15.00" in components.trace
        assert "Retention 8%: -S/.38.80" in components.trace
        assert components.trace[-1] == "Final pay: S/.446.20"

    def test_fixed_reajuste(self):
        components = self.assembler.assemble(
            base_amount=Decimal("400.00"),
            adjustments=StoredAdjustments(reajuste=Decimal("50"), reajuste_type=AdjustmentType.FIXED),
        )

        assert components.reajuste_amount == Decimal("50.00")
        assert components.subtotal == Decimal("450.00")
        assert components.retention == Decimal("36.00")
        assert components.final_pay == Decimal("414.00")

    def test_percentage_reajuste(self):
        components = self.assembler.assemble(
            base_amount=Decimal("400.00"),
            adjustments=StoredAdjustments(
                reajuste=Decimal("10"), reajuste_type=AdjustmentType.PERCENTAGE,
            ),
        )

        assert components.reajuste_amount == Decimal("40.00")
        assert components.subtotal == Decimal("440.00")

    def test_bonus_and_cover(self):
        components = self.assembler.assemble(
            base_amount=Decimal("300.00"),
            activity_bonus=Decimal("45.00"),
            cover=Decimal("80.00"),
            adjustments=StoredAdjustments(manual_bonus=Decimal("25")),
        )

        assert components.bonus == Decimal("70.00")
        assert components.cover == Decimal("80.00")
        assert components.subtotal == Decimal("450.00")
        assert components.final_pay == Decimal("414.00")

    def test_discount_applies_to_whole_subtotal(self):
        components = self.assembler.assemble(
            base_amount=Decimal("100.00"),
            cover=Decimal("100.00"),
            penalty_discount_percent=Decimal("10"),
        )

        assert components.discount_amount == Decimal("20.00")

    def test_negative_reajuste_clamped_to_zero(self, captured_logs):
        components = self.assembler.assemble(
            base_amount=Decimal("100.00"),
            adjustments=StoredAdjustments(reajuste=Decimal("-300")),
        )

        assert components.final_pay == Decimal("0.00")
        assert "Final pay S/.-184.00 clamped to S/.0.00" in components.trace
        assert any(r["message"] == "final_pay_clamped_to_zero" for r in captured_logs())

    def test_zero_retention(self):
        assembler = PaymentAssembler(retention_rate=Decimal("0"))

        components = assembler.assemble(base_amount=Decimal("250.00"))

        assert components.retention == Decimal("0.00")
        assert components.final_pay == Decimal("250.00")

    def test_invalid_retention_rejected(self):
        with pytest.raises(ValueError):
            PaymentAssembler(retention_rate=Decimal("1"))


class TestCarriedAdjustments:
    """Stored reajuste and manual bonus across recalculations."""

    STORED = StoredAdjustments(
        reajuste=Decimal("15"),
        reajuste_type=AdjustmentType.PERCENTAGE,
        manual_bonus=Decimal("40"),
    )

    def test_preserve_keeps_stored_values(self):
        assembler = PaymentAssembler(policy=RecalculationPolicy.PRESERVE_ADJUSTMENTS)

        assert assembler.carried_adjustments(self.STORED) == self.STORED

    def test_recompute_discards_stored_values(self):
        assembler = PaymentAssembler(policy=RecalculationPolicy.RECOMPUTE_ALL)

        assert assembler.carried_adjustments(self.STORED) == StoredAdjustments()

    def test_caller_values_win(self):
        assembler = PaymentAssembler(policy=RecalculationPolicy.PRESERVE_ADJUSTMENTS)

        carried = assembler.carried_adjustments(self.STORED, manual_bonus=Decimal("0"))

        assert carried.reajuste == Decimal("15")
        assert carried.reajuste_type == AdjustmentType.PERCENTAGE
        assert carried.manual_bonus == Decimal("0")

    def test_caller_values_win_under_recompute(self):
        assembler = PaymentAssembler(policy=RecalculationPolicy.RECOMPUTE_ALL)

        carried = assembler.carried_adjustments(self.STORED, reajuste=Decimal("20"))

        assert carried == StoredAdjustments(reajuste=Decimal("20"))

    def test_no_stored_payment(self):
        assembler = PaymentAssembler()

        assert assembler.carried_adjustments(None) == StoredAdjustments()
