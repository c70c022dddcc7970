"""Tests for InstructorPayConfig."""

import pytest

from studio_engines.assembler import RecalculationPolicy
from studio_engines.tariff import BonusPolicy
from studio_modules.instructor_pay.config import InstructorPayConfig
from studio_modules.instructor_pay.models import PaymentStatus


class TestInstructorPayConfig:

    def test_defaults(self):
        config = InstructorPayConfig.with_defaults()

        assert config.bonus_policy == BonusPolicy.TRACK_SEPARATELY
        assert config.recalculation_policy == RecalculationPolicy.PRESERVE_ADJUSTMENTS
        assert config.locked_statuses == frozenset({PaymentStatus.APPROVED})
        assert config.persist_categories is True
        assert config.apply_cover_full_house is True

    def test_from_dict(self):
        config = InstructorPayConfig.from_dict(
            {
                "bonus_policy": "add_to_class_amount",
                "recalculation_policy": "recompute_all",
                "locked_statuses": ["APPROVED", "PAID"],
                "persist_categories": False,
            }
        )

        assert config.bonus_policy == BonusPolicy.ADD_TO_CLASS_AMOUNT
        assert config.recalculation_policy == RecalculationPolicy.RECOMPUTE_ALL
        assert config.locked_statuses == frozenset({PaymentStatus.APPROVED, PaymentStatus.PAID})
        assert config.persist_categories is False

    def test_from_dict_unknown_policy(self):
        with pytest.raises(ValueError):
            InstructorPayConfig.from_dict({"bonus_policy": "double_it"})

    def test_pending_cannot_be_locked(self):
        with pytest.raises(ValueError, match="PENDING"):
            InstructorPayConfig(locked_statuses=frozenset({PaymentStatus.PENDING}))

    def test_policy_type_checked(self):
        with pytest.raises(ValueError, match="bonus_policy"):
            InstructorPayConfig(bonus_policy="track_separately")

    def test_initialization_logged(self, captured_logs):
        InstructorPayConfig()

        records = [r for r in captured_logs() if r["message"] == "instructor_pay_config_initialized"]
        assert records[0]["locked_statuses"] == ["APPROVED"]
