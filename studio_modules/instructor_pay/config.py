"""
Instructor Pay Configuration Schema.

Behavioural switches of the instructor pay service.  Tables and rates
(schedule, retention, bonus amounts) live in ``studio_config``; this
dataclass holds the policy choices a studio makes about how they apply.
"""

from dataclasses import dataclass, field
from typing import Self

from studio_engines.assembler import RecalculationPolicy
from studio_engines.tariff import BonusPolicy
from studio_kernel.logging_config import get_logger
from studio_modules.instructor_pay.models import PaymentStatus

logger = get_logger("modules.instructor_pay.config")


@dataclass
class InstructorPayConfig:
    """
    Configuration schema for the instructor pay module.

        config = InstructorPayConfig(
            bonus_policy=BonusPolicy.ADD_TO_CLASS_AMOUNT,
            recalculation_policy=RecalculationPolicy.RECOMPUTE_ALL,
        )
    """

    # Open policy choices
    bonus_policy: BonusPolicy = BonusPolicy.TRACK_SEPARATELY
    recalculation_policy: RecalculationPolicy = RecalculationPolicy.PRESERVE_ADJUSTMENTS

    # Stored payments in these statuses are never recalculated
    locked_statuses: frozenset[PaymentStatus] = field(
        default_factory=lambda: frozenset({PaymentStatus.APPROVED})
    )

    persist_categories: bool = True
    apply_cover_full_house: bool = True

    def __post_init__(self):
        if not isinstance(self.bonus_policy, BonusPolicy):
            raise ValueError(
                f"bonus_policy must be one of {[p.value for p in BonusPolicy]}, "
                f"got '{self.bonus_policy}'"
            )
        if not isinstance(self.recalculation_policy, RecalculationPolicy):
            raise ValueError(
                f"recalculation_policy must be one of {[p.value for p in RecalculationPolicy]}, "
                f"got '{self.recalculation_policy}'"
            )
        if PaymentStatus.PENDING in self.locked_statuses:
            raise ValueError("PENDING payments cannot be locked")

        logger.info(
            "instructor_pay_config_initialized",
            extra={
                "bonus_policy": self.bonus_policy.value,
                "recalculation_policy": self.recalculation_policy.value,
                "locked_statuses": sorted(s.value for s in self.locked_statuses),
                "persist_categories": self.persist_categories,
                "apply_cover_full_house": self.apply_cover_full_house,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the default policies."""
        logger.info("instructor_pay_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g. a YAML section)."""
        logger.info(
            "instructor_pay_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        data = dict(data)
        if "bonus_policy" in data:
            data["bonus_policy"] = BonusPolicy(data["bonus_policy"])
        if "recalculation_policy" in data:
            data["recalculation_policy"] = RecalculationPolicy(data["recalculation_policy"])
        if "locked_statuses" in data:
            data["locked_statuses"] = frozenset(
                PaymentStatus(s) if isinstance(s, str) else s
                for s in data["locked_statuses"]
            )
        return cls(**data)
