"""
Instructor Pay ORM Persistence Models (``studio_modules.instructor_pay.orm``).

Responsibility:
    SQLAlchemy ORM models persisting payment records, their per-class
    detail lines, and the category resolved per discipline.  Each model
    provides ``to_dto()`` / ``from_dto()`` conversion to the frozen
    dataclasses in ``studio_modules.instructor_pay.models``.

Architecture position:
    **Modules layer** -- persistence companions to the DTOs.  Inherits
    ``TrackedBase`` (UUID PK, created/updated timestamps and actors).

Invariants enforced:
    - At most one payment per (instructor_id, period_id)
      (uq_instructor_payment_period); upserts rely on it.
    - At most one category per (instructor_id, discipline_id, period_id)
      (uq_instructor_category_period).
    - Monetary fields are Decimal (Numeric(38,9)); enums are stored as
      their .value strings.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from studio_kernel.db.base import TrackedBase

# ---------------------------------------------------------------------------
# PaymentRecordModel
# ---------------------------------------------------------------------------


class PaymentRecordModel(TrackedBase):
    """
    ORM model for ``PaymentRecord``.

    Guarantees:
        - ``(instructor_id, period_id)`` is unique.
        - ``final_pay`` is never negative (enforced by the DTO).
    """

    __tablename__ = "instructor_payments"

    instructor_id: Mapped[UUID] = mapped_column(nullable=False)
    period_id: Mapped[UUID] = mapped_column(nullable=False)
    base_amount: Mapped[Decimal] = mapped_column(nullable=False)
    reajuste: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    reajuste_type: Mapped[str] = mapped_column(String(20), nullable=False, default="FIXED")
    manual_bonus: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    bonus: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    cover: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    reservation_bonus: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    penalty_discount_percent: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    penalty_discount_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    retention: Mapped[Decimal] = mapped_column(nullable=False)
    final_pay: Mapped[Decimal] = mapped_column(nullable=False)
    brandeo: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    theme_ride: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    workshop: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    versus_bonus: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    event_participation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    guideline_compliance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Instructor-wide metrics over every discipline taught in the period
    total_classes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_reservations: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    occupancy_average: Mapped[Decimal | None] = mapped_column(nullable=True)
    unique_studios: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dobleteos: Mapped[int | None] = mapped_column(Integer, nullable=True)
    non_prime_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    classes_per_week: Mapped[Decimal | None] = mapped_column(nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("instructor_id", "period_id", name="uq_instructor_payment_period"),
        Index("idx_instructor_payment_period", "period_id"),
        Index("idx_instructor_payment_status", "status"),
    )

    def to_dto(self, details=()):
        from studio_engines.assembler import AdjustmentType
        from studio_engines.metrics import InstructorMetrics
        from studio_modules.instructor_pay.models import PaymentRecord, PaymentStatus
        return PaymentRecord(
            id=self.id,
            instructor_id=self.instructor_id,
            period_id=self.period_id,
            base_amount=self.base_amount,
            reajuste=self.reajuste,
            reajuste_type=AdjustmentType(self.reajuste_type),
            manual_bonus=self.manual_bonus,
            bonus=self.bonus,
            cover=self.cover,
            reservation_bonus=self.reservation_bonus,
            penalty_discount_percent=self.penalty_discount_percent,
            penalty_discount_amount=self.penalty_discount_amount,
            retention=self.retention,
            final_pay=self.final_pay,
            brandeo=self.brandeo,
            theme_ride=self.theme_ride,
            workshop=self.workshop,
            versus_bonus=self.versus_bonus,
            metrics=None if self.total_classes is None else InstructorMetrics(
                total_classes=self.total_classes,
                total_reservations=self.total_reservations,
                total_capacity=self.total_capacity,
                occupancy_average=self.occupancy_average,
                unique_studios=self.unique_studios,
                dobleteos=self.dobleteos,
                non_prime_hours=self.non_prime_hours,
                classes_per_week=self.classes_per_week,
            ),
            event_participation=self.event_participation,
            guideline_compliance=self.guideline_compliance,
            status=PaymentStatus(self.status),
            class_details=tuple(d.to_dto() for d in details),
            calculated_at=self.calculated_at,
        )

    @classmethod
    def values_from_dto(cls, dto) -> dict:
        """Column values for an INSERT ... ON CONFLICT statement."""
        m = dto.metrics
        return {
            "instructor_id": dto.instructor_id,
            "period_id": dto.period_id,
            "base_amount": dto.base_amount,
            "reajuste": dto.reajuste,
            "reajuste_type": dto.reajuste_type.value,
            "manual_bonus": dto.manual_bonus,
            "bonus": dto.bonus,
            "cover": dto.cover,
            "reservation_bonus": dto.reservation_bonus,
            "penalty_discount_percent": dto.penalty_discount_percent,
            "penalty_discount_amount": dto.penalty_discount_amount,
            "retention": dto.retention,
            "final_pay": dto.final_pay,
            "status": dto.status.value,
            "calculated_at": dto.calculated_at,
            "brandeo": dto.brandeo,
            "theme_ride": dto.theme_ride,
            "workshop": dto.workshop,
            "versus_bonus": dto.versus_bonus,
            "event_participation": dto.event_participation,
            "guideline_compliance": dto.guideline_compliance,
            "total_classes": m.total_classes if m else None,
            "total_reservations": m.total_reservations if m else None,
            "total_capacity": m.total_capacity if m else None,
            "occupancy_average": m.occupancy_average if m else None,
            "unique_studios": m.unique_studios if m else None,
            "dobleteos": m.dobleteos if m else None,
            "non_prime_hours": m.non_prime_hours if m else None,
            "classes_per_week": m.classes_per_week if m else None,
        }

    def __repr__(self) -> str:
        return (
            f"<PaymentRecordModel instructor={self.instructor_id} "
            f"period={self.period_id} final={self.final_pay} ({self.status})>"
        )


# ---------------------------------------------------------------------------
# PaymentClassDetailModel
# ---------------------------------------------------------------------------


class PaymentClassDetailModel(TrackedBase):
    """
    ORM model for ``ClassPaymentDetail`` -- one priced class of a payment.

    Rows are replaced wholesale every time the parent payment is upserted.
    """

    __tablename__ = "instructor_payment_class_details"

    payment_id: Mapped[UUID] = mapped_column(
        ForeignKey("instructor_payments.id", ondelete="CASCADE"), nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    class_id: Mapped[UUID] = mapped_column(nullable=False)
    discipline_id: Mapped[UUID] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    reservations: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    bonus: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    tier_label: Mapped[str] = mapped_column(String(100), nullable=False)
    is_full_house: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    full_house_forced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    versus_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    trace: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("idx_payment_class_detail_payment", "payment_id", "position"),
    )

    def to_dto(self):
        from studio_engines.category import Category
        from studio_modules.instructor_pay.models import ClassPaymentDetail
        return ClassPaymentDetail(
            class_id=self.class_id,
            discipline_id=self.discipline_id,
            category=Category(self.category),
            reservations=self.reservations,
            capacity=self.capacity,
            amount=self.amount,
            bonus=self.bonus,
            tier_label=self.tier_label,
            is_full_house=self.is_full_house,
            full_house_forced=self.full_house_forced,
            versus_count=self.versus_count,
            trace=self.trace,
        )

    @classmethod
    def from_dto(
        cls, dto, payment_id: UUID, position: int, created_by_id: UUID,
    ) -> "PaymentClassDetailModel":
        return cls(
            payment_id=payment_id,
            position=position,
            class_id=dto.class_id,
            discipline_id=dto.discipline_id,
            category=dto.category.value,
            reservations=dto.reservations,
            capacity=dto.capacity,
            amount=dto.amount,
            bonus=dto.bonus,
            tier_label=dto.tier_label,
            is_full_house=dto.is_full_house,
            full_house_forced=dto.full_house_forced,
            versus_count=dto.versus_count,
            trace=dto.trace,
            created_by_id=created_by_id,
        )


# ---------------------------------------------------------------------------
# InstructorCategoryModel
# ---------------------------------------------------------------------------


class InstructorCategoryModel(TrackedBase):
    """
    ORM model for ``InstructorCategoryRecord``.

    Stores the metrics that produced the category so a later review can see
    why an instructor was (or was not) promoted.
    """

    __tablename__ = "instructor_categories"

    instructor_id: Mapped[UUID] = mapped_column(nullable=False)
    discipline_id: Mapped[UUID] = mapped_column(nullable=False)
    period_id: Mapped[UUID] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    is_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_classes: Mapped[int] = mapped_column(Integer, nullable=False)
    total_reservations: Mapped[int] = mapped_column(Integer, nullable=False)
    total_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    occupancy_average: Mapped[Decimal] = mapped_column(nullable=False)
    unique_studios: Mapped[int] = mapped_column(Integer, nullable=False)
    dobleteos: Mapped[int] = mapped_column(Integer, nullable=False)
    non_prime_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    classes_per_week: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "instructor_id", "discipline_id", "period_id",
            name="uq_instructor_category_period",
        ),
        Index("idx_instructor_category_period", "period_id"),
    )

    def to_dto(self):
        from studio_engines.category import Category
        from studio_engines.metrics import InstructorMetrics
        from studio_modules.instructor_pay.models import InstructorCategoryRecord
        return InstructorCategoryRecord(
            instructor_id=self.instructor_id,
            discipline_id=self.discipline_id,
            period_id=self.period_id,
            category=Category(self.category),
            is_manual=self.is_manual,
            metrics=InstructorMetrics(
                total_classes=self.total_classes,
                total_reservations=self.total_reservations,
                total_capacity=self.total_capacity,
                occupancy_average=self.occupancy_average,
                unique_studios=self.unique_studios,
                dobleteos=self.dobleteos,
                non_prime_hours=self.non_prime_hours,
                classes_per_week=self.classes_per_week,
                discipline_id=self.discipline_id,
            ),
        )

    @classmethod
    def values_from_dto(cls, dto) -> dict:
        m = dto.metrics
        return {
            "instructor_id": dto.instructor_id,
            "discipline_id": dto.discipline_id,
            "period_id": dto.period_id,
            "category": dto.category.value,
            "is_manual": dto.is_manual,
            "total_classes": m.total_classes,
            "total_reservations": m.total_reservations,
            "total_capacity": m.total_capacity,
            "occupancy_average": m.occupancy_average,
            "unique_studios": m.unique_studios,
            "dobleteos": m.dobleteos,
            "non_prime_hours": m.non_prime_hours,
            "classes_per_week": m.classes_per_week,
        }

    def __repr__(self) -> str:
        return (
            f"<InstructorCategoryModel instructor={self.instructor_id} "
            f"discipline={self.discipline_id} {self.category}>"
        )
