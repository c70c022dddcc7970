"""
Shared fixtures: JSON log capture, a rollback-only database session, and
builders for a small two-discipline catalog (Síclo and Barre).

Set ``DATABASE_URL`` to run the store tests against PostgreSQL; the default
is in-memory SQLite.
"""

import json
import logging
import os
from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from studio_config.loader import load_engine_settings
from studio_engines.category import Category, CategoryRequirement
from studio_engines.tariff import PaymentParameters, TariffTier
from studio_engines.types import ClassSession
from studio_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from studio_kernel.domain.clock import DeterministicClock
from studio_kernel.logging_config import (
    ROOT_LOGGER_NAME,
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from studio_modules.instructor_pay.catalog import InMemoryCatalog
from studio_modules.instructor_pay.models import (
    Discipline,
    FormulaDefinition,
    InstructorSnapshot,
    Period,
)

# Studio local time is UTC-5
LIMA = timezone(timedelta(hours=-5))

ACTOR_ID = UUID("00000000-0000-4000-a000-00000000a11c")


@pytest.fixture(autouse=True, scope="session")
def _json_logging():
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _empty_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """Returns a callable giving every record logged so far, parsed from JSON.

        def test_stored(captured_logs, service):
            service.calculate_instructor(...)
            assert "payment_calculation_stored" in {r["message"] for r in captured_logs()}
    """
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved_level = logger.level
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)

    def records() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    yield records

    logger.removeHandler(handler)
    logger.setLevel(saved_level)


@pytest.fixture(scope="session")
def db_engine():
    engine = init_engine_from_url(os.environ.get("DATABASE_URL", "sqlite+pysqlite:///:memory:"))
    drop_tables()
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Iterator[Session]:
    """Session bound to an outer transaction that is always rolled back.

    Commits inside a test only release a SAVEPOINT, so nothing leaks
    between tests.
    """
    with db_engine.connect() as conn:
        outer = conn.begin()
        sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
        try:
            yield sess
        finally:
            sess.close()
            outer.rollback()


@pytest.fixture
def test_actor_id() -> UUID:
    return ACTOR_ID


@pytest.fixture
def deterministic_clock():
    """Frozen at 2024-01-01 12:00 UTC."""
    return DeterministicClock()


@pytest.fixture(scope="session")
def engine_settings():
    """Settings from the bundled defaults YAML."""
    return load_engine_settings()


def standard_parameters(**overrides) -> PaymentParameters:
    """Tiers 20 -> 2.00, 35 -> 2.50, full house 3.00."""
    values = {
        "tiers": (
            TariffTier(reservation_threshold=20, rate=Decimal("2.00")),
            TariffTier(reservation_threshold=35, rate=Decimal("2.50")),
        ),
        "full_house_rate": Decimal("3.00"),
    }
    values.update(overrides)
    return PaymentParameters(**values)


@pytest.fixture
def make_period():
    """Factory for a 4-week period starting 2024-03-04 (a Monday)."""

    def _make(start: date = date(2024, 3, 4), days: int = 28, name: str = "March 2024") -> Period:
        return Period(id=uuid4(), name=name, start_date=start, end_date=start + timedelta(days=days - 1))

    return _make


@pytest.fixture
def make_class():
    """Factory for ``ClassSession`` with sensible defaults."""

    def _make(
        instructor_id: UUID,
        discipline_id: UUID,
        period_id: UUID,
        *,
        starts_at: datetime | None = None,
        studio: str = "Reducto",
        capacity: int = 40,
        reservations: int = 30,
        **kwargs,
    ) -> ClassSession:
        return ClassSession(
            id=uuid4(),
            instructor_id=instructor_id,
            discipline_id=discipline_id,
            period_id=period_id,
            starts_at=starts_at or datetime(2024, 3, 5, 7, 0, tzinfo=LIMA),
            studio=studio,
            capacity=capacity,
            total_reservations=reservations,
            **kwargs,
        )

    return _make


@pytest.fixture
def siclo():
    return Discipline(id=uuid4(), name="Síclo")


@pytest.fixture
def barre():
    return Discipline(id=uuid4(), name="Barre")


@pytest.fixture
def pay_period(make_period):
    return make_period()


@pytest.fixture
def catalog(siclo, barre, pay_period):
    """
    Catalog with Síclo and Barre formulas for ``pay_period``.

    Both disciplines price every category with the standard tiers, except
    EMBAJADOR which pays 3.00 below full house.  EMBAJADOR requires 3
    classes at 50% occupancy.
    """
    everyone = standard_parameters()
    embajador = standard_parameters(
        tiers=(TariffTier(reservation_threshold=35, rate=Decimal("3.00")),),
        full_house_rate=Decimal("3.50"),
    )
    parameters = {
        Category.INSTRUCTOR: everyone,
        Category.EMBAJADOR_JUNIOR: everyone,
        Category.EMBAJADOR: embajador,
        Category.EMBAJADOR_SENIOR: embajador,
    }
    requirements = {
        Category.EMBAJADOR: CategoryRequirement(min_classes=3, min_occupancy=Decimal("50")),
    }
    return InMemoryCatalog(
        disciplines=(siclo, barre),
        periods=(pay_period,),
        formulas=(
            FormulaDefinition(siclo.id, pay_period.id, parameters, requirements),
            FormulaDefinition(barre.id, pay_period.id, parameters, requirements),
        ),
    )


@pytest.fixture
def add_instructor(catalog, pay_period):
    """Register an instructor snapshot on ``catalog`` and return it."""

    def _add(name: str = "Ana", instructor_id: UUID | None = None, **fields) -> InstructorSnapshot:
        snapshot = InstructorSnapshot(id=instructor_id or uuid4(), name=name, **fields)
        catalog.add_instructor(pay_period.id, snapshot)
        return snapshot

    return _add
