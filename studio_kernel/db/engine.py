"""
Engine and session lifecycle for the pay database.

One process-wide engine is built by ``init_engine_from_url``.  PostgreSQL
gets a pre-pinged ``QueuePool`` at READ COMMITTED; SQLite (tests and local
runs) gets a ``StaticPool`` with BEGIN emitted by SQLAlchemy, since
pysqlite's own transaction handling breaks the per-instructor SAVEPOINTs
of a period batch.

``session_scope`` is the unit of work for callers outside the service
layer: commit on a clean exit, roll back and re-raise otherwise.
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from studio_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_READY = "database engine not initialized; call init_engine_from_url() first"

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _build_sqlite_engine(url: str, echo: bool) -> Engine:
    engine = create_engine(
        url,
        echo=echo,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    *,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_recycle: int = 1800,
) -> Engine:
    """Build the engine and session factory, replacing any previous pair.

    ``database_url`` is e.g. ``postgresql+psycopg://user:pw@host/studio`` or
    ``sqlite+pysqlite:///:memory:``.  The pool arguments only apply to
    server databases.
    """
    global _engine, _session_factory

    reset_engine()
    if database_url.startswith("sqlite"):
        _engine = _build_sqlite_engine(database_url, echo)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session() -> Session:
    if _session_factory is None:
        raise RuntimeError(_NOT_READY)
    return _session_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error.

        with session_scope() as session:
            InstructorPaymentService(session, catalog).calculate_period(period_id, actor_id=actor)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Register every module's ORM classes, then create their tables."""
    from studio_kernel.db.base import Base
    from studio_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    from studio_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the current engine, if any, and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
