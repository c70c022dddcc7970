"""
Module ORM Registry (``studio_modules._orm_registry``).

Ensures every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` holds its table before ``create_tables()`` runs.
``studio_kernel.db.engine.create_tables`` calls ``import_all_orm_models``
lazily, so scripts and ``tests/conftest.py`` need no extra step.
"""


def import_all_orm_models() -> None:
    """Import every ``studio_modules.*.orm`` module.  Idempotent."""
    # fmt: off
    import studio_modules.instructor_pay.orm  # noqa: F401
    # fmt: on
