"""
Base class for components that write through a caller-owned ``Session``.

Subclasses flush but never commit or roll back: the pay service decides
the transaction boundary, and the period batch wraps every instructor in
its own SAVEPOINT.  A subclass that committed would release that
SAVEPOINT early and break per-instructor isolation.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from studio_kernel.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseService(ABC, Generic[ModelT]):
    """Holds the session; ``ModelT`` names the primary table a subclass writes."""

    def __init__(self, session: Session):
        self.session = session
