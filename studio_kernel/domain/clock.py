"""
Injectable time source.

Payment records are stamped with ``calculated_at`` from a ``Clock`` passed
to the service, never from ``datetime.now()`` directly, so a recalculation
under test always produces the same record.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_INSTANT = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC instants."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    Returns the same instant until ``tick()`` or ``freeze_at()`` moves it.
    """

    def __init__(self, instant: datetime = DEFAULT_TEST_INSTANT):
        if instant.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware instant")
        self._instant = instant.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._instant

    def tick(self, delta: timedelta = timedelta(seconds=1)) -> datetime:
        self._instant += delta
        return self._instant

    def freeze_at(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware instant")
        self._instant = instant.astimezone(timezone.utc)
