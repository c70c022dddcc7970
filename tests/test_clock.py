"""Tests for the injectable clocks (studio_kernel.domain.clock)."""

from datetime import datetime, timedelta, timezone

import pytest

from studio_kernel.domain.clock import DEFAULT_TEST_INSTANT, DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_frozen_until_moved(self):
        clock = DeterministicClock()

        assert clock.now() == DEFAULT_TEST_INSTANT
        assert clock.now() == clock.now()

    def test_tick(self):
        clock = DeterministicClock()

        moved = clock.tick(timedelta(minutes=5))

        assert moved == DEFAULT_TEST_INSTANT + timedelta(minutes=5)
        assert clock.now() == moved

    def test_freeze_at_normalizes_to_utc(self):
        clock = DeterministicClock()
        lima = timezone(timedelta(hours=-5))

        clock.freeze_at(datetime(2024, 3, 31, 19, 0, tzinfo=lima))

        assert clock.now() == datetime(2024, 4, 1, 0, 0, tzinfo=timezone.utc)
        assert clock.now().utcoffset() == timedelta(0)

    def test_naive_instant_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            DeterministicClock(datetime(2024, 1, 1))


def test_system_clock_is_utc():
    assert SystemClock().now().tzinfo == timezone.utc
