"""Time abstractions shared by engines and modules (no I/O)."""

from studio_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "DeterministicClock", "SystemClock"]
