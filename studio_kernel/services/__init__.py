"""Kernel service base classes."""

from studio_kernel.services.base import BaseService

__all__ = ["BaseService"]
