"""
Studio Modules.

Thin orchestration layers over the kernel and the pay engines.
Each module contains:
- Domain models (the nouns)
- Configuration schema (policy switches)
- ORM persistence models
- A service facade that owns the transaction

Modules:
- instructor_pay: Per-class pricing, categories, penalties and payment records
"""

from studio_modules import instructor_pay

__all__ = ["instructor_pay"]
