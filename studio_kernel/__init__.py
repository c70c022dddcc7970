"""
Studio Kernel - shared infrastructure for the instructor pay engine.

- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- SQLAlchemy declarative base, engine and session management
- Injectable clock for deterministic timestamps
"""

__version__ = "0.1.0"
