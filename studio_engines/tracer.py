"""
``@traced_engine``: one STUDIO_ENGINE_TRACE log record per engine call.

Each record names the engine and its version, the decorated function, the
call duration, whether it returned or raised, and a fingerprint of the
selected inputs.  The fingerprint is a SHA-256 over a canonical rendering
of those inputs (16 hex chars), so two calls with the same reservations,
capacity, etc. can be matched across runs without logging the full
payload.

Inputs are bound against the function signature, so fingerprint fields may
be passed positionally or by keyword.  A field that was not passed renders
as ``null``.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from studio_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_MESSAGE = "STUDIO_ENGINE_TRACE"


def _canonical(value: Any) -> str:
    match value:
        case None:
            return "null"
        case Enum():
            return str(value.value)
        case Mapping():
            pairs = sorted((str(k), _canonical(v)) for k, v in value.items())
            return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
        case set() | frozenset():
            return "[" + ",".join(sorted(_canonical(v) for v in value)) + "]"
        case list() | tuple():
            return "[" + ",".join(_canonical(v) for v in value) + "]"
        case _:
            return str(value)


def compute_input_fingerprint(fields: tuple[str, ...], values: Mapping[str, Any]) -> str:
    canonical = "|".join(f"{name}={_canonical(values.get(name))}" for name in fields)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.perf_counter()
            outcome = "error"
            try:
                result = func(*args, **kwargs)
                outcome = "ok"
                return result
            finally:
                logger.debug(
                    TRACE_MESSAGE,
                    extra={
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "function": func.__qualname__,
                        "input_fingerprint": fingerprint,
                        "outcome": outcome,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                    },
                )

        return wrapper

    return decorator
