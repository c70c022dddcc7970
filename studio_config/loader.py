"""
Engine settings loader (``studio_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``studio_config.schema.EngineSettings`` dataclass.  When no path is given
the bundled ``defaults/engine_settings.yaml`` is used.

Invariants enforced
-------------------
* Every parse error raises ``ConfigurationError`` naming the offending key.
* Schedule times are normalised to 24-hour ``HH:MM``; ``9:00 am`` and
  ``6:00 PM`` are accepted.
* ``compute_checksum`` is a deterministic SHA-256 of the parsed data, stored
  on the settings so a calculation can be traced to its configuration.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from studio_config.schema import (
    EngineSettings,
    ExtrasRatesDef,
    NonPrimeSlotDef,
    PenaltyPolicyDef,
)
from studio_kernel.exceptions import ConfigurationError
from studio_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults" / "engine_settings.yaml"

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([ap]\.?\s*m\.?)?\s*$", re.IGNORECASE)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_clock_time(value: Any) -> str:
    """
    Normalise a clock time to 24-hour ``HH:MM``.

    Accepts ``"18:00"``, ``"6:00 pm"``, ``"9:15 a.m."``.  YAML may hand us an
    int for unquoted ``18:00`` (sexagesimal), which is converted back.
    """
    if isinstance(value, int):
        value = f"{value // 60}:{value % 60:02d}"
    if not isinstance(value, str):
        raise ConfigurationError(f"cannot parse time from {value!r}")
    match = _CLOCK_RE.match(value)
    if match is None:
        raise ConfigurationError(f"cannot parse time from {value!r}")
    hour, minute, suffix = int(match.group(1)), int(match.group(2)), match.group(3)
    if suffix:
        if not 1 <= hour <= 12:
            raise ConfigurationError(f"invalid 12-hour time {value!r}")
        is_pm = suffix.lower().startswith("p")
        hour = hour % 12 + (12 if is_pm else 0)
    if hour > 23 or minute > 59:
        raise ConfigurationError(f"invalid time {value!r}")
    return f"{hour:02d}:{minute:02d}"


def parse_decimal(value: Any, key: str) -> Decimal:
    """Parse a Decimal from a YAML scalar; floats go through ``str``."""
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from e


def parse_schedule(data: list[dict[str, Any]]) -> tuple[NonPrimeSlotDef, ...]:
    slots = []
    for item in data:
        if "studio" not in item:
            raise ConfigurationError("non_prime_schedule entry missing 'studio'")
        slots.append(
            NonPrimeSlotDef(
                studio=str(item["studio"]),
                times=tuple(parse_clock_time(t) for t in item.get("times", ())),
            )
        )
    return tuple(slots)


def parse_penalty(data: dict[str, Any]) -> PenaltyPolicyDef:
    cap = data.get("max_discount_percent")
    return PenaltyPolicyDef(
        allowance_ratio=parse_decimal(data.get("allowance_ratio", "0.10"), "penalty.allowance_ratio"),
        max_discount_percent=(
            parse_decimal(cap, "penalty.max_discount_percent") if cap is not None else None
        ),
    )


def parse_extras(data: dict[str, Any]) -> ExtrasRatesDef:
    defaults = ExtrasRatesDef()
    return ExtrasRatesDef(
        **{
            name: parse_decimal(data.get(name, getattr(defaults, name)), f"extras.{name}")
            for name in ("cover_bonus", "brandeo_rate", "theme_ride_rate", "versus_bonus")
        }
    )


def parse_engine_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from a dict.

    Missing keys fall back to the schema defaults.

    Raises:
        ConfigurationError: on unparseable values or an unknown timezone.
    """
    timezone = str(data.get("timezone", "America/Lima"))
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"unknown timezone {timezone!r}") from e

    retention = parse_decimal(data.get("retention_rate", "0.08"), "retention_rate")
    if not Decimal("0") <= retention < Decimal("1"):
        raise ConfigurationError("retention_rate must be in [0, 1)")

    settings = EngineSettings(
        timezone=timezone,
        flagship_discipline=str(data.get("flagship_discipline", "Síclo")),
        non_prime_schedule=parse_schedule(data.get("non_prime_schedule") or []),
        retention_rate=retention,
        currency_symbol=str(data.get("currency_symbol", "S/.")),
        penalty=parse_penalty(data.get("penalty") or {}),
        extras=parse_extras(data.get("extras") or {}),
    )
    return replace(settings, checksum=compute_checksum(data))


def load_engine_settings(path: Path | None = None) -> EngineSettings:
    """Load settings from ``path``, or from the bundled defaults."""
    source = path or DEFAULT_SETTINGS_PATH
    data = load_yaml_file(source)
    try:
        settings = parse_engine_settings(data)
    except ConfigurationError as e:
        raise ConfigurationError(e.reason, source=str(source)) from e
    logger.info(
        "engine_settings_loaded",
        extra={
            "source": str(source),
            "checksum": settings.checksum,
            "flagship_discipline": settings.flagship_discipline,
            "non_prime_studios": len(settings.non_prime_schedule),
        },
    )
    return settings


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
