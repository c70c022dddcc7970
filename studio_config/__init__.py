"""
Engine configuration (``studio_config``).

Typed engine settings and the YAML loader that produces them.
No dependency on engines or modules; the instructor pay service turns
these settings into engine objects.
"""

from studio_config.loader import (
    DEFAULT_SETTINGS_PATH,
    load_engine_settings,
    parse_engine_settings,
)
from studio_config.schema import (
    EngineSettings,
    ExtrasRatesDef,
    NonPrimeSlotDef,
    PenaltyPolicyDef,
)

__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "EngineSettings",
    "ExtrasRatesDef",
    "NonPrimeSlotDef",
    "PenaltyPolicyDef",
    "load_engine_settings",
    "parse_engine_settings",
]
