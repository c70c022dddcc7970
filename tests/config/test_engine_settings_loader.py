"""
Tests for engine settings loading (studio_config.loader).

Covers:
- Bundled defaults
- Clock time normalisation
- Overrides from a YAML file
- Validation errors naming the source
- Deterministic checksum
"""

from decimal import Decimal

import pytest

from studio_config.loader import (
    DEFAULT_SETTINGS_PATH,
    compute_checksum,
    load_engine_settings,
    parse_clock_time,
    parse_engine_settings,
)
from studio_kernel.exceptions import ConfigurationError


class TestDefaults:
    """The bundled defaults file."""

    def test_defaults_load(self):
        settings = load_engine_settings()

        assert settings.timezone == "America/Lima"
        assert settings.flagship_discipline == "Síclo"
        assert settings.retention_rate == Decimal("0.08")
        assert settings.currency_symbol == "S/."
        assert settings.penalty.allowance_ratio == Decimal("0.10")
        assert settings.penalty.max_discount_percent is None
        assert settings.extras.cover_bonus == Decimal("80")
        assert len(settings.checksum) == 64

    def test_default_non_prime_schedule(self):
        settings = load_engine_settings()
        schedule = {slot.studio: slot.times for slot in settings.non_prime_schedule}

        assert schedule["Reducto"] == ("08:00", "09:00", "13:00", "18:00")
        assert schedule["San Isidro"] == ("09:00", "13:00")
        assert schedule["Primavera"] == ("09:00", "13:00", "18:00")
        assert schedule["Estancia"] == ("06:00", "09:15", "18:00")

    def test_default_path_exists(self):
        assert DEFAULT_SETTINGS_PATH.is_file()


class TestParseClockTime:

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("18:00", "18:00"),
            ("8:00", "08:00"),
            ("6:00 pm", "18:00"),
            ("9:15 a.m.", "09:15"),
            ("12:00 AM", "00:00"),
            ("12:30 pm", "12:30"),
            (1080, "18:00"),
        ],
    )
    def test_normalised(self, value, expected):
        assert parse_clock_time(value) == expected

    @pytest.mark.parametrize("value", ["25:00", "13:00 pm", "noon", None, "9:60"])
    def test_rejected(self, value):
        with pytest.raises(ConfigurationError):
            parse_clock_time(value)


class TestParseEngineSettings:

    def test_empty_dict_uses_schema_defaults(self):
        settings = parse_engine_settings({})

        assert settings.timezone == "America/Lima"
        assert settings.non_prime_schedule == ()

    def test_overrides(self):
        settings = parse_engine_settings(
            {
                "timezone": "America/Bogota",
                "flagship_discipline": "Spin",
                "retention_rate": 0.1,
                "penalty": {"allowance_ratio": "0.2", "max_discount_percent": 15},
                "extras": {"cover_bonus": 100},
                "non_prime_schedule": [{"studio": "Centro", "times": ["7:00 am"]}],
            }
        )

        assert settings.timezone == "America/Bogota"
        assert settings.flagship_discipline == "Spin"
        assert settings.retention_rate == Decimal("0.1")
        assert settings.penalty.max_discount_percent == Decimal("15")
        assert settings.extras.cover_bonus == Decimal("100")
        assert settings.extras.brandeo_rate == Decimal("15")
        assert settings.non_prime_schedule[0].times == ("07:00",)

    def test_unknown_timezone(self):
        with pytest.raises(ConfigurationError, match="timezone"):
            parse_engine_settings({"timezone": "Mars/Olympus"})

    def test_retention_out_of_range(self):
        with pytest.raises(ConfigurationError, match="retention_rate"):
            parse_engine_settings({"retention_rate": "1.5"})

    def test_non_numeric_rate(self):
        with pytest.raises(ConfigurationError, match="extras.brandeo_rate"):
            parse_engine_settings({"extras": {"brandeo_rate": "lots"}})

    def test_schedule_entry_needs_studio(self):
        with pytest.raises(ConfigurationError, match="studio"):
            parse_engine_settings({"non_prime_schedule": [{"times": ["08:00"]}]})


class TestLoadFromFile:

    def test_load_custom_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "timezone: America/Lima\n"
            "retention_rate: '0.05'\n"
            "non_prime_schedule:\n"
            "  - studio: Reducto\n"
            "    times: [18:00]\n",
            encoding="utf-8",
        )

        settings = load_engine_settings(path)

        assert settings.retention_rate == Decimal("0.05")
        # unquoted 18:00 is a YAML sexagesimal int
        assert settings.non_prime_schedule[0].times == ("18:00",)

    def test_error_names_source(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("retention_rate: '2'\n", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            load_engine_settings(path)

        assert exc_info.value.source == str(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_engine_settings(tmp_path / "missing.yaml")


class TestChecksum:

    def test_key_order_does_not_matter(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_value_change_changes_checksum(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
