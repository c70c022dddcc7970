"""Tests for the @traced_engine decorator and input fingerprints."""

from decimal import Decimal
from uuid import UUID

import pytest

from studio_engines.penalty import PenaltyAggregator
from studio_engines.tariff import BonusPolicy
from studio_engines.tracer import compute_input_fingerprint, traced_engine


class TestFingerprint:

    def test_deterministic(self):
        kwargs = {"reservations": 30, "capacity": 40}
        fields = ("reservations", "capacity")

        assert compute_input_fingerprint(fields, kwargs) == compute_input_fingerprint(fields, dict(kwargs))
        assert len(compute_input_fingerprint(fields, kwargs)) == 16

    def test_sensitive_to_values(self):
        fields = ("reservations",)

        assert compute_input_fingerprint(fields, {"reservations": 30}) != compute_input_fingerprint(
            fields, {"reservations": 31}
        )

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(("x",), {"x": None})

    def test_sets_and_enums_canonicalized(self):
        a = UUID("00000000-0000-4000-a000-000000000001")
        b = UUID("00000000-0000-4000-a000-000000000002")
        fields = ("ids", "policy")

        assert compute_input_fingerprint(
            fields, {"ids": {a, b}, "policy": BonusPolicy.TRACK_SEPARATELY}
        ) == compute_input_fingerprint(
            fields, {"ids": frozenset({b, a}), "policy": BonusPolicy.TRACK_SEPARATELY}
        )


class TestTracedEngine:

    def test_trace_record_emitted(self, captured_logs):
        PenaltyAggregator().calculate([Decimal("1")], total_classes=10)

        traces = [r for r in captured_logs() if r["message"] == "STUDIO_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "penalty"
        assert traces[0]["engine_version"] == "1.0"
        assert traces[0]["function"] == "PenaltyAggregator.calculate"
        assert traces[0]["outcome"] == "ok"
        assert len(traces[0]["input_fingerprint"]) == 16

    def test_positional_and_keyword_calls_share_fingerprint(self, captured_logs):
        @traced_engine("demo", "0.1", fingerprint_fields=("reservations",))
        def price(reservations, capacity=40):
            return reservations

        price(30)
        price(reservations=30)

        fingerprints = [
            r["input_fingerprint"] for r in captured_logs() if r["message"] == "STUDIO_ENGINE_TRACE"
        ]
        assert len(fingerprints) == 2
        assert fingerprints[0] == fingerprints[1]

    def test_failure_traced_and_reraised(self, captured_logs):
        @traced_engine("demo", "0.1")
        def explode():
            raise ZeroDivisionError("no capacity")

        with pytest.raises(ZeroDivisionError):
            explode()

        (trace,) = [r for r in captured_logs() if r["message"] == "STUDIO_ENGINE_TRACE"]
        assert trace["outcome"] == "error"
        assert trace["input_fingerprint"] == ""
