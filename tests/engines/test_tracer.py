"""
Tests for the engine tracer.
"""

from datetime import date
from decimal import Decimal

from ledger_engines.installments import Frequency, build_schedule
from ledger_engines.tracer import compute_input_fingerprint


class TestFingerprint:

    def test_stable_for_equal_inputs(self):
        fields = ("total", "count")
        first = compute_input_fingerprint(fields, {"total": Decimal("10"), "count": 2})
        second = compute_input_fingerprint(fields, {"count": 2, "total": Decimal("10")})
        assert first == second
        assert len(first) == 16

    def test_only_named_fields_count(self):
        fields = ("total",)
        assert compute_input_fingerprint(fields, {"total": 1, "noise": 1}) == (
            compute_input_fingerprint(fields, {"total": 1, "noise": 2})
        )

    def test_differs_when_inputs_differ(self):
        fields = ("total",)
        assert compute_input_fingerprint(fields, {"total": 1}) != compute_input_fingerprint(
            fields, {"total": 2}
        )


class TestTraceLog:

    def test_engine_call_emits_trace(self, captured_logs):
        build_schedule(
            total=Decimal("300"), count=3, frequency=Frequency.MONTHLY, first_date=date(2024, 1, 1)
        )

        [trace] = [r for r in captured_logs() if r["message"] == "LEDGER_ENGINE_TRACE"]
        assert trace["engine_name"] == "installments"
        assert trace["result_size"] == 3
        assert trace["logger"] == "ledger_kernel.engines.tracer"
