"""Tests for the engine tracer decorator and input fingerprinting."""

from decimal import Decimal

from docflow_engines.tracer import compute_input_fingerprint, traced_engine
from docflow_kernel.domain.cost_input import CostInput, CostTier


@traced_engine("sample", "2.1", fingerprint_fields=("amount", "label"))
def _sample_engine(amount, label="x", extra=None):
    return amount * 2


class TestFingerprint:

    def test_deterministic(self):
        args = {"amount": Decimal("1.50"), "label": "a"}
        assert compute_input_fingerprint(("amount", "label"), args) == \
            compute_input_fingerprint(("amount", "label"), args)

    def test_decimal_scale_does_not_matter(self):
        a = compute_input_fingerprint(("amount",), {"amount": Decimal("1.50")})
        b = compute_input_fingerprint(("amount",), {"amount": Decimal("1.5")})
        assert a == b

    def test_mapping_key_order_does_not_matter(self):
        a = compute_input_fingerprint(("m",), {"m": {"x": 1, "y": 2}})
        b = compute_input_fingerprint(("m",), {"m": {"y": 2, "x": 1}})
        assert a == b

    def test_dataclass_content_changes_fingerprint(self):
        a = compute_input_fingerprint(
            ("c",), {"c": CostInput(tier_a=CostTier.of(w=Decimal("1")))}
        )
        b = compute_input_fingerprint(
            ("c",), {"c": CostInput(tier_a=CostTier.of(w=Decimal("2")))}
        )
        assert a != b

    def test_missing_field_recorded_as_null(self):
        assert compute_input_fingerprint(("nope",), {}) == \
            compute_input_fingerprint(("nope",), {"nope": None})


class TestTracedEngine:

    def test_returns_wrapped_result(self):
        assert _sample_engine(Decimal("2")) == Decimal("4")

    def test_preserves_function_name(self):
        assert _sample_engine.__name__ == "_sample_engine"

    def test_positional_and_keyword_calls_fingerprint_alike(self, captured_logs):
        _sample_engine(Decimal("3"), "y")
        _sample_engine(amount=Decimal("3"), label="y")

        traces = [r for r in captured_logs() if r["message"] == "DOCFLOW_ENGINE_TRACE"]
        assert len(traces) == 2
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]
        assert traces[0]["engine_name"] == "sample"
        assert traces[0]["engine_version"] == "2.1"
        assert "duration_ms" in traces[0]
