"""
Unit tests for threshold parsing and evaluation.

Snapshots are built directly so each test controls the aggregated
values a threshold is evaluated against.
"""

from __future__ import annotations

import pytest

from performance.metrics import RATE, TREND, MetricSnapshot
from performance.options import OPTIONS, load_thresholds
from performance.thresholds import (
    InvalidThresholdError,
    all_passed,
    evaluate_thresholds,
    format_summary,
    parse_expression,
    parse_metric_key,
    parse_thresholds,
)

pytestmark = pytest.mark.unit


def _duration_snapshot(p99: float, key: str = "http_req_duration") -> MetricSnapshot:
    return MetricSnapshot(
        key,
        TREND,
        {"avg": 120.0, "min": 3.0, "max": 2000.0, "med": 90.0, "count": 500},
        percentile=lambda pct: p99 if pct == 99 else 100.0,
    )


def _failed_snapshot(rate: float) -> MetricSnapshot:
    return MetricSnapshot("http_req_failed", RATE, {"rate": rate})


class TestParseExpression:
    """Tests for parse_expression."""

    def test_parses_rate_expression(self):
        expression = parse_expression("rate<0.01")

        assert expression.method == "rate"
        assert expression.argument is None
        assert expression.op == "<"
        assert expression.value == 0.01

    def test_parses_percentile_expression(self):
        expression = parse_expression("p(99)<1000")

        assert expression.method == "p"
        assert expression.argument == 99.0
        assert expression.value == 1000.0

    def test_parses_fractional_percentile_and_spaces(self):
        expression = parse_expression(" p( 99.9 ) <= 1500 ")

        assert expression.argument == 99.9
        assert expression.op == "<="
        assert expression.source == "p( 99.9 ) <= 1500"

    @pytest.mark.parametrize("op", ["<", "<=", ">", ">=", "==", "===", "!="])
    def test_accepts_every_operator(self, op):
        assert parse_expression(f"avg{op}200").op == op

    @pytest.mark.parametrize(
        "text",
        ["", "rate", "rate<", "<0.01", "p99<1000", "p(101)<5", "median<5", "rate<<1", "rate<abc"],
    )
    def test_rejects_malformed_expressions(self, text):
        with pytest.raises(InvalidThresholdError):
            parse_expression(text)

    def test_operators_compare_actual_against_bound(self):
        assert parse_expression("rate<0.01").check(0.005) is True
        assert parse_expression("rate<0.01").check(0.01) is False
        assert parse_expression("count>=10").check(10) is True
        assert parse_expression("value!=0").check(0) is False


class TestParseMetricKey:
    """Tests for parse_metric_key."""

    def test_plain_metric(self):
        assert parse_metric_key("http_req_duration") == ("http_req_duration", {})

    def test_metric_with_tag_filter(self):
        name, tags = parse_metric_key("http_req_duration{name:/api/images/numbers/[n], method:GET}")

        assert name == "http_req_duration"
        assert tags == {"name": "/api/images/numbers/[n]", "method": "GET"}

    def test_rejects_tag_without_value_separator(self):
        with pytest.raises(InvalidThresholdError):
            parse_metric_key("http_req_duration{name}")


class TestParseThresholds:
    """Tests for parse_thresholds."""

    def test_parses_the_exported_options(self):
        thresholds = load_thresholds()

        assert [(t.metric, t.expression.source) for t in thresholds] == [
            ("http_req_failed", "rate<0.01"),
            ("http_req_duration", "p(99)<1000"),
        ]
        assert not any(t.abort_on_fail for t in thresholds)

    def test_object_form_reads_abort_settings(self):
        thresholds = parse_thresholds(
            {
                "http_req_failed": [
                    {"threshold": "rate<0.05", "abortOnFail": True, "delayAbortEval": "10s"}
                ]
            }
        )

        assert thresholds[0].abort_on_fail is True
        assert thresholds[0].delay_abort_eval == 10.0

    def test_single_string_is_accepted(self):
        thresholds = parse_thresholds({"http_req_duration": "avg<200"})

        assert len(thresholds) == 1

    def test_unknown_metric_rejected(self):
        with pytest.raises(InvalidThresholdError, match="unknown metric"):
            parse_thresholds({"data_received": ["count<100"]})

    def test_aggregation_must_fit_metric_kind(self):
        with pytest.raises(InvalidThresholdError, match="does not apply"):
            parse_thresholds({"http_req_failed": ["p(95)<0.01"]})

    def test_tag_filters_only_on_request_metrics(self):
        with pytest.raises(InvalidThresholdError, match="tag filters"):
            parse_thresholds({"checks{name:x}": ["rate>0.9"]})

    def test_unsupported_tag_rejected(self):
        with pytest.raises(InvalidThresholdError, match="Unsupported tag"):
            parse_thresholds({"http_req_duration{status:200}": ["avg<100"]})

    def test_object_without_threshold_key_rejected(self):
        with pytest.raises(InvalidThresholdError):
            parse_thresholds({"http_req_failed": [{"abortOnFail": True}]})

    def test_non_boolean_abort_flag_rejected(self):
        with pytest.raises(InvalidThresholdError):
            parse_thresholds({"http_req_failed": [{"threshold": "rate<0.01", "abortOnFail": "yes"}]})

    def test_empty_list_rejected(self):
        with pytest.raises(InvalidThresholdError):
            parse_thresholds({"http_req_failed": []})


class TestEvaluation:
    """Tests for Threshold.evaluate and evaluate_thresholds."""

    def test_passing_run(self):
        thresholds = parse_thresholds(OPTIONS["thresholds"])
        snapshots = {
            "http_req_failed": _failed_snapshot(0.002),
            "http_req_duration": _duration_snapshot(p99=640.0),
        }

        results = evaluate_thresholds(thresholds, snapshots)

        assert all_passed(results)
        assert [r.actual for r in results] == [0.002, 640.0]

    def test_error_rate_at_one_percent_fails(self):
        thresholds = parse_thresholds({"http_req_failed": ["rate<0.01"]})

        results = evaluate_thresholds(thresholds, {"http_req_failed": _failed_snapshot(0.01)})

        assert not all_passed(results)

    def test_slow_p99_fails(self):
        thresholds = parse_thresholds({"http_req_duration": ["p(99)<1000"]})

        results = evaluate_thresholds(thresholds, {"http_req_duration": _duration_snapshot(p99=1000.0)})

        assert results[0].passed is False
        assert results[0].actual == 1000.0

    def test_missing_snapshot_fails_with_no_data(self):
        thresholds = parse_thresholds({"http_req_duration": ["p(99)<1000"]})

        results = evaluate_thresholds(thresholds, {})

        assert results[0].passed is False
        assert results[0].error == "no data"

    def test_unavailable_aggregation_fails(self):
        thresholds = parse_thresholds({"http_reqs": ["rate>10"]})
        snapshot = MetricSnapshot("http_reqs", "counter", {"count": 5})

        results = evaluate_thresholds(thresholds, {"http_reqs": snapshot})

        assert results[0].passed is False
        assert "rate" in results[0].error

    def test_tagged_threshold_reads_its_own_snapshot(self):
        key = "http_req_duration{name:/api/images/numbers/[n]}"
        thresholds = parse_thresholds({key: ["p(99)<1000"]})
        snapshots = {
            "http_req_duration": _duration_snapshot(p99=5000.0),
            key: _duration_snapshot(p99=300.0, key=key),
        }

        results = evaluate_thresholds(thresholds, snapshots)

        assert results[0].passed is True


def test_format_summary_lists_every_result():
    """Test that the summary table shows each expression with its status."""
    # Arrange
    thresholds = parse_thresholds(OPTIONS["thresholds"])
    results = evaluate_thresholds(
        thresholds,
        {"http_req_failed": _failed_snapshot(0.2), "http_req_duration": _duration_snapshot(p99=10.0)},
    )

    # Act
    summary = format_summary(results)

    # Assert
    assert "http_req_failed" in summary
    assert "rate<0.01" in summary
    assert "p(99)<1000" in summary
    assert "FAIL" in summary
    assert summary.splitlines()[-1] == "Overall: FAIL"
