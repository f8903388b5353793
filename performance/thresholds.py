"""
Threshold parsing and evaluation.

Thresholds are declared per metric as a list of expressions in the
``<aggregation> <operator> <number>`` form used by the scenario
options, for example ``"rate<0.01"`` or ``"p(99)<1000"``.  Each entry is
either a bare string or an object carrying the expression plus abort
settings::

    {"threshold": "rate<0.01", "abortOnFail": True, "delayAbortEval": "10s"}

A metric key may carry a tag filter in braces to restrict it to part of
the traffic, e.g. ``http_req_duration{name:/api/images/numbers/[n]}``.

Evaluation always happens against an aggregated
:class:`~performance.metrics.MetricSnapshot` (never per request), both
at the end of the run and, for ``abortOnFail`` thresholds, periodically
while load is being generated.
"""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from performance.metrics import (
    COUNTER,
    GAUGE,
    KNOWN_METRICS,
    RATE,
    REQUEST_METRICS,
    TREND,
    MetricSnapshot,
)
from performance.stages import parse_duration

logger = logging.getLogger(__name__)

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "===": operator.eq,
    "!=": operator.ne,
}

# Longest operators first so "<=" is not read as "<" followed by "=".
_EXPRESSION = re.compile(
    r"^\s*(?P<method>count|rate|value|avg|min|max|med|p\(\s*(?P<pct>\d+(?:\.\d+)?)\s*\))"
    r"\s*(?P<op>===|==|!=|<=|>=|<|>)"
    r"\s*(?P<value>[-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)\s*$"
)

_METRIC_KEY = re.compile(r"^(?P<metric>[A-Za-z_][A-Za-z0-9_]*)(?:\{(?P<tags>[^}]*)\})?$")

# Aggregations that make sense for each metric kind.
_METHODS_BY_KIND = {
    TREND: {"avg", "min", "max", "med", "p", "count"},
    RATE: {"rate"},
    COUNTER: {"count", "rate"},
    GAUGE: {"value"},
}


class InvalidThresholdError(ValueError):
    """Raised when a threshold declaration cannot be parsed."""


@dataclass(frozen=True)
class ThresholdExpression:
    """A parsed ``<aggregation> <operator> <number>`` expression."""

    source: str
    method: str
    argument: float | None
    op: str
    value: float

    def check(self, actual: float) -> bool:
        return _OPERATORS[self.op](actual, self.value)


@dataclass(frozen=True)
class ThresholdResult:
    """Outcome of one expression against one metric snapshot."""

    metric: str
    expression: str
    actual: float | None
    passed: bool
    abort_on_fail: bool = False
    error: str | None = None


@dataclass(frozen=True)
class Threshold:
    """
    One threshold expression bound to a metric.

    Attributes:
        metric: The full metric key, including any tag filter.
        metric_name: The bare metric name (``http_req_duration``).
        tags: Tag filter parsed from the key (``{"name": "..."}``).
        expression: The parsed expression.
        abort_on_fail: Stop the run as soon as this threshold fails.
        delay_abort_eval: Seconds to wait before in-run evaluation.
    """

    metric: str
    metric_name: str
    expression: ThresholdExpression
    tags: dict[str, str] = field(default_factory=dict)
    abort_on_fail: bool = False
    delay_abort_eval: float = 0.0

    def evaluate(self, snapshot: MetricSnapshot | None) -> ThresholdResult:
        """
        Evaluate this threshold against an aggregated snapshot.

        A missing snapshot, or one that cannot produce the requested
        aggregation (e.g. no samples yet), counts as a failure so that a
        run which generated no traffic never passes silently.
        """
        if snapshot is None:
            return ThresholdResult(
                metric=self.metric,
                expression=self.expression.source,
                actual=None,
                passed=False,
                abort_on_fail=self.abort_on_fail,
                error="no data",
            )

        try:
            actual = snapshot.aggregate(self.expression.method, self.expression.argument)
        except ValueError as exc:
            return ThresholdResult(
                metric=self.metric,
                expression=self.expression.source,
                actual=None,
                passed=False,
                abort_on_fail=self.abort_on_fail,
                error=str(exc),
            )

        return ThresholdResult(
            metric=self.metric,
            expression=self.expression.source,
            actual=actual,
            passed=self.expression.check(actual),
            abort_on_fail=self.abort_on_fail,
        )


def parse_expression(text: str) -> ThresholdExpression:
    """
    Parse a threshold expression such as ``"p(99)<1000"``.

    Raises:
        InvalidThresholdError: If the expression is malformed.
    """
    if not isinstance(text, str):
        raise InvalidThresholdError(f"Threshold expression must be a string: {text!r}")

    match = _EXPRESSION.match(text)
    if match is None:
        raise InvalidThresholdError(f"Invalid threshold expression: {text!r}")

    method = match.group("method")
    argument: float | None = None
    if method.startswith("p("):
        method = "p"
        argument = float(match.group("pct"))
        if not 0 <= argument <= 100:
            raise InvalidThresholdError(f"Percentile out of range in {text!r}")

    return ThresholdExpression(
        source=text.strip(),
        method=method,
        argument=argument,
        op=match.group("op"),
        value=float(match.group("value")),
    )


def parse_metric_key(key: str) -> tuple[str, dict[str, str]]:
    """Split ``metric{tag:value,...}`` into the metric name and its tag filter."""
    match = _METRIC_KEY.match(key.strip())
    if match is None:
        raise InvalidThresholdError(f"Invalid metric name: {key!r}")

    tags: dict[str, str] = {}
    raw_tags = match.group("tags")
    if raw_tags is not None:
        for part in raw_tags.split(","):
            tag, sep, value = part.partition(":")
            if not sep or not tag.strip():
                raise InvalidThresholdError(f"Invalid tag filter in {key!r}")
            tags[tag.strip()] = value.strip()

    return match.group("metric"), tags


def _parse_entry(metric: str, entry: Any) -> tuple[ThresholdExpression, bool, float]:
    if isinstance(entry, str):
        return parse_expression(entry), False, 0.0

    if not isinstance(entry, dict) or "threshold" not in entry:
        raise InvalidThresholdError(
            f"Threshold for {metric!r} must be a string or an object with 'threshold': {entry!r}"
        )

    abort_on_fail = entry.get("abortOnFail", False)
    if not isinstance(abort_on_fail, bool):
        raise InvalidThresholdError(f"abortOnFail for {metric!r} must be a boolean")

    try:
        delay = parse_duration(entry.get("delayAbortEval", 0))
    except ValueError as exc:
        raise InvalidThresholdError(f"Invalid delayAbortEval for {metric!r}: {exc}") from exc

    return parse_expression(entry["threshold"]), abort_on_fail, delay


def parse_thresholds(mapping: dict[str, Any] | None) -> list[Threshold]:
    """
    Parse the ``thresholds`` section of the options object.

    Args:
        mapping: Metric key → list of expressions (strings or objects).

    Returns:
        One :class:`Threshold` per expression, in declaration order.

    Raises:
        InvalidThresholdError: For unknown metrics, aggregations that do
            not apply to the metric's kind, or malformed entries.
    """
    thresholds: list[Threshold] = []
    for key, entries in (mapping or {}).items():
        metric_name, tags = parse_metric_key(key)
        kind = KNOWN_METRICS.get(metric_name)
        if kind is None:
            raise InvalidThresholdError(f"Threshold declared for unknown metric {metric_name!r}")
        if tags and metric_name not in REQUEST_METRICS:
            raise InvalidThresholdError(f"Metric {metric_name!r} does not support tag filters")
        unknown_tags = set(tags) - {"name", "method"}
        if unknown_tags:
            raise InvalidThresholdError(
                f"Unsupported tag filter(s) {sorted(unknown_tags)} in {key!r}"
            )

        if isinstance(entries, (str, dict)):
            entries = [entries]
        if not isinstance(entries, list) or not entries:
            raise InvalidThresholdError(f"Thresholds for {key!r} must be a non-empty list")

        for entry in entries:
            expression, abort_on_fail, delay = _parse_entry(key, entry)
            if expression.method not in _METHODS_BY_KIND[kind]:
                raise InvalidThresholdError(
                    f"Aggregation {expression.method!r} does not apply to {kind} metric {metric_name!r}"
                )
            thresholds.append(
                Threshold(
                    metric=key,
                    metric_name=metric_name,
                    expression=expression,
                    tags=tags,
                    abort_on_fail=abort_on_fail,
                    delay_abort_eval=delay,
                )
            )
    return thresholds


def evaluate_thresholds(
    thresholds: list[Threshold],
    snapshots: dict[str, MetricSnapshot],
) -> list[ThresholdResult]:
    """Evaluate every threshold against the snapshot stored under its metric key."""
    results = []
    for threshold in thresholds:
        result = threshold.evaluate(snapshots.get(threshold.metric))
        if not result.passed:
            logger.debug("Threshold %s %s failed: %s", result.metric, result.expression, result)
        results.append(result)
    return results


def all_passed(results: list[ThresholdResult]) -> bool:
    return all(result.passed for result in results)


def format_summary(results: list[ThresholdResult]) -> str:
    """Render results as a fixed-width table for logs and CI output."""
    width = max([len("Metric"), *(len(result.metric) for result in results)]) + 2
    rule = "-" * (width + 38)
    lines = [
        "Threshold Check",
        rule,
        f"{'Metric':<{width}}{'Expression':<16}{'Actual':>12}{'Status':>10}",
        rule,
    ]
    for result in results:
        actual = f"{result.actual:.4g}" if result.actual is not None else (result.error or "n/a")
        status = "PASS" if result.passed else "FAIL"
        lines.append(f"{result.metric:<{width}}{result.expression:<16}{actual:>12}{status:>10}")
    lines.append(rule)
    lines.append(f"Overall: {'PASS' if all_passed(results) else 'FAIL'}")
    return "\n".join(lines)
