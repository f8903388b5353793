"""
Aggregated metric snapshots.

Locust already aggregates every request into its ``RequestStats``; this
module only exposes those aggregates under the metric names the
thresholds are written against:

- ``http_req_duration`` (trend, milliseconds)
- ``http_req_failed`` (rate of failed requests)
- ``http_reqs`` (counter, with requests per second as its rate)
- ``checks`` (rate of passed checks, from :mod:`performance.checks`)
- ``vus`` / ``vus_max`` (gauges of active and peak users)

Snapshots are built either from a live Locust environment or from the
``Aggregated`` row of the ``*_stats.csv`` file Locust writes with
``--csv``.
"""

from __future__ import annotations

from typing import Any, Callable

from locust.stats import StatsEntry

TREND = "trend"
RATE = "rate"
COUNTER = "counter"
GAUGE = "gauge"

KNOWN_METRICS = {
    "http_req_duration": TREND,
    "http_req_failed": RATE,
    "http_reqs": COUNTER,
    "checks": RATE,
    "vus": GAUGE,
    "vus_max": GAUGE,
}

# Metrics that are computed from request statistics and therefore honour
# ``name``/``method`` tag filters.
REQUEST_METRICS = ("http_req_duration", "http_req_failed", "http_reqs")


class MetricSnapshot:
    """
    The aggregated value of one metric at a point in time.

    Args:
        name: Metric key (including any tag filter).
        kind: One of ``trend``, ``rate``, ``counter``, ``gauge``.
        values: Precomputed aggregations (``avg``, ``rate``, ``count`` ...).
        percentile: Callable returning the given percentile (0-100) for
            trend metrics.
    """

    def __init__(
        self,
        name: str,
        kind: str,
        values: dict[str, float],
        percentile: Callable[[float], float] | None = None,
    ) -> None:
        self.name = name
        self.kind = kind
        self.values = values
        self._percentile = percentile

    def aggregate(self, method: str, argument: float | None = None) -> float:
        """
        Return the aggregation named by *method*.

        Raises:
            ValueError: If the aggregation is unavailable for this snapshot.
        """
        if method == "p":
            if self._percentile is None or argument is None:
                raise ValueError(f"No percentiles recorded for {self.name}")
            return float(self._percentile(argument))

        if method not in self.values:
            raise ValueError(f"No {method!r} value recorded for {self.name}")
        return float(self.values[method])

    def __repr__(self) -> str:
        return f"MetricSnapshot({self.name!r}, {self.kind!r}, {self.values!r})"


def _entry_matches(entry: Any, tags: dict[str, str]) -> bool:
    if "name" in tags and entry.name != tags["name"]:
        return False
    if "method" in tags and (entry.method or "").upper() != tags["method"].upper():
        return False
    return True


def select_entry(stats: Any, tags: dict[str, str] | None = None) -> Any:
    """
    Return the stats entry covering the traffic selected by *tags*.

    Without tags this is Locust's aggregated ``stats.total``.  With a
    ``name`` and/or ``method`` filter the matching per-endpoint entries
    are merged into a fresh entry, or ``None`` if nothing matched.
    """
    if not tags:
        return stats.total

    matching = [entry for entry in stats.entries.values() if _entry_matches(entry, tags)]
    if not matching:
        return None
    if len(matching) == 1:
        return matching[0]

    merged = StatsEntry(stats, "Aggregated", None, use_response_times_cache=False)
    for entry in matching:
        merged.extend(entry)
    return merged


def request_snapshots_from_entry(entry: Any) -> dict[str, MetricSnapshot]:
    """Build the three request metrics from a Locust ``StatsEntry``."""
    if entry is None or entry.num_requests == 0:
        return {}

    num_requests = entry.num_requests
    return {
        "http_req_duration": MetricSnapshot(
            "http_req_duration",
            TREND,
            {
                "avg": entry.avg_response_time,
                "min": entry.min_response_time or 0,
                "max": entry.max_response_time,
                "med": entry.median_response_time,
                "count": num_requests,
            },
            percentile=lambda pct: entry.get_response_time_percentile(pct / 100.0),
        ),
        "http_req_failed": MetricSnapshot(
            "http_req_failed",
            RATE,
            {"rate": entry.num_failures / num_requests},
        ),
        "http_reqs": MetricSnapshot(
            "http_reqs",
            COUNTER,
            {"count": num_requests, "rate": entry.total_rps},
        ),
    }


def snapshots_from_stats(
    stats: Any,
    *,
    checks: Any = None,
    user_count: int = 0,
    max_users: int = 0,
    tag_filters: dict[str, dict[str, str]] | None = None,
) -> dict[str, MetricSnapshot]:
    """
    Build snapshots for every known metric from a live Locust run.

    Args:
        stats: ``environment.stats`` (a Locust ``RequestStats``).
        checks: The :class:`~performance.checks.CheckTally` of the run.
        user_count: Currently active users.
        max_users: Peak active users so far.
        tag_filters: Tagged metric key (``http_req_duration{name:...}``)
            → its tag filter.  Each key gets its own snapshot computed
            from the matching request entries only.

    Returns:
        Metric key → snapshot.  Request metrics are absent while no
        matching request has been recorded.
    """
    snapshots = request_snapshots_from_entry(stats.total)

    for key, tags in (tag_filters or {}).items():
        metric_name = key.split("{", 1)[0]
        tagged = request_snapshots_from_entry(select_entry(stats, tags))
        if metric_name in tagged:
            snapshot = tagged[metric_name]
            snapshot.name = key
            snapshots[key] = snapshot

    if checks is not None and checks.total:
        snapshots["checks"] = MetricSnapshot("checks", RATE, {"rate": checks.rate})

    snapshots["vus"] = MetricSnapshot("vus", GAUGE, {"value": user_count})
    snapshots["vus_max"] = MetricSnapshot("vus_max", GAUGE, {"value": max_users})
    return snapshots


def _csv_float(row: dict[str, str], column: str) -> float:
    value = row.get(column)
    if value is None:
        raise ValueError(f"Missing field: {column}")

    text = str(value).strip().replace("%", "")
    if text in ("", "N/A"):
        raise ValueError(f"Empty value for field: {column}")

    try:
        return float(text)
    except ValueError as exc:
        raise ValueError(f"Non-numeric value for {column}: {value}") from exc


def _csv_percentile(row: dict[str, str], pct: float) -> float:
    for column in (f"{pct:g}%", f"{pct:g}%ile"):
        if column in row and row[column] not in (None, ""):
            return _csv_float(row, column)
    raise ValueError(f"Locust stats CSV has no {pct:g}th percentile column")


def snapshots_from_csv_row(row: dict[str, str]) -> dict[str, MetricSnapshot]:
    """
    Build request metric snapshots from the ``Aggregated`` CSV row.

    Raises:
        ValueError: If counts are missing or ``Request Count`` is zero.
    """
    request_count = _csv_float(row, "Request Count")
    failure_count = _csv_float(row, "Failure Count")
    if request_count <= 0:
        raise ValueError("Request Count must be > 0 for threshold checks")

    duration_values = {
        "avg": _csv_float(row, "Average Response Time"),
        "min": _csv_float(row, "Min Response Time"),
        "max": _csv_float(row, "Max Response Time"),
        "count": request_count,
    }
    if row.get("Median Response Time") not in (None, "", "N/A"):
        duration_values["med"] = _csv_float(row, "Median Response Time")

    snapshots = {
        "http_req_duration": MetricSnapshot(
            "http_req_duration",
            TREND,
            duration_values,
            percentile=lambda pct: _csv_percentile(row, pct),
        ),
        "http_req_failed": MetricSnapshot(
            "http_req_failed",
            RATE,
            {"rate": failure_count / request_count},
        ),
    }

    counter_values = {"count": request_count}
    if row.get("Requests/s") not in (None, ""):
        counter_values["rate"] = _csv_float(row, "Requests/s")
    snapshots["http_reqs"] = MetricSnapshot("http_reqs", COUNTER, counter_values)
    return snapshots
