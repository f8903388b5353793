"""
Validate Locust CSV output against the scenario thresholds.

After a Locust run completes with ``--csv <prefix>``, CI can invoke this
script to re-check the result offline.  It reads the ``*_stats.csv``
file that Locust generates, extracts the **Aggregated** row, and
evaluates the thresholds from :data:`performance.options.OPTIONS` (or
from a YAML override) against it.

Only request metrics can be rebuilt from the CSV:

- ``http_req_duration`` -- average, min, max, median and the percentile
  columns Locust writes (``p(50)`` … ``p(99.99)``)
- ``http_req_failed`` -- ``Failure Count / Request Count``
- ``http_reqs`` -- request count and requests per second

Thresholds on other metrics (``checks``, ``vus``) are reported as
skipped.

Exit codes follow a three-state convention so that CI can distinguish
"thresholds breached" from "script crashed":

- ``0`` -- all thresholds passed
- ``1`` -- at least one threshold was breached
- ``2`` -- the script itself failed (missing file, bad YAML, etc.)
"""

from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path

from performance.metrics import REQUEST_METRICS, snapshots_from_csv_row
from performance.options import load_thresholds, options_with_thresholds, read_thresholds_file
from performance.thresholds import all_passed, evaluate_thresholds, format_summary

# Three-state exit codes so CI can tell "test failed" from "script crashed".
EXIT_PASS = 0
EXIT_THRESHOLD_BREACH = 1
EXIT_SCRIPT_ERROR = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the threshold checker."""
    parser = argparse.ArgumentParser(
        description="Check Locust stats CSV against performance thresholds."
    )
    parser.add_argument(
        "--stats",
        required=True,
        type=Path,
        help="Path to Locust *_stats.csv file",
    )
    parser.add_argument(
        "--thresholds",
        type=Path,
        default=None,
        help="Optional YAML file overriding the scenario thresholds",
    )
    return parser.parse_args(argv)


def _load_aggregated_row(stats_path: Path) -> dict[str, str]:
    """
    Find and return the ``Aggregated`` summary row from a Locust stats CSV.

    Locust writes one row per endpoint plus a final ``Aggregated`` row
    that summarises all traffic.  This function scans for that row by
    checking both the ``Name`` and ``Type`` columns, since the column
    layout varies between Locust versions.

    Raises:
        ValueError: If no ``Aggregated`` row is found.
    """
    with stats_path.open("r", encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))

    for row in rows:
        if row.get("Name") == "Aggregated" or row.get("Type") == "Aggregated":
            return row

    raise ValueError("Could not find 'Aggregated' row in stats CSV")


def main(argv: list[str] | None = None) -> int:
    """
    Entry point: load thresholds, parse CSV, compare, and print results.

    Returns:
        ``EXIT_PASS`` (0) if all thresholds are met,
        ``EXIT_THRESHOLD_BREACH`` (1) if any are exceeded, or
        ``EXIT_SCRIPT_ERROR`` (2) on unexpected failures.
    """
    args = parse_args(argv)

    try:
        if args.thresholds is not None:
            thresholds = load_thresholds(options_with_thresholds(read_thresholds_file(args.thresholds)))
        else:
            thresholds = load_thresholds()

        checkable = [t for t in thresholds if t.metric_name in REQUEST_METRICS and not t.tags]
        skipped = [t for t in thresholds if t not in checkable]

        row = _load_aggregated_row(args.stats)
        results = evaluate_thresholds(checkable, snapshots_from_csv_row(row))

        print(format_summary(results))
        for threshold in skipped:
            print(f"Skipped (not in stats CSV): {threshold.metric} {threshold.expression.source}")
        return EXIT_PASS if all_passed(results) else EXIT_THRESHOLD_BREACH
    except Exception as exc:
        print(f"Threshold check failed: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
