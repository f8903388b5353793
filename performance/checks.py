"""
Named per-response checks.

A check is a labelled boolean assertion over one response, e.g.
``"response code was 200"``.  Every evaluation is tallied so the run's
``checks`` rate can be thresholded, and the response is reported to
Locust as a failure naming the checks that did not hold.  A failed
check is a data point: it never raises and never stops the virtual user.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Callable

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], bool]


class CheckTally:
    """Pass/fail counters per check label for the current run."""

    def __init__(self) -> None:
        self.passed: Counter[str] = Counter()
        self.failed: Counter[str] = Counter()

    def record(self, label: str, ok: bool) -> None:
        if ok:
            self.passed[label] += 1
        else:
            self.failed[label] += 1

    def reset(self) -> None:
        self.passed.clear()
        self.failed.clear()

    @property
    def passes(self) -> int:
        return sum(self.passed.values())

    @property
    def fails(self) -> int:
        return sum(self.failed.values())

    @property
    def total(self) -> int:
        return self.passes + self.fails

    @property
    def rate(self) -> float:
        """Fraction of check evaluations that passed (0.0 when nothing ran)."""
        total = self.total
        return self.passes / total if total else 0.0

    def labels(self) -> list[str]:
        return sorted(set(self.passed) | set(self.failed))


# One tally per Locust process; reset on every test start.
TALLY = CheckTally()


def check(response: Any, predicates: dict[str, Predicate], tally: CheckTally = TALLY) -> bool:
    """
    Run each labelled predicate against *response* and record the outcome.

    *response* must come from a request made with ``catch_response=True``
    so that it can be marked as a success or a failure.  A predicate that
    raises counts as a failed check.

    Args:
        response: The Locust response context.
        predicates: Check label → predicate over the response.
        tally: Where outcomes are counted.

    Returns:
        ``True`` if every check passed.
    """
    failed_labels = []
    for label, predicate in predicates.items():
        try:
            ok = bool(predicate(response))
        except Exception as exc:
            logger.debug("Check %r raised %s", label, exc)
            ok = False

        tally.record(label, ok)
        if not ok:
            failed_labels.append(label)

    if failed_labels:
        status = getattr(response, "status_code", None)
        response.failure(f"Check failed: {', '.join(failed_labels)} (status {status})")
        return False

    response.success()
    return True
