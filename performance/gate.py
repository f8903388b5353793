"""
Threshold gate for a running Locust environment.

:class:`ThresholdGate` turns the environment's aggregated statistics
into metric snapshots and evaluates the configured thresholds against
them.  It is used twice per run:

1. **While load is generated** -- :meth:`ThresholdGate.watch` runs in a
   greenlet, tracks the peak user count, and evaluates thresholds
   marked ``abortOnFail`` once their ``delayAbortEval`` has passed.  The
   first failure quits the runner.
2. **At the end of the run** -- :meth:`ThresholdGate.finish` evaluates
   every threshold against the full aggregated statistics, logs the
   summary table, and sets the process exit code.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import gevent
from locust.runners import STATE_CLEANUP, STATE_STOPPED, STATE_STOPPING

from performance.checks import TALLY, CheckTally
from performance.metrics import MetricSnapshot, snapshots_from_stats
from performance.thresholds import (
    Threshold,
    ThresholdResult,
    all_passed,
    evaluate_thresholds,
    format_summary,
)

logger = logging.getLogger(__name__)

# Exit codes for a run whose thresholds passed or were breached.
EXIT_THRESHOLDS_PASSED = 0
EXIT_THRESHOLDS_BREACHED = 99

_FINISHED_STATES = (STATE_STOPPING, STATE_STOPPED, STATE_CLEANUP)


class ThresholdGate:
    """
    Evaluate thresholds against a Locust environment's statistics.

    Attributes:
        environment: The Locust ``Environment`` under test.
        thresholds: Parsed thresholds to enforce.
        interval: Seconds between in-run evaluations.
        tally: Check outcomes backing the ``checks`` metric.
        max_users: Highest active user count observed.
        aborted_by: The result that aborted the run, if any.
    """

    def __init__(
        self,
        environment: Any,
        thresholds: list[Threshold],
        *,
        interval: float = 2.0,
        tally: CheckTally = TALLY,
    ) -> None:
        self.environment = environment
        self.thresholds = thresholds
        self.interval = interval
        self.tally = tally
        self.max_users = 0
        self.aborted_by: ThresholdResult | None = None
        self._started_at = time.monotonic()

    def reset(self) -> None:
        """Start a new run: restart the abort delay clock and forget the previous peak."""
        self.max_users = 0
        self.aborted_by = None
        self._started_at = time.monotonic()

    @property
    def abort_thresholds(self) -> list[Threshold]:
        return [threshold for threshold in self.thresholds if threshold.abort_on_fail]

    def _user_count(self) -> int:
        runner = self.environment.runner
        return runner.user_count if runner is not None else 0

    def observe_users(self) -> None:
        self.max_users = max(self.max_users, self._user_count())

    def snapshots(self) -> dict[str, MetricSnapshot]:
        """Snapshot every metric from the environment's aggregated statistics."""
        self.observe_users()
        return snapshots_from_stats(
            self.environment.stats,
            checks=self.tally,
            user_count=self._user_count(),
            max_users=self.max_users,
            tag_filters={t.metric: t.tags for t in self.thresholds if t.tags},
        )

    def evaluate(self, thresholds: list[Threshold] | None = None) -> list[ThresholdResult]:
        if thresholds is None:
            thresholds = self.thresholds
        return evaluate_thresholds(thresholds, self.snapshots())

    def check_abort(self) -> ThresholdResult | None:
        """
        Evaluate ``abortOnFail`` thresholds whose delay has elapsed.

        Returns:
            The first failing result, or ``None`` if none failed.
        """
        elapsed = time.monotonic() - self._started_at
        due = [t for t in self.abort_thresholds if elapsed >= t.delay_abort_eval]
        if not due:
            return None

        for result in self.evaluate(due):
            if not result.passed:
                return result
        return None

    def watch(self) -> None:
        """Poll until the run stops, quitting the runner on the first aborting failure."""
        runner = self.environment.runner
        while runner.state not in _FINISHED_STATES:
            gevent.sleep(self.interval)
            self.observe_users()
            failed = self.check_abort()
            if failed is not None:
                self.aborted_by = failed
                logger.error(
                    "Threshold %s %s crossed (actual %s); aborting the run",
                    failed.metric,
                    failed.expression,
                    failed.actual if failed.actual is not None else failed.error,
                )
                runner.quit()
                return

    def finish(self) -> list[ThresholdResult]:
        """
        Evaluate every threshold over the whole run and set the exit code.

        Returns:
            The final results, in threshold declaration order.
        """
        results = self.evaluate()
        if not results:
            return results

        summary = format_summary(results)
        if all_passed(results) and self.aborted_by is None:
            logger.info("\n%s", summary)
            # Overrides Locust's exit-code-on-error: request failures alone
            # never fail a run whose thresholds held.
            self.environment.process_exit_code = EXIT_THRESHOLDS_PASSED
        else:
            logger.error("\n%s", summary)
            self.environment.process_exit_code = EXIT_THRESHOLDS_BREACHED
        return results
