"""
Ramping-virtual-users load shape.

Locust drives user counts from a ``LoadTestShape``: once per second it
calls :meth:`tick` and moves the running user count toward the returned
target at the returned spawn rate.  :class:`RampingVusShape` feeds it the
linear interpolation computed by :class:`~performance.stages.Scenario`,
so the active user count follows the declared stages and ends the run
once the last stage has elapsed.
"""

from __future__ import annotations

import logging

from locust import LoadTestShape

from performance.options import DEFAULT_SCENARIO, load_scenario
from performance.stages import Scenario

logger = logging.getLogger(__name__)


class RampingVusShape(LoadTestShape):
    """
    Follow a scenario's ramp stages.

    Subclasses pick the scenario by setting ``scenario_name``; a
    :class:`Scenario` may also be passed directly, which tests use.
    ``abstract = True`` keeps Locust from offering this base class as a
    selectable shape.
    """

    abstract = True
    scenario_name: str = DEFAULT_SCENARIO

    def __init__(self, scenario: Scenario | None = None) -> None:
        super().__init__()
        self.scenario = scenario or load_scenario(self.scenario_name)
        self._last_stage: int | None = None

    def tick(self) -> tuple[int, float] | None:
        run_time = self.get_run_time()
        target = self.scenario.target_at(run_time)
        if target is None:
            logger.info(
                "Scenario %s finished all %d stages after %.0fs",
                self.scenario.name,
                len(self.scenario.stages),
                run_time,
            )
            return None

        stage = self.scenario.stage_index_at(run_time)
        if stage != self._last_stage:
            logger.info(
                "Scenario %s entering stage %d/%d (target %d users)",
                self.scenario.name,
                stage + 1,
                len(self.scenario.stages),
                self.scenario.stages[stage].target,
            )
            self._last_stage = stage

        return target, self.scenario.spawn_rate_at(run_time)


class BreakingShape(RampingVusShape):
    """Ramp of the ``breaking`` scenario: 20 users, then +20 every 50 seconds up to 140."""

    abstract = False
    scenario_name = "breaking"
