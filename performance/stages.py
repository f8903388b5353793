"""
Ramp stages and the ramping-virtual-users scenario model.

A scenario is an ordered list of stages.  Each stage moves the target
number of virtual users linearly from the previous stage's target (or
``startVUs`` for the first stage) to its own ``target`` over its
``duration``.  The model here is pure arithmetic over elapsed seconds so
that it can be unit-tested without a running Locust environment; the
Locust-facing wrapper lives in :mod:`performance.shape`.

Durations use the k6 notation the scenario options are written in:
``"500ms"``, ``"10s"``, ``"2m"``, ``"1h"`` and concatenations such as
``"1m30s"``.  Plain numbers are taken as seconds.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

RAMPING_VUS = "ramping-vus"

DEFAULT_START_VUS = 1
DEFAULT_GRACEFUL_STOP = "30s"

_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")


def parse_duration(value: str | int | float) -> float:
    """
    Convert a k6-style duration into seconds.

    Args:
        value: A duration string (``"10s"``, ``"1m30s"``, ``"250ms"``) or
            a non-negative number of seconds.

    Returns:
        The duration in seconds.

    Raises:
        ValueError: If the value is empty, malformed, or negative.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Duration must not be negative: {value!r}")
        return float(value)

    text = str(value).strip()
    if not text:
        raise ValueError("Duration must not be empty")

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        amount, unit = match.groups()
        total += float(amount) * _UNIT_SECONDS[unit]
        position = match.end()

    if position != len(text) or position == 0:
        raise ValueError(f"Invalid duration: {value!r}")
    return total


@dataclass(frozen=True)
class Stage:
    """One ramp window: reach ``target`` users after ``duration`` seconds."""

    duration: float
    target: int

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError(f"Stage duration must not be negative: {self.duration}")
        if self.target < 0:
            raise ValueError(f"Stage target must not be negative: {self.target}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stage:
        """Build a stage from an options entry such as ``{"duration": "10s", "target": 20}``."""
        try:
            duration = data["duration"]
            target = data["target"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Stage needs 'duration' and 'target': {data!r}") from exc

        if isinstance(target, bool) or not isinstance(target, int):
            raise ValueError(f"Stage target must be an integer: {target!r}")

        return cls(duration=parse_duration(duration), target=target)


@dataclass(frozen=True)
class Scenario:
    """
    A named ramping-virtual-users scenario.

    Attributes:
        name: Scenario key from the options object (e.g. ``"breaking"``).
        stages: Stages in execution order.
        start_vus: Users active at ``t = 0`` before the first ramp.
        graceful_stop: Seconds in-flight iterations may run after the
            last stage ends.
        executor: Executor kind; only ``"ramping-vus"`` is supported.
    """

    name: str
    stages: tuple[Stage, ...]
    start_vus: int = DEFAULT_START_VUS
    graceful_stop: float = 30.0
    executor: str = RAMPING_VUS

    def __post_init__(self) -> None:
        if self.executor != RAMPING_VUS:
            raise ValueError(
                f"Scenario {self.name!r}: unsupported executor {self.executor!r}"
            )
        if not self.stages:
            raise ValueError(f"Scenario {self.name!r} must declare at least one stage")
        if self.start_vus < 0:
            raise ValueError(f"Scenario {self.name!r}: startVUs must not be negative")

    @classmethod
    def from_options(cls, name: str, config: dict[str, Any]) -> Scenario:
        """
        Build a scenario from its options entry.

        Args:
            name: The scenario key.
            config: Mapping with ``executor``, ``stages`` and the optional
                ``startVUs`` / ``gracefulStop`` keys.

        Raises:
            ValueError: If the executor is unsupported or any stage is
                invalid.
        """
        stages = tuple(Stage.from_dict(item) for item in config.get("stages") or [])
        start_vus = config.get("startVUs", DEFAULT_START_VUS)
        if isinstance(start_vus, bool) or not isinstance(start_vus, int):
            raise ValueError(f"Scenario {name!r}: startVUs must be an integer")

        return cls(
            name=name,
            stages=stages,
            start_vus=start_vus,
            graceful_stop=parse_duration(config.get("gracefulStop", DEFAULT_GRACEFUL_STOP)),
            executor=config.get("executor", RAMPING_VUS),
        )

    @property
    def total_duration(self) -> float:
        return sum(stage.duration for stage in self.stages)

    @property
    def max_target(self) -> int:
        return max([self.start_vus, *(stage.target for stage in self.stages)])

    def stage_index_at(self, elapsed: float) -> int | None:
        """Return the index of the stage running at *elapsed* seconds, or ``None`` when done."""
        if elapsed < 0:
            return 0
        stage_end = 0.0
        for index, stage in enumerate(self.stages):
            stage_end += stage.duration
            if elapsed < stage_end:
                return index
        return None

    def target_at(self, elapsed: float) -> int | None:
        """
        Interpolate the target number of users at *elapsed* seconds.

        Inside stage ``i`` the target moves linearly from the previous
        stage's target to ``stages[i].target``.  The result is rounded to
        the nearest user and always lies between the two targets.

        Returns:
            The user count, or ``None`` once every stage has elapsed.
        """
        if elapsed < 0:
            return self.start_vus

        previous = self.start_vus
        stage_start = 0.0
        for stage in self.stages:
            stage_end = stage_start + stage.duration
            if elapsed < stage_end:
                fraction = (elapsed - stage_start) / stage.duration
                value = previous + (stage.target - previous) * fraction
                low, high = sorted((previous, stage.target))
                return min(high, max(low, int(round(value))))
            previous = stage.target
            stage_start = stage_end
        return None

    def slope_at(self, elapsed: float) -> float:
        """Users per second the current stage ramps by (absolute value, 0 when done)."""
        index = self.stage_index_at(elapsed)
        if index is None:
            return 0.0

        stage = self.stages[index]
        previous = self.start_vus if index == 0 else self.stages[index - 1].target
        if stage.duration == 0:
            return 0.0
        return abs(stage.target - previous) / stage.duration

    def spawn_rate_at(self, elapsed: float) -> float:
        """Spawn rate large enough to follow the current ramp, at least one user per second."""
        return float(max(1, math.ceil(self.slope_at(elapsed))))
