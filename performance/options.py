"""
Exported configuration object for the image-API load test.

``OPTIONS`` has the same shape the scenario was originally written in:
``thresholds`` maps a metric name to its pass/fail expressions and
``scenarios`` maps a scenario name to its executor configuration.  The
``breaking`` scenario ramps virtual users up in 50-second steps of 20
to find the point where the image API stops meeting its thresholds.

The loaders below turn the plain dictionaries into validated
:class:`~performance.stages.Scenario` and
:class:`~performance.thresholds.Threshold` objects; configuration errors
surface here, before any load is generated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from performance.stages import Scenario
from performance.thresholds import InvalidThresholdError, Threshold, parse_thresholds

DEFAULT_SCENARIO = "breaking"

OPTIONS: dict[str, Any] = {
    "thresholds": {
        # HTTP errors should be less than 1%
        "http_req_failed": [{"threshold": "rate<0.01"}],
        # 99% of requests should be below 1s
        "http_req_duration": ["p(99)<1000"],
    },
    "scenarios": {
        "breaking": {
            "executor": "ramping-vus",
            "stages": [
                {"duration": "10s", "target": 20},
                {"duration": "50s", "target": 20},
                {"duration": "50s", "target": 40},
                {"duration": "50s", "target": 60},
                {"duration": "50s", "target": 80},
                {"duration": "50s", "target": 100},
                {"duration": "50s", "target": 120},
                {"duration": "50s", "target": 140},
            ],
        },
    },
}


def load_scenario(name: str = DEFAULT_SCENARIO, options: dict[str, Any] | None = None) -> Scenario:
    """
    Build the named scenario from the options object.

    Raises:
        KeyError: If no scenario with that name is declared.
        ValueError: If the scenario configuration is invalid.
    """
    scenarios = (options or OPTIONS).get("scenarios") or {}
    if name not in scenarios:
        raise KeyError(f"Unknown scenario {name!r}; known scenarios: {sorted(scenarios)}")
    return Scenario.from_options(name, scenarios[name])


def load_thresholds(options: dict[str, Any] | None = None) -> list[Threshold]:
    """Parse the thresholds declared in the options object."""
    return parse_thresholds((options or OPTIONS).get("thresholds"))


def read_thresholds_file(path: Path) -> dict[str, Any]:
    """
    Read a thresholds override from a YAML file.

    The file holds the same mapping as ``OPTIONS["thresholds"]``, either
    at the top level or under a ``thresholds`` key.

    Raises:
        InvalidThresholdError: If the file does not contain a mapping.
    """
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if isinstance(data, dict) and "thresholds" in data:
        data = data["thresholds"]
    if not isinstance(data, dict):
        raise InvalidThresholdError(f"Thresholds file {path} must contain a mapping")
    return data


def options_with_thresholds(thresholds: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``OPTIONS`` with its thresholds replaced."""
    return {**OPTIONS, "thresholds": thresholds}
