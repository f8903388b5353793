# ruff: noqa: E402
"""
Locust entrypoint for the image-API load test.

This is the file that the ``locust`` CLI discovers and loads.  It
exposes the ``breaking`` scenario's user class and ramp shape, and
wires event listeners that enforce the thresholds from
:data:`performance.options.OPTIONS`.

Usage examples::

    # Headless breaking-point run against the local image API:
    locust -f performance/locustfile.py --headless --host http://localhost:8080

    # Same run with thresholds overridden from a YAML file:
    locust -f performance/locustfile.py --headless \\
        --thresholds-file performance/thresholds.yml

The process exits with code ``99`` when any threshold is breached.

Key Concepts Demonstrated:
- ``LoadTestShape`` for stage-driven user ramps
- ``events.init`` / ``events.test_start`` / ``events.quitting`` hooks
  for in-run aborts and an end-of-run threshold gate
- ``sys.path`` manipulation so imports resolve regardless of the
  working directory Locust is launched from
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import gevent
from locust import events
from locust.runners import WorkerRunner

# Locust may be invoked from any directory (project root, CI workspace,
# etc.).  Inserting the project root onto ``sys.path`` guarantees that
# ``from performance.…`` imports always resolve.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import get_config
from performance.checks import TALLY
from performance.gate import ThresholdGate
from performance.options import (
    DEFAULT_SCENARIO,
    load_scenario,
    load_thresholds,
    options_with_thresholds,
    read_thresholds_file,
)
from performance.scenarios.breaking import BreakingUser
from performance.shape import BreakingShape, RampingVusShape

__all__ = ["BreakingUser", "BreakingShape"]

logger = logging.getLogger(__name__)


@events.init_command_line_parser.add_listener
def _add_arguments(parser, **_kwargs):
    """Register the scenario and threshold options on Locust's CLI."""
    parser.add_argument(
        "--scenario",
        type=str,
        default=DEFAULT_SCENARIO,
        help="Scenario from OPTIONS['scenarios'] whose stages drive the user ramp",
    )
    parser.add_argument(
        "--thresholds-file",
        type=str,
        default="",
        help="YAML file overriding OPTIONS['thresholds']",
    )


def _parsed_option(environment, name: str, default=None):
    options = getattr(environment, "parsed_options", None)
    return getattr(options, name, default) if options is not None else default


@events.init.add_listener
def _configure_run(environment, **_kwargs):
    """
    Resolve the scenario and thresholds, and attach the threshold gate.

    Configuration errors (unknown scenario, malformed thresholds file)
    raise here, before any user is spawned.
    """
    scenario_name = _parsed_option(environment, "scenario", DEFAULT_SCENARIO)
    shape = environment.shape_class
    if isinstance(shape, RampingVusShape) and shape.scenario.name != scenario_name:
        shape = RampingVusShape(load_scenario(scenario_name))
        shape.runner = environment.runner
        environment.shape_class = shape

    scenario = shape.scenario if isinstance(shape, RampingVusShape) else load_scenario(scenario_name)
    if not _parsed_option(environment, "stop_timeout"):
        environment.stop_timeout = scenario.graceful_stop

    thresholds_file = _parsed_option(environment, "thresholds_file")
    if thresholds_file:
        options = options_with_thresholds(read_thresholds_file(Path(thresholds_file)))
        thresholds = load_thresholds(options)
        logger.info("Loaded %d thresholds from %s", len(thresholds), thresholds_file)
    else:
        thresholds = load_thresholds()

    environment.threshold_gate = ThresholdGate(
        environment,
        thresholds,
        interval=get_config().THRESHOLD_EVAL_INTERVAL,
    )
    logger.info(
        "Scenario %s: %d stages over %.0fs, peak %d users",
        scenario.name,
        len(scenario.stages),
        scenario.total_duration,
        scenario.max_target,
    )


@events.test_start.add_listener
def _start_watch(environment, **_kwargs):
    """Reset check counters and start in-run threshold evaluation."""
    TALLY.reset()
    gate = getattr(environment, "threshold_gate", None)
    if gate is None or isinstance(environment.runner, WorkerRunner):
        return
    gate.reset()
    gevent.spawn(gate.watch)


@events.quitting.add_listener
def _enforce_thresholds(environment, **_kwargs):
    """Evaluate thresholds over the whole run and set the exit code."""
    gate = getattr(environment, "threshold_gate", None)
    if gate is None or isinstance(environment.runner, WorkerRunner):
        return
    gate.finish()
