"""
Shared pytest fixtures for the load-test suite.

This module contains fixtures that are shared across all test modules:
the image API application and test client, a short ramp scenario, and
a fresh check tally.  Fixtures keep every test isolated from the
module-level state the Locust listeners use during a real run.

Key Concepts Demonstrated:
- Fixture scopes (function, session)
- Environment variable overrides before importing the app
- Small, explicit scenarios instead of the full 6-minute ramp
"""

# Import locust first so its gevent monkey-patching runs before ssl is imported
import locust  # noqa: F401

import os

import pytest

# Set testing environment before importing app
os.environ["FLASK_ENV"] = "testing"

from image_api import CACHE_EXTENSION, create_app
from performance.checks import CheckTally
from performance.stages import Scenario, Stage


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    """
    Create the image API instance for the test session.

    Yields:
        Flask application instance configured for testing.
    """
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """
    Create a test client with an empty image cache.

    Yields:
        Flask test client for making HTTP requests.
    """
    app.extensions[CACHE_EXTENSION].clear()
    with app.test_client() as test_client:
        yield test_client


# -----------------------------------------------------------------------------
# Load-Test Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def short_scenario():
    """
    A three-stage ramp: 0→10 users over 10s, hold 10s, then down to 4 over 6s.

    Starting at zero users keeps the interpolation arithmetic easy to
    read in assertions.
    """
    return Scenario(
        name="short",
        stages=(Stage(10, 10), Stage(10, 10), Stage(6, 4)),
        start_vus=0,
    )


@pytest.fixture
def tally():
    """Provide a fresh check tally so tests never share counters."""
    return CheckTally()
