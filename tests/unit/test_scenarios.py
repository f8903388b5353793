"""
Unit tests for the Locust user classes.

A real Locust ``Environment`` builds the user, but its HTTP client's
``get`` is replaced so no request leaves the process.
"""

from __future__ import annotations

import pytest
from locust.env import Environment

from performance.checks import TALLY
from performance.helpers import IMAGE_NUMBERS_PATH, IMAGE_REQUEST_NAME
from performance.scenarios.base import STATUS_200_CHECK, ImageApiUser
from performance.scenarios.breaking import BreakingUser
from shared.test_helpers import FakeResponse

pytestmark = pytest.mark.unit


@pytest.fixture
def recorded_requests():
    return []


@pytest.fixture
def make_user(monkeypatch, recorded_requests):
    """Build a BreakingUser whose client answers every GET with *status*."""
    TALLY.reset()

    def factory(status: int = 200):
        environment = Environment(user_classes=[BreakingUser], host="http://image-api.test")
        user = BreakingUser(environment)
        responses = []

        def fake_get(path, **kwargs):
            recorded_requests.append((path, kwargs))
            response = FakeResponse(status)
            responses.append(response)
            return response

        monkeypatch.setattr(user.client, "get", fake_get)
        return user, responses

    yield factory
    TALLY.reset()


def test_task_requests_a_random_number_image(make_user, recorded_requests):
    """Test that the task GETs /api/images/numbers/<n> with n in [0, 10000)."""
    # Arrange
    user, responses = make_user(200)

    # Act
    for _ in range(20):
        user.fetch_random_number_image()

    # Assert
    assert len(recorded_requests) == 20
    for path, kwargs in recorded_requests:
        prefix, _, number = path.rpartition("/")
        assert prefix == IMAGE_NUMBERS_PATH
        assert 0 <= int(number) < 10000
        assert kwargs == {"name": IMAGE_REQUEST_NAME, "catch_response": True}
    assert all(response.succeeded for response in responses)
    assert TALLY.passed[STATUS_200_CHECK] == 20


def test_non_200_answer_fails_the_check(make_user):
    """Test that a server error is recorded as a failed check and request."""
    # Arrange
    user, responses = make_user(500)

    # Act
    ok = user.fetch_number_image(7)

    # Assert
    assert ok is False
    assert responses[0].failure_message == f"Check failed: {STATUS_200_CHECK} (status 500)"
    assert TALLY.failed[STATUS_200_CHECK] == 1
    assert TALLY.rate == 0.0


def test_connection_error_status_zero_fails_the_check(make_user):
    user, responses = make_user(0)

    assert user.fetch_number_image(1) is False
    assert "(status 0)" in responses[0].failure_message


def test_user_classes_are_configured_for_back_to_back_requests():
    """Test that the base class is abstract and the breaking user has no think-time."""
    assert ImageApiUser.abstract is True
    assert BreakingUser.abstract is False
    assert BreakingUser.wait_time(None) == 0
    assert BreakingUser.host == "http://image-api.test"
