"""
Unit tests for named response checks.

Uses :class:`shared.test_helpers.FakeResponse` in place of Locust's
response context manager so the success/failure marking can be asserted.
"""

import pytest

from performance.checks import check
from shared.test_helpers import FakeResponse

pytestmark = pytest.mark.unit

STATUS_200 = {"response code was 200": lambda res: res.status_code == 200}


def test_passing_check_marks_response_success(tally):
    """Test that a 200 response passes and is reported as a success."""
    # Arrange
    response = FakeResponse(200)

    # Act
    ok = check(response, STATUS_200, tally=tally)

    # Assert
    assert ok is True
    assert response.succeeded is True
    assert response.failure_message is None
    assert tally.passes == 1
    assert tally.rate == 1.0


def test_failing_check_marks_response_failure(tally):
    """Test that a non-200 response fails the check without raising."""
    # Arrange
    response = FakeResponse(503)

    # Act
    ok = check(response, STATUS_200, tally=tally)

    # Assert
    assert ok is False
    assert response.succeeded is False
    assert response.failure_message == "Check failed: response code was 200 (status 503)"
    assert tally.fails == 1


def test_only_failed_labels_are_reported(tally):
    """Test that the failure message names the failing checks only."""
    # Arrange
    response = FakeResponse(200)
    predicates = {
        "response code was 200": lambda res: res.status_code == 200,
        "body is png": lambda res: False,
    }

    # Act
    check(response, predicates, tally=tally)

    # Assert
    assert response.failure_message == "Check failed: body is png (status 200)"
    assert tally.passed["response code was 200"] == 1
    assert tally.failed["body is png"] == 1


def test_raising_predicate_counts_as_failure(tally):
    """Test that an exception inside a predicate is recorded as a failed check."""
    # Arrange
    response = FakeResponse(200)

    def explode(_res):
        raise AttributeError("no body")

    # Act
    ok = check(response, {"has body": explode}, tally=tally)

    # Assert
    assert ok is False
    assert tally.failed["has body"] == 1


class TestCheckTally:
    """Tests for CheckTally counters."""

    def test_rate_is_zero_without_evaluations(self, tally):
        assert tally.total == 0
        assert tally.rate == 0.0

    def test_rate_over_mixed_outcomes(self, tally):
        for ok in (True, True, True, False):
            tally.record("response code was 200", ok)

        assert tally.rate == 0.75
        assert tally.labels() == ["response code was 200"]

    def test_reset_clears_counters(self, tally):
        tally.record("a", True)
        tally.record("b", False)

        tally.reset()

        assert tally.total == 0
        assert tally.labels() == []
