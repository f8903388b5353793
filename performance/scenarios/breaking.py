"""
Breaking-point Locust scenario.

Defines :class:`BreakingUser`, whose single task is the iteration every
virtual user loops: fetch the image of a uniformly random number in
``[0, 10000)`` and check for ``200 OK``.  There is no think-time, so
each user keeps exactly one request in flight and load scales with the
user count driven by :class:`~performance.shape.BreakingShape`.
"""

from __future__ import annotations

from locust import constant, tag, task

from performance.helpers import random_image_number
from performance.scenarios.base import ImageApiUser


@tag("breaking")
class BreakingUser(ImageApiUser):
    """Hammer the image API with random numbers, back-to-back."""

    wait_time = constant(0)

    @task
    def fetch_random_number_image(self) -> None:
        """Request one random number image."""
        self.fetch_number_image(random_image_number())
