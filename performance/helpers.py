"""
Helper utilities for the image-API Locust scenarios.

Keeps request-path construction and the random number choice in one
place so that every scenario targets the same URL space.
"""

from __future__ import annotations

import random

from config import get_config

IMAGE_NUMBERS_PATH = "/api/images/numbers"

# Request name under which every number image is grouped in Locust stats.
# Without it each random number would become its own stats entry.
IMAGE_REQUEST_NAME = f"{IMAGE_NUMBERS_PATH}/[n]"


def random_image_number(upper_bound: int | None = None) -> int:
    """
    Pick a uniformly random image number in ``[0, upper_bound)``.

    Args:
        upper_bound: Exclusive upper limit.  Defaults to the configured
            ``IMAGE_NUMBER_UPPER_BOUND`` (10000).

    Raises:
        ValueError: If *upper_bound* is not positive.
    """
    if upper_bound is None:
        upper_bound = get_config().IMAGE_NUMBER_UPPER_BOUND
    if upper_bound <= 0:
        raise ValueError(f"upper_bound must be positive, got {upper_bound}")
    return random.randrange(upper_bound)


def image_path(number: int) -> str:
    """Build the request path for the image of *number*."""
    return f"{IMAGE_NUMBERS_PATH}/{number}"
