"""
Shared abstract Locust user class for image-API scenarios.

:class:`ImageApiUser` issues the number-image request and applies the
response checks.  Concrete user classes (e.g.
:class:`~performance.scenarios.breaking.BreakingUser`) only declare
``@task`` methods and think-time.

Key Concepts Demonstrated:
- ``catch_response=True`` so checks decide success or failure in-band
- A fixed request ``name`` so random paths aggregate into one stats row
"""

from __future__ import annotations

from locust import HttpUser

from config import get_config
from performance.checks import check
from performance.helpers import IMAGE_REQUEST_NAME, image_path

STATUS_200_CHECK = "response code was 200"


class ImageApiUser(HttpUser):
    """
    Base user for the numbers-image API.

    ``abstract = True`` tells Locust not to spawn this class directly.
    The default ``host`` comes from configuration; Locust's ``--host``
    overrides it.
    """

    abstract = True
    host = get_config().TARGET_BASE_URL

    def fetch_number_image(self, number: int) -> bool:
        """
        GET the PNG for *number* and check that the server answered 200.

        Connection errors and timeouts surface as a response with status
        ``0``, so they fail the check like any other non-200 answer.

        Returns:
            ``True`` if every check passed.
        """
        with self.client.get(
            image_path(number),
            name=IMAGE_REQUEST_NAME,
            catch_response=True,
        ) as response:
            return check(
                response,
                {STATUS_200_CHECK: lambda res: res.status_code == 200},
            )
