"""
Smoke-test fixtures for the image API load test.

Provides the ``target_base_url`` session-scoped fixture that yields a
healthy image API URL shared across the entire smoke suite.  URL
resolution is delegated to :func:`shared.live_stack.live_target_url`,
which uses ``TEST_BASE_URL`` when set, reuses an already-running local
service when one is healthy, or starts the service in a background
thread on demand.

Key SDET Concepts Demonstrated:
- Session-scoped URL fixtures to share a single live target across all smoke tests
- Delegating target lifecycle management to a shared helper
"""

from __future__ import annotations

from collections.abc import Generator

import pytest

from shared.live_stack import live_target_url


@pytest.fixture(scope="session")
def target_base_url() -> Generator[str, None, None]:
    """Yield a healthy image API URL for smoke tests."""
    yield from live_target_url(base_url_env="TEST_BASE_URL")
