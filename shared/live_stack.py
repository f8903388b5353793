"""Shared live-target helpers for the smoke suite."""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Generator

import requests
from werkzeug.serving import make_server


def is_target_ready(url: str, timeout: int = 2) -> bool:
    """Return True when the image API health endpoint responds with 200."""
    try:
        response = requests.get(f"{url}/api/health", timeout=timeout)
    except requests.RequestException:
        return False
    return response.status_code == 200


def wait_for_target_healthy(url: str, timeout: int = 60, interval: int = 1) -> None:
    """Poll the image API health endpoint until ready or timeout."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if is_target_ready(url):
            return
        time.sleep(interval)
    raise RuntimeError(f"Image API at {url} not healthy after {timeout}s")


def live_target_url(
    *,
    base_url_env: str,
    base_url_default: str = "http://localhost:8080",
    host: str = "127.0.0.1",
) -> Generator[str, None, None]:
    """
    Yield a healthy image API base URL, reusing or starting a server when needed.

    Priority:
    1. Use explicit base URL from `base_url_env` (and wait for health).
    2. Reuse an already-running local service at `base_url_default`.
    3. Start the image API in a background thread on a free port, then
       shut it down on exit.
    """
    provided_base_url = os.getenv(base_url_env)
    if provided_base_url:
        wait_for_target_healthy(provided_base_url)
        yield provided_base_url
        return

    if is_target_ready(base_url_default):
        yield base_url_default
        return

    from image_api import create_app

    server = make_server(host, 0, create_app("testing"), threaded=True)
    server_thread = threading.Thread(target=server.serve_forever, daemon=True)
    server_thread.start()

    base_url = f"http://{host}:{server.server_port}"
    try:
        wait_for_target_healthy(base_url, timeout=10)
        yield base_url
    finally:
        server.shutdown()
