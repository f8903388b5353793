"""
Numbers-Image API Routes.

Endpoints (mounted at ``/api``):

    GET /images/numbers/<n>  -- PNG (900x200) with ``n`` drawn centred.
    GET /health              -- Liveness probe used by the smoke suite.

No client caching headers are set on images: every load-test request
must reach the server.
"""

from __future__ import annotations

import os

from flask import Blueprint, Response, current_app, jsonify

from image_api import CACHE_EXTENSION

images_bp = Blueprint("images", __name__)


@images_bp.route("/images/numbers/<int(signed=True):number>", methods=["GET"])
def number_image(number: int) -> Response:
    """Serve the PNG for *number*, rendering it on first request."""
    png = current_app.extensions[CACHE_EXTENSION].get_or_render(number)
    return Response(png, mimetype="image/png")


@images_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """
    Liveness / readiness health-check endpoint.

    Returns:
        A 200 JSON response with ``status``, ``service``, and
        ``environment`` fields.
    """
    return jsonify(
        {
            "status": "healthy",
            "service": "image-api",
            "environment": os.getenv("ENVIRONMENT", "unknown"),
        }
    ), 200
