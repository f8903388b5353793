"""
Numbers-Image Service Flask Application Factory.

Provides the ``create_app`` factory for the local image API the load
test targets.  The service renders a PNG with a number drawn centred on
a transparent canvas and keeps recently rendered images in an
in-process cache, so repeated numbers are served without re-rendering.

The service registers one blueprint:
  * **images_bp** -- ``/api/images/numbers/<n>`` and ``/api/health``.

Key Concepts Demonstrated:
- Application factory pattern (``create_app``)
- A bounded image cache attached to the app via ``app.extensions``
"""

from __future__ import annotations

import logging

from flask import Flask

from config import get_config
from image_api.rendering import NumberImageCache

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CACHE_EXTENSION = "number_images"


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the numbers-image service.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``).  When
            *None*, the ``FLASK_ENV`` environment variable is consulted,
            defaulting to ``"development"``.

    Returns:
        A Flask application ready to serve number images.
    """
    app = Flask(__name__)
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    logger.info("Creating image service app with config: %s", config_class.__name__)

    app.extensions[CACHE_EXTENSION] = NumberImageCache(
        max_entries=app.config["IMAGE_CACHE_MAX_ENTRIES"],
        max_concurrency=app.config["IMAGE_CACHE_MAX_CONCURRENCY"],
        width=app.config["IMAGE_WIDTH"],
        height=app.config["IMAGE_HEIGHT"],
        font_size=app.config["IMAGE_FONT_SIZE"],
    )

    from image_api.routes import images_bp

    app.register_blueprint(images_bp, url_prefix="/api")
    return app
