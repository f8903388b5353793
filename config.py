"""
Load-test configuration module.

This module defines configuration classes for different environments
(development, testing, production).  The same classes configure both
the Locust scenario package (target host, number range, threshold
evaluation cadence) and the local numbers-image target service.
Values are loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

import os


class Config:
    """Base configuration with default settings."""

    # Base URL of the image API under test.  Locust's ``--host`` flag
    # takes precedence when given.
    TARGET_BASE_URL: str = os.environ.get("LOADTEST_TARGET_URL", "http://localhost:8080")

    # Image numbers are drawn uniformly from ``[0, IMAGE_NUMBER_UPPER_BOUND)``.
    IMAGE_NUMBER_UPPER_BOUND: int = int(os.environ.get("IMAGE_NUMBER_UPPER_BOUND", "10000"))

    # Seconds between in-run evaluations of ``abortOnFail`` thresholds.
    THRESHOLD_EVAL_INTERVAL: float = float(os.environ.get("THRESHOLD_EVAL_INTERVAL", "2"))

    # Target service rendering settings.
    IMAGE_CACHE_MAX_ENTRIES: int = int(os.environ.get("IMAGE_CACHE_MAX_ENTRIES", "1000"))
    IMAGE_CACHE_MAX_CONCURRENCY: int = int(os.environ.get("IMAGE_CACHE_MAX_CONCURRENCY", "10"))
    IMAGE_WIDTH: int = int(os.environ.get("IMAGE_WIDTH", "900"))
    IMAGE_HEIGHT: int = int(os.environ.get("IMAGE_HEIGHT", "200"))
    IMAGE_FONT_SIZE: int = int(os.environ.get("IMAGE_FONT_SIZE", "120"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """Testing environment configuration."""

    DEBUG: bool = True
    TESTING: bool = True

    # Non-routable host so unit tests never generate real traffic.
    TARGET_BASE_URL: str = os.environ.get("TEST_TARGET_URL", "http://image-api.test")

    # Small cache so eviction is easy to exercise.
    IMAGE_CACHE_MAX_ENTRIES: int = int(os.environ.get("TEST_IMAGE_CACHE_MAX_ENTRIES", "4"))

    # Fast evaluation keeps short smoke runs responsive.
    THRESHOLD_EVAL_INTERVAL: float = float(os.environ.get("TEST_THRESHOLD_EVAL_INTERVAL", "0.5"))


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG: bool = False
    TESTING: bool = False


# Configuration mapping for easy access
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Get the configuration class for the specified environment.

    Args:
        env: Environment name (development, testing, production).
             If None, uses FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
