"""Logging configuration for pipeline runs."""
import logging
import sys

PACKAGE_LOGGER = "retail_weather"


def configure_logging(level: str = "INFO"):
    """Configure logging on stderr; stdout is left for command output.

    The package logger always takes ``level``, so the setting holds even when
    the host application has already configured the root logger.
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric_level)
