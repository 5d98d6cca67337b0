"""
Configuration loading and management for the reconciliation pipeline.

This module provides utilities for locating, loading and writing the JSON
configuration file.
"""

import logging
import os
from pathlib import Path

from .models import RetailWeatherConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "retail_weather.json"


def load_config(
    config_path: str | Path | None = None, config_name: str = DEFAULT_CONFIG_NAME
) -> RetailWeatherConfig:
    """
    Load configuration from file with path resolution.

    Args:
        config_path: Explicit path to config file or directory containing config
        config_name: Name of config file (default: "retail_weather.json")

    Returns:
        RetailWeatherConfig: Loaded and validated configuration

    Raises:
        FileNotFoundError: If no configuration file is found
        ValueError: If configuration is invalid
    """
    if config_path is None:
        search_paths = [
            Path.cwd() / config_name,
            Path.cwd() / "config" / config_name,
        ]

        for path in search_paths:
            if path.exists():
                config_path = path
                break
        else:
            raise FileNotFoundError(
                f"Configuration file '{config_name}' not found in any of: "
                f"{[str(p) for p in search_paths]}"
            )

    config_path = Path(config_path)

    if config_path.is_dir():
        config_path = config_path / config_name

    return RetailWeatherConfig.from_file(config_path)


def load_config_with_fallback(config_path: str | Path | None = None) -> RetailWeatherConfig:
    """
    Load configuration, falling back to defaults when no file is found.

    Priority order:
    1. Explicit config file path (errors propagate)
    2. Environment variable RETAIL_WEATHER_CONFIG_FILE
    3. Default locations (retail_weather.json, config/retail_weather.json)
    4. Built-in defaults
    """
    if config_path:
        return load_config(config_path)

    env_path = os.getenv("RETAIL_WEATHER_CONFIG_FILE")
    if env_path:
        return load_config(env_path)

    try:
        return load_config()
    except FileNotFoundError:
        logger.info("No configuration file found, using defaults")
        return RetailWeatherConfig()


def create_default_config(output_path: str | Path) -> RetailWeatherConfig:
    """
    Create a default configuration file.

    Args:
        output_path: Where to save the default config file

    Returns:
        RetailWeatherConfig: The default configuration
    """
    default_config = RetailWeatherConfig(
        paths={
            "sales": "data/orders.csv",
            "temperature": "data/temperature.csv",
            "humidity": "data/humidity.csv",
            "description": "data/description.csv",
            "output": "data/sales_weather.csv",
        },
    )

    default_config.to_file(output_path)
    return default_config
