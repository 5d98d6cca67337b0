"""Configuration models and loaders."""

from .models import (
    BandsConfig,
    FallbackTier,
    PathsConfig,
    PerformanceConfig,
    ReconciliationConfig,
    RetailWeatherConfig,
    WeatherBand,
)
from .settings import create_default_config, load_config, load_config_with_fallback

__all__ = [
    "BandsConfig",
    "FallbackTier",
    "PathsConfig",
    "PerformanceConfig",
    "ReconciliationConfig",
    "RetailWeatherConfig",
    "WeatherBand",
    "create_default_config",
    "load_config",
    "load_config_with_fallback",
]
