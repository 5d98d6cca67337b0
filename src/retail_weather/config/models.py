"""
Configuration models for the retail weather reconciliation pipeline.

These models define the structure and validation for the JSON config file:
reconciliation policy, worker pool sizing, source/output paths and the
named "ideal weather" bands used by downstream analysis.
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from ..shared.models import TemperatureUnit, convert_temperature

logger = logging.getLogger(__name__)

# Lower bound (Celsius) below which an "ideal weather" band is suspicious
IDEAL_BAND_COLD_LIMIT_C = -40.0


class FallbackTier(str, Enum):
    """Geographic widening steps tried after an exact (date, city) miss."""

    STATE = "STATE"
    REGION = "REGION"
    GLOBAL = "GLOBAL"


_WIDENING_ORDER = [FallbackTier.STATE, FallbackTier.REGION, FallbackTier.GLOBAL]


class ReconciliationConfig(BaseModel):
    """Configuration for the weather fallback policy."""

    strict_geo: bool = Field(
        default=False,
        validate_default=True,
        description=(
            "Abort the run on an unknown city instead of demoting the record's "
            "unresolved attributes to MISSING "
            "(RETAIL_WEATHER_STRICT_GEO=true forces this on)"
        ),
    )
    fallback_order: list[FallbackTier] = Field(
        default_factory=lambda: list(_WIDENING_ORDER),
        description="Fallback tiers tried after EXACT; omit a tier to disable it",
    )
    temperature_unit: TemperatureUnit = Field(
        default=TemperatureUnit.KELVIN,
        description="Unit of the temperatures stored in the weather sources",
    )

    @field_validator("strict_geo", mode="before")
    @classmethod
    def load_strict_geo_from_env(cls, v: bool | None) -> bool:
        """Environment variable can force strict mode on."""
        env_value = os.getenv("RETAIL_WEATHER_STRICT_GEO", "false").lower()
        if env_value == "true":
            return True
        return bool(v)

    @field_validator("fallback_order")
    @classmethod
    def validate_fallback_order(cls, v: list[FallbackTier]) -> list[FallbackTier]:
        """Tiers must be unique and keep the STATE -> REGION -> GLOBAL widening order."""
        if len(set(v)) != len(v):
            raise ValueError(f"fallback_order contains duplicate tiers: {v}")

        positions = [_WIDENING_ORDER.index(tier) for tier in v]
        if positions != sorted(positions):
            raise ValueError(
                "fallback_order must widen from STATE to REGION to GLOBAL, "
                f"got {[tier.value for tier in v]}"
            )
        return v


class PerformanceConfig(BaseModel):
    """Configuration for the reconciliation worker pool."""

    parallel: bool = Field(default=True, description="Reconcile chunks in a thread pool")
    max_workers: int = Field(default=4, gt=0, description="Worker threads")
    chunk_size: int = Field(
        default=500, gt=0, description="Sales records handed to a worker at once"
    )


class PathsConfig(BaseModel):
    """Configuration for source and output file locations."""

    sales: str | None = Field(default=None, description="Orders CSV")
    temperature: str | None = Field(default=None, description="Temperature CSV")
    humidity: str | None = Field(default=None, description="Humidity CSV")
    description: str | None = Field(default=None, description="Weather description CSV")
    output: str | None = Field(default=None, description="Enriched records CSV")


class WeatherBand(BaseModel):
    """A named temperature/humidity window ("ideal weather") for analysis."""

    name: str = Field(..., min_length=1)
    temperature_min: float
    temperature_max: float
    humidity_min: float = Field(..., ge=0, le=100)
    humidity_max: float = Field(..., ge=0, le=100)
    unit: TemperatureUnit = Field(default=TemperatureUnit.KELVIN)

    @model_validator(mode="after")
    def validate_bounds(self) -> "WeatherBand":
        """Validate ranges and flag implausibly cold lower bounds."""
        if self.temperature_min > self.temperature_max:
            raise ValueError(
                f"Band '{self.name}': temperature_min ({self.temperature_min}) "
                f"exceeds temperature_max ({self.temperature_max})"
            )
        if self.humidity_min > self.humidity_max:
            raise ValueError(
                f"Band '{self.name}': humidity_min ({self.humidity_min}) "
                f"exceeds humidity_max ({self.humidity_max})"
            )

        lower_c = convert_temperature(
            self.temperature_min, self.unit, TemperatureUnit.CELSIUS
        )
        if lower_c < IDEAL_BAND_COLD_LIMIT_C:
            logger.warning(
                f"Band '{self.name}' lower temperature bound "
                f"{self.temperature_min} {self.unit.value} ({lower_c:.1f} C) is "
                f"below {IDEAL_BAND_COLD_LIMIT_C} C; check the band's unit"
            )
        return self


def _default_bands() -> list[WeatherBand]:
    # Both windows appear in the source analysis; neither is authoritative.
    return [
        WeatherBand(
            name="ideal_268_299",
            temperature_min=268.0,
            temperature_max=299.0,
            humidity_min=48.0,
            humidity_max=86.0,
        ),
        WeatherBand(
            name="ideal_226_299",
            temperature_min=226.0,
            temperature_max=299.0,
            humidity_min=50.0,
            humidity_max=60.0,
        ),
    ]


class BandsConfig(BaseModel):
    """Named weather bands."""

    bands: list[WeatherBand] = Field(default_factory=_default_bands)

    @field_validator("bands")
    @classmethod
    def validate_unique_names(cls, v: list[WeatherBand]) -> list[WeatherBand]:
        names = [band.name for band in v]
        if len(set(names)) != len(names):
            raise ValueError(f"Band names must be unique: {names}")
        return v

    def get(self, name: str) -> WeatherBand:
        for band in self.bands:
            if band.name == name:
                return band
        raise KeyError(f"Unknown weather band: '{name}'")


class RetailWeatherConfig(BaseModel):
    """Main configuration model for the reconciliation pipeline."""

    log_level: str = Field(default="INFO", description="Root logging level")
    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    bands: BandsConfig = Field(default_factory=BandsConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @classmethod
    def from_file(cls, file_path: str | Path) -> "RetailWeatherConfig":
        """
        Load configuration from a JSON file.

        Args:
            file_path: Path to the configuration JSON file

        Returns:
            RetailWeatherConfig instance

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the JSON is invalid or doesn't match the schema
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        try:
            with path.open("r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}")

        return cls(**data)

    def to_file(self, file_path: str | Path) -> None:
        """
        Save configuration to a JSON file.

        Args:
            file_path: Path where to save the configuration file
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
