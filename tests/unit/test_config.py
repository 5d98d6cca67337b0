"""
Unit tests for configuration models and loading.
"""

import json
import logging

import pytest
from pydantic import ValidationError

from retail_weather.config import (
    BandsConfig,
    FallbackTier,
    PerformanceConfig,
    ReconciliationConfig,
    RetailWeatherConfig,
    WeatherBand,
    create_default_config,
    load_config,
    load_config_with_fallback,
)
from retail_weather.shared.models import TemperatureUnit


class TestReconciliationConfig:
    """Test fallback policy validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RETAIL_WEATHER_STRICT_GEO", raising=False)
        config = ReconciliationConfig()

        assert config.strict_geo is False
        assert config.fallback_order == [
            FallbackTier.STATE,
            FallbackTier.REGION,
            FallbackTier.GLOBAL,
        ]
        assert config.temperature_unit is TemperatureUnit.KELVIN

    @pytest.mark.parametrize(
        "order",
        [
            [],
            ["STATE"],
            ["REGION"],
            ["GLOBAL"],
            ["STATE", "GLOBAL"],
            ["REGION", "GLOBAL"],
            ["STATE", "REGION"],
        ],
    )
    def test_widening_subsequences_accepted(self, order):
        config = ReconciliationConfig(fallback_order=order)

        assert [tier.value for tier in config.fallback_order] == order

    @pytest.mark.parametrize(
        "order",
        [
            ["GLOBAL", "STATE"],
            ["REGION", "STATE"],
            ["STATE", "GLOBAL", "REGION"],
        ],
    )
    def test_narrowing_order_rejected(self, order):
        with pytest.raises(ValidationError, match="must widen"):
            ReconciliationConfig(fallback_order=order)

    def test_duplicate_tiers_rejected(self):
        with pytest.raises(ValidationError, match="duplicate"):
            ReconciliationConfig(fallback_order=["STATE", "STATE"])

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValidationError):
            ReconciliationConfig(fallback_order=["COUNTY"])

    def test_env_forces_strict_geo(self, monkeypatch):
        monkeypatch.setenv("RETAIL_WEATHER_STRICT_GEO", "true")

        assert ReconciliationConfig().strict_geo is True
        assert ReconciliationConfig(strict_geo=False).strict_geo is True

    def test_env_false_keeps_explicit_value(self, monkeypatch):
        monkeypatch.setenv("RETAIL_WEATHER_STRICT_GEO", "false")

        assert ReconciliationConfig(strict_geo=True).strict_geo is True
        assert ReconciliationConfig().strict_geo is False


class TestPerformanceConfig:
    """Test worker pool settings."""

    def test_defaults(self):
        config = PerformanceConfig()

        assert config.parallel is True
        assert config.max_workers == 4
        assert config.chunk_size == 500

    @pytest.mark.parametrize("field", ["max_workers", "chunk_size"])
    def test_non_positive_rejected(self, field):
        with pytest.raises(ValidationError):
            PerformanceConfig(**{field: 0})


class TestWeatherBand:
    """Test ideal weather band definitions."""

    def test_default_bands(self):
        bands = BandsConfig()

        assert [band.name for band in bands.bands] == ["ideal_268_299", "ideal_226_299"]
        assert bands.get("ideal_268_299").humidity_min == 48.0
        assert bands.get("ideal_226_299").humidity_max == 60.0

    def test_unknown_band(self):
        with pytest.raises(KeyError, match="Unknown weather band"):
            BandsConfig().get("balmy")

    def test_inverted_temperature_range_rejected(self):
        with pytest.raises(ValidationError, match="temperature_min"):
            WeatherBand(
                name="bad",
                temperature_min=300,
                temperature_max=280,
                humidity_min=40,
                humidity_max=60,
            )

    def test_inverted_humidity_range_rejected(self):
        with pytest.raises(ValidationError, match="humidity_min"):
            WeatherBand(
                name="bad",
                temperature_min=280,
                temperature_max=300,
                humidity_min=70,
                humidity_max=60,
            )

    def test_humidity_outside_percentage_rejected(self):
        with pytest.raises(ValidationError):
            WeatherBand(
                name="bad",
                temperature_min=280,
                temperature_max=300,
                humidity_min=0,
                humidity_max=120,
            )

    def test_implausibly_cold_lower_bound_warns(self, caplog):
        """Test that a 226 K lower bound (-47 C) is flagged but accepted."""
        with caplog.at_level(logging.WARNING, logger="retail_weather.config.models"):
            band = WeatherBand(
                name="cold",
                temperature_min=226,
                temperature_max=299,
                humidity_min=50,
                humidity_max=60,
            )

        assert band.temperature_min == 226
        assert any("check the band's unit" in r.message for r in caplog.records)

    def test_celsius_band_has_no_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="retail_weather.config.models"):
            WeatherBand(
                name="mild",
                temperature_min=-5,
                temperature_max=26,
                humidity_min=48,
                humidity_max=86,
                unit="C",
            )

        assert caplog.records == []

    def test_duplicate_band_names_rejected(self):
        band = {
            "name": "same",
            "temperature_min": 268,
            "temperature_max": 299,
            "humidity_min": 48,
            "humidity_max": 86,
        }

        with pytest.raises(ValidationError, match="unique"):
            BandsConfig(bands=[band, band])


class TestRetailWeatherConfig:
    """Test the top-level configuration model and file handling."""

    def test_log_level_normalised(self):
        assert RetailWeatherConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError, match="Invalid log level"):
            RetailWeatherConfig(log_level="CHATTY")

    def test_file_round_trip(self, tmp_path):
        config = RetailWeatherConfig(
            reconciliation={"strict_geo": True, "fallback_order": ["STATE", "GLOBAL"]},
            performance={"max_workers": 2, "chunk_size": 10},
            paths={"sales": "orders.csv"},
        )
        path = tmp_path / "nested" / "retail_weather.json"

        config.to_file(path)
        loaded = RetailWeatherConfig.from_file(path)

        assert loaded == config

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RetailWeatherConfig.from_file(tmp_path / "absent.json")

    def test_from_file_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ValueError, match="Invalid JSON"):
            RetailWeatherConfig.from_file(path)

    def test_from_file_schema_violation(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"reconciliation": {"fallback_order": ["GLOBAL", "STATE"]}}))

        with pytest.raises(ValidationError):
            RetailWeatherConfig.from_file(path)


class TestConfigLoading:
    """Test config file discovery and fallback."""

    def test_load_config_from_directory(self, tmp_path):
        RetailWeatherConfig(log_level="WARNING").to_file(tmp_path / "retail_weather.json")

        assert load_config(tmp_path).log_level == "WARNING"

    def test_load_config_searches_config_subdirectory(self, tmp_path, monkeypatch):
        RetailWeatherConfig(log_level="ERROR").to_file(tmp_path / "config" / "retail_weather.json")
        monkeypatch.chdir(tmp_path)

        assert load_config().log_level == "ERROR"

    def test_load_config_not_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(FileNotFoundError, match="not found"):
            load_config()

    def test_fallback_to_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("RETAIL_WEATHER_CONFIG_FILE", raising=False)

        assert load_config_with_fallback() == RetailWeatherConfig()

    def test_fallback_uses_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.json"
        RetailWeatherConfig(log_level="DEBUG").to_file(path)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("RETAIL_WEATHER_CONFIG_FILE", str(path))

        assert load_config_with_fallback().log_level == "DEBUG"

    def test_explicit_path_errors_propagate(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_with_fallback(tmp_path / "missing.json")

    def test_create_default_config(self, tmp_path):
        path = tmp_path / "retail_weather.json"

        config = create_default_config(path)

        assert path.exists()
        assert config.paths.sales == "data/orders.csv"
        assert RetailWeatherConfig.from_file(path) == config
