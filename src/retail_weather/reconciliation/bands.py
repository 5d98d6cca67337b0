"""
Selection of enriched records falling inside named "ideal weather" bands.

Stored temperatures are in the unit configured by
``ReconciliationConfig.temperature_unit``; each band declares its own unit
and record temperatures are converted before comparison. Two different
ideal windows exist in the source analysis (268-299 and 226-299); both are
shipped as separate named bands rather than merged into one.
"""

from collections.abc import Iterable

from ..config.models import BandsConfig, RetailWeatherConfig, WeatherBand
from ..shared.models import (
    EnrichedRecord,
    ResolutionTier,
    TemperatureUnit,
    convert_temperature,
)


def band_contains(
    band: WeatherBand,
    record: EnrichedRecord,
    source_unit: TemperatureUnit = TemperatureUnit.KELVIN,
    exact_only: bool = False,
) -> bool:
    """Whether a record's temperature and humidity both fall inside the band.

    Records missing either value are never inside. With ``exact_only`` the
    imputed (non-EXACT) values are not considered.
    """
    if record.temperature is None or record.humidity is None:
        return False
    if exact_only and (
        record.temperature_tier is not ResolutionTier.EXACT
        or record.humidity_tier is not ResolutionTier.EXACT
    ):
        return False

    temperature = convert_temperature(record.temperature, source_unit, band.unit)
    return (
        band.temperature_min <= temperature <= band.temperature_max
        and band.humidity_min <= record.humidity <= band.humidity_max
    )


def select_in_band(
    records: Iterable[EnrichedRecord],
    band: WeatherBand,
    source_unit: TemperatureUnit = TemperatureUnit.KELVIN,
    exact_only: bool = False,
) -> list[EnrichedRecord]:
    return [r for r in records if band_contains(band, r, source_unit, exact_only)]


def count_by_band(
    records: Iterable[EnrichedRecord],
    bands: Iterable[WeatherBand],
    source_unit: TemperatureUnit = TemperatureUnit.KELVIN,
) -> dict[str, int]:
    """Number of records inside each band; a record may count for several bands."""
    bands = list(bands)
    counts = {band.name: 0 for band in bands}
    for record in records:
        for band in bands:
            if band_contains(band, record, source_unit):
                counts[band.name] += 1
    return counts


class BandFilter:
    """Configured bands bound to the canonical unit of stored temperatures.

    Built from a ``RetailWeatherConfig`` so the band checks always read
    temperatures in ``reconciliation.temperature_unit``.
    """

    def __init__(self, bands: BandsConfig, source_unit: TemperatureUnit):
        self.bands = bands
        self.source_unit = source_unit

    @classmethod
    def from_config(cls, config: RetailWeatherConfig) -> "BandFilter":
        return cls(config.bands, config.reconciliation.temperature_unit)

    def contains(self, band_name: str, record: EnrichedRecord, exact_only: bool = False) -> bool:
        return band_contains(self.bands.get(band_name), record, self.source_unit, exact_only)

    def select(
        self, records: Iterable[EnrichedRecord], band_name: str, exact_only: bool = False
    ) -> list[EnrichedRecord]:
        """
        Records inside the named band.

        Raises:
            KeyError: If no band has that name
        """
        return select_in_band(records, self.bands.get(band_name), self.source_unit, exact_only)

    def counts(self, records: Iterable[EnrichedRecord]) -> dict[str, int]:
        return count_by_band(records, self.bands.bands, self.source_unit)
