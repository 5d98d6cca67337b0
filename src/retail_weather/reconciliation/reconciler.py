"""
Weather-to-sales reconciliation.

Each sales record gets temperature, humidity and condition resolved
independently through an ordered fallback:

1. EXACT       weather fact for (order_date, city)
2. STATE_AVG   mean (or representative condition) over the record's state
3. REGION_AVG  same, over the record's region
4. GLOBAL_AVG  same, over every city reporting on that date
5. MISSING     nothing reported for that date anywhere

Tiers after EXACT are only evaluated while some attribute is still
unresolved, and the configured ``fallback_order`` may drop any of them.
The reconciler only reads the store and hierarchy, so one instance can be
shared across worker threads.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..config.models import FallbackTier, ReconciliationConfig
from ..shared.exceptions import UnknownCityError
from ..shared.models import (
    EnrichedRecord,
    ResolutionTier,
    SalesRecord,
    WeatherAttribute,
)
from .geo_hierarchy import GeoHierarchy
from .weather_store import WeatherAggregate, WeatherFactStore

logger = logging.getLogger(__name__)

_TIER_LABELS = {
    FallbackTier.STATE: ResolutionTier.STATE_AVG,
    FallbackTier.REGION: ResolutionTier.REGION_AVG,
    FallbackTier.GLOBAL: ResolutionTier.GLOBAL_AVG,
}

_ATTRIBUTE_COUNT = len(WeatherAttribute)

Resolution = dict[WeatherAttribute, tuple[float | str, ResolutionTier]]


@dataclass(frozen=True)
class ReconcileOutcome:
    """Enriched record plus whether its city was unknown to the hierarchy."""

    record: EnrichedRecord
    geo_error: bool = False


class Reconciler:
    """Attaches best-available weather context to sales records."""

    def __init__(
        self,
        store: WeatherFactStore,
        geo: GeoHierarchy,
        config: ReconciliationConfig | None = None,
    ):
        self.store = store
        self.geo = geo
        self.config = config or ReconciliationConfig()

    def reconcile(self, record: SalesRecord) -> ReconcileOutcome:
        """
        Resolve the three weather attributes for one record.

        Raises:
            UnknownCityError: Only in strict mode, when a state or region
                tier is needed and the record's city is not in the hierarchy
        """
        resolved: Resolution = {}

        exact = self.store.lookup(record.order_date, record.city)
        if exact is not None:
            self._take(exact.value_for, ResolutionTier.EXACT, resolved)

        geo_error = False
        # A date nobody reported on is plain missing data, not a geo failure
        if len(resolved) < _ATTRIBUTE_COUNT and self.store.has_date(record.order_date):
            geo_error = self._resolve_fallbacks(record, resolved)

        return ReconcileOutcome(record=self._enrich(record, resolved), geo_error=geo_error)

    def reconcile_all(self, records: Iterable[SalesRecord]) -> list[ReconcileOutcome]:
        return [self.reconcile(record) for record in records]

    def _resolve_fallbacks(self, record: SalesRecord, resolved: Resolution) -> bool:
        """Walk the configured tiers; returns True if the city was unknown."""
        geo_checked = False

        for tier in self.config.fallback_order:
            if len(resolved) == _ATTRIBUTE_COUNT:
                break

            if tier is not FallbackTier.GLOBAL and not geo_checked:
                try:
                    self.geo.resolve(record.city)
                except UnknownCityError:
                    if self.config.strict_geo:
                        raise
                    logger.debug(
                        f"Row {record.row_id}: city '{record.city}' unknown, "
                        f"{_ATTRIBUTE_COUNT - len(resolved)} attribute(s) left MISSING"
                    )
                    return True
                geo_checked = True

            aggregate = self._aggregate(tier, record)
            self._take(aggregate.value_for, _TIER_LABELS[tier], resolved)

        return False

    def _aggregate(self, tier: FallbackTier, record: SalesRecord) -> WeatherAggregate:
        if tier is FallbackTier.STATE:
            return self.store.average_by_state(record.order_date, record.state)
        if tier is FallbackTier.REGION:
            return self.store.average_by_region(record.order_date, record.region)
        return self.store.average_global(record.order_date)

    @staticmethod
    def _take(source, tier: ResolutionTier, resolved: Resolution) -> None:
        for attribute in WeatherAttribute:
            if attribute in resolved:
                continue
            value = source(attribute)
            if value is not None:
                resolved[attribute] = (value, tier)

    @staticmethod
    def _enrich(record: SalesRecord, resolved: Resolution) -> EnrichedRecord:
        data = {name: getattr(record, name) for name in SalesRecord.model_fields}
        for attribute in WeatherAttribute:
            value, tier = resolved.get(attribute, (None, ResolutionTier.MISSING))
            data[attribute.value] = value
            data[f"{attribute.value}_tier"] = tier
        return EnrichedRecord(**data)
