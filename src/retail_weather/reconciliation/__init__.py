"""Weather-to-sales reconciliation: stores, fallback resolution and auditing."""

from .bands import BandFilter
from .coverage import CoverageAuditor, CoverageReport
from .geo_hierarchy import GeoEntry, GeoHierarchy
from .pipeline import ReconciliationPipeline, ReconciliationResult, RejectionTally
from .reconciler import ReconcileOutcome, Reconciler
from .weather_store import WeatherAggregate, WeatherFactStore, merge_observations

__all__ = [
    "BandFilter",
    "CoverageAuditor",
    "CoverageReport",
    "GeoEntry",
    "GeoHierarchy",
    "ReconcileOutcome",
    "Reconciler",
    "ReconciliationPipeline",
    "ReconciliationResult",
    "RejectionTally",
    "WeatherAggregate",
    "WeatherFactStore",
    "merge_observations",
]
