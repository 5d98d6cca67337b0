"""
End-to-end reconciliation run.

A run has two phases. The build phase validates the inputs and constructs
the GeoHierarchy and WeatherFactStore; nothing is reconciled until both are
complete. The map phase then reconciles sales records in chunks on a thread
pool, reading those two snapshots without locks, and reassembles the output
in input order. A coverage audit over the materialised output closes the run.

Per-row problems (malformed dates, invalid rows, unknown cities outside
strict mode) are tallied and the run continues; duplicate weather facts and
strict-mode geo misses abort it.
"""

import logging
import time
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from typing import Any

from pydantic import ValidationError

from ..config.models import PathsConfig, RetailWeatherConfig
from ..shared.csv_writer import EnrichedRecordWriter
from ..shared.exceptions import MalformedDateError, RetailWeatherError, SourceLoadError
from ..shared.logging_utils import get_structured_logger
from ..shared.metrics import metrics_collector
from ..shared.models import (
    EnrichedRecord,
    SalesRecord,
    WeatherAttribute,
    WeatherFact,
    WeatherObservation,
    parse_record_date,
)
from ..shared.source_loader import load_sales_rows, load_weather_sources
from .bands import BandFilter
from .coverage import CoverageAuditor, CoverageReport
from .geo_hierarchy import GeoHierarchy
from .reconciler import ReconcileOutcome, Reconciler
from .weather_store import WeatherFactStore, merge_observations

logger = logging.getLogger(__name__)

SalesInput = Mapping[str, Any] | SalesRecord
WeatherInput = Mapping[str, Any] | WeatherObservation | WeatherFact


@dataclass
class RejectionTally:
    """Input rows excluded from a run, by reason."""

    sales_malformed_date: int = 0
    sales_invalid: int = 0
    weather_malformed_date: int = 0
    weather_invalid: int = 0

    @property
    def total(self) -> int:
        return sum(self.as_dict().values())

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class ReconciliationResult:
    """Output of one completed run."""

    records: list[EnrichedRecord]
    coverage: CoverageReport
    rejections: RejectionTally = field(default_factory=RejectionTally)
    band_counts: dict[str, int] = field(default_factory=dict)
    geo_errors: int = 0
    duration_seconds: float = 0.0
    correlation_id: str = ""

    def summary(self) -> dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "coverage": self.coverage.summary(),
            "tier_counts": self.coverage.tier_counts,
            "duplicate_row_ids": self.coverage.duplicate_row_ids,
            "rejections": self.rejections.as_dict(),
            "band_counts": self.band_counts,
            "geo_errors": self.geo_errors,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class ReconciliationPipeline:
    """Runs ingestion -> store build -> parallel reconciliation -> coverage audit."""

    def __init__(self, config: RetailWeatherConfig | None = None):
        self.config = config or RetailWeatherConfig()
        self.auditor = CoverageAuditor()
        self.band_filter = BandFilter.from_config(self.config)
        self._slog = get_structured_logger(__name__)

    def run(
        self,
        sales_rows: Iterable[SalesInput],
        weather_rows: Iterable[WeatherInput],
        geo: GeoHierarchy | None = None,
    ) -> ReconciliationResult:
        """
        Reconcile sales rows against weather rows.

        Args:
            sales_rows: Raw order rows or SalesRecords
            weather_rows: Raw observation rows (with an ``attribute`` key),
                raw fact rows, WeatherObservations or WeatherFacts
            geo: Reference hierarchy; derived from the accepted sales
                records when omitted

        Raises:
            DuplicateWeatherFactError: If the weather inputs repeat a (date, city)
            UnknownCityError: In strict mode, on the first unknown city
        """
        start_time = time.time()
        recon_config = self.config.reconciliation

        with self._slog.run_context() as run_id:
            self._slog.info(
                "Reconciliation run started",
                strict_geo=recon_config.strict_geo,
                fallback_order=[tier.value for tier in recon_config.fallback_order],
            )

            try:
                rejections = RejectionTally()
                sales = self._ingest_sales(sales_rows, rejections)
                facts = self._ingest_weather(weather_rows, rejections)

                if geo is None:
                    geo = GeoHierarchy.from_sales_records(sales)
                store = WeatherFactStore(facts, geo)
                reconciler = Reconciler(store, geo, recon_config)

                outcomes = self._reconcile(reconciler, sales)
            except RetailWeatherError as e:
                metrics_collector.record_run("failed")
                self._slog.error(
                    "Reconciliation run aborted",
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise

            records = [outcome.record for outcome in outcomes]
            geo_errors = sum(1 for outcome in outcomes if outcome.geo_error)
            coverage = self.auditor.audit(records)
            band_counts = self.band_filter.counts(records)
            duration = time.time() - start_time

            result = ReconciliationResult(
                records=records,
                coverage=coverage,
                rejections=rejections,
                band_counts=band_counts,
                geo_errors=geo_errors,
                duration_seconds=duration,
                correlation_id=run_id,
            )
            self._publish(result)
            return result

    def select_in_band(
        self, result: ReconciliationResult, band_name: str, exact_only: bool = False
    ) -> list[EnrichedRecord]:
        """Records of a run inside a configured band, read in the configured unit."""
        return self.band_filter.select(result.records, band_name, exact_only)

    def run_from_paths(self, paths: PathsConfig | None = None) -> ReconciliationResult:
        """
        Load the configured CSV sources, run, and write the output CSV if set.

        Raises:
            SourceLoadError: If no sales source is configured or a file fails to load
        """
        paths = paths or self.config.paths
        if not paths.sales:
            raise SourceLoadError("No sales source configured")

        result = self.run(load_sales_rows(paths.sales), load_weather_sources(paths))

        if paths.output:
            with EnrichedRecordWriter(paths.output) as writer:
                writer.write_records(result.records)
            logger.info(f"Wrote {len(result.records)} enriched records to {paths.output}")

        return result

    def _ingest_sales(
        self, rows: Iterable[SalesInput], rejections: RejectionTally
    ) -> list[SalesRecord]:
        records: list[SalesRecord] = []
        for row in rows:
            if isinstance(row, SalesRecord):
                records.append(row)
                continue
            try:
                records.append(SalesRecord.from_row(row))
            except MalformedDateError as e:
                rejections.sales_malformed_date += 1
                logger.debug(f"Rejected sales row: {e}")
            except ValidationError as e:
                rejections.sales_invalid += 1
                logger.debug(
                    f"Rejected sales row {row.get('row_id')}: "
                    f"{e.error_count()} validation error(s)"
                )

        rejected = rejections.sales_malformed_date + rejections.sales_invalid
        if rejected:
            logger.warning(f"Rejected {rejected} sales rows during ingestion")
        return records

    def _ingest_weather(
        self, rows: Iterable[WeatherInput], rejections: RejectionTally
    ) -> list[WeatherFact]:
        observations: list[WeatherObservation] = []
        facts: list[WeatherFact] = []

        for row in rows:
            if isinstance(row, WeatherFact):
                facts.append(row)
                continue
            if isinstance(row, WeatherObservation):
                observations.append(row)
                continue
            try:
                if row.get("attribute") is not None:
                    observations.append(WeatherObservation.from_row(row))
                else:
                    fact_date = parse_record_date(row.get("date"), source="weather")
                    facts.append(WeatherFact.model_validate({**row, "date": fact_date}))
            except MalformedDateError as e:
                rejections.weather_malformed_date += 1
                logger.debug(f"Rejected weather row: {e}")
            except ValidationError as e:
                rejections.weather_invalid += 1
                logger.debug(
                    f"Rejected weather row ({row.get('date')}, {row.get('city')}): "
                    f"{e.error_count()} validation error(s)"
                )

        rejected = rejections.weather_malformed_date + rejections.weather_invalid
        if rejected:
            logger.warning(f"Rejected {rejected} weather rows during ingestion")

        return merge_observations(observations) + facts

    def _reconcile(
        self, reconciler: Reconciler, sales: list[SalesRecord]
    ) -> list[ReconcileOutcome]:
        perf = self.config.performance
        chunks = [
            sales[i : i + perf.chunk_size] for i in range(0, len(sales), perf.chunk_size)
        ]

        if not perf.parallel or perf.max_workers == 1 or len(chunks) <= 1:
            return reconciler.reconcile_all(sales)

        results: list[list[ReconcileOutcome]] = [[] for _ in chunks]
        with ThreadPoolExecutor(max_workers=perf.max_workers) as executor:
            future_to_index = {
                executor.submit(reconciler.reconcile_all, chunk): index
                for index, chunk in enumerate(chunks)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception:
                    for f in future_to_index:
                        f.cancel()
                    raise

        return [outcome for chunk in results for outcome in chunk]

    def _publish(self, result: ReconciliationResult) -> None:
        coverage = result.coverage
        metrics_collector.record_tiers(coverage.tier_counts)
        metrics_collector.record_rejections(result.rejections.as_dict())
        metrics_collector.record_geo_errors(result.geo_errors)
        for attribute in WeatherAttribute:
            metrics_collector.record_coverage(attribute.value, coverage.pct(attribute))
        metrics_collector.record_run("succeeded", result.duration_seconds)

        if result.geo_errors:
            self._slog.warning(
                "Unknown cities demoted attributes to MISSING",
                records=result.geo_errors,
            )
        self._slog.info(
            "Reconciliation run completed",
            **coverage.summary(),
            rejected=result.rejections.total,
            geo_errors=result.geo_errors,
            duration_seconds=round(result.duration_seconds, 3),
        )
