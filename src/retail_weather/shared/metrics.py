"""Prometheus metrics for reconciliation runs."""
from prometheus_client import REGISTRY, Counter, Gauge, Histogram


def _find_metric(name: str):
    # Counters register without their "_total" suffix
    names = {name, name.removesuffix("_total")}
    for collector in list(REGISTRY._collector_to_names.keys()):
        if getattr(collector, "_name", None) in names:
            return collector
    return None


def _get_or_create_metric(metric_class, name: str, doc: str, labelnames=None, **kwargs):
    """Get existing metric or create new one to avoid duplication errors on re-import."""
    existing = _find_metric(name)
    if existing is not None:
        return existing
    try:
        if labelnames is not None:
            kwargs["labelnames"] = labelnames
        return metric_class(name, doc, registry=REGISTRY, **kwargs)
    except ValueError as e:
        if "Duplicated timeseries" in str(e):
            existing = _find_metric(name)
            if existing is not None:
                return existing
        raise


# Record metrics
records_reconciled_total = _get_or_create_metric(
    Counter,
    "reconciliation_attributes_resolved_total",
    "Weather attributes resolved, by attribute and fallback tier",
    ["attribute", "tier"],
)

records_rejected_total = _get_or_create_metric(
    Counter,
    "reconciliation_records_rejected_total",
    "Input rows excluded from reconciliation",
    ["reason"],
)

geo_errors_total = _get_or_create_metric(
    Counter,
    "reconciliation_geo_errors_total",
    "Sales records whose city was unknown to the geographic hierarchy",
)

# Run metrics
runs_total = _get_or_create_metric(
    Counter,
    "reconciliation_runs_total",
    "Reconciliation runs by outcome",
    ["status"],
)

run_duration_seconds = _get_or_create_metric(
    Histogram,
    "reconciliation_run_duration_seconds",
    "Wall time of a reconciliation run",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

coverage_ratio = _get_or_create_metric(
    Gauge,
    "reconciliation_coverage_ratio",
    "Share of records with the attribute populated in the last run (0-1)",
    ["attribute"],
)


class MetricsCollector:
    """Helper class for updating run metrics."""

    def record_tiers(self, tier_counts: dict[str, dict[str, int]]) -> None:
        """Add per-attribute tier counts of a finished run."""
        for attribute, counts in tier_counts.items():
            for tier, count in counts.items():
                if count:
                    records_reconciled_total.labels(attribute=attribute, tier=tier).inc(
                        count
                    )

    def record_rejections(self, reasons: dict[str, int]) -> None:
        for reason, count in reasons.items():
            if count:
                records_rejected_total.labels(reason=reason).inc(count)

    def record_geo_errors(self, count: int) -> None:
        if count:
            geo_errors_total.inc(count)

    def record_coverage(self, attribute: str, pct: float) -> None:
        coverage_ratio.labels(attribute=attribute).set(pct / 100.0)

    def record_run(self, status: str, duration_seconds: float | None = None) -> None:
        runs_total.labels(status=status).inc()
        if duration_seconds is not None:
            run_duration_seconds.observe(duration_seconds)


metrics_collector = MetricsCollector()
