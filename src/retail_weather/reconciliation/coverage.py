"""
Post-reconciliation completeness statistics.

The auditor is a pure function of the enriched records it is given: every
call recomputes the report from scratch.
"""

from collections import Counter
from collections.abc import Sequence

from pydantic import BaseModel, Field, computed_field

from ..shared.models import EnrichedRecord, ResolutionTier, WeatherAttribute


def _pct(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return 100.0 * part / total


class CoverageReport(BaseModel):
    """Per-attribute coverage of a reconciled record stream."""

    total_records: int = Field(default=0, ge=0)
    temp_covered: int = Field(default=0, ge=0)
    humidity_covered: int = Field(default=0, ge=0)
    condition_covered: int = Field(default=0, ge=0)
    tier_counts: dict[str, dict[str, int]] = Field(
        default_factory=dict, description="attribute -> tier -> record count"
    )
    duplicate_row_ids: list[int] = Field(
        default_factory=list, description="row_id values seen more than once"
    )

    @computed_field
    @property
    def temp_pct(self) -> float:
        return _pct(self.temp_covered, self.total_records)

    @computed_field
    @property
    def humidity_pct(self) -> float:
        return _pct(self.humidity_covered, self.total_records)

    @computed_field
    @property
    def condition_pct(self) -> float:
        return _pct(self.condition_covered, self.total_records)

    def covered(self, attribute: WeatherAttribute) -> int:
        return {
            WeatherAttribute.TEMPERATURE: self.temp_covered,
            WeatherAttribute.HUMIDITY: self.humidity_covered,
            WeatherAttribute.CONDITION: self.condition_covered,
        }[attribute]

    def pct(self, attribute: WeatherAttribute) -> float:
        return _pct(self.covered(attribute), self.total_records)

    def summary(self) -> dict[str, float | int]:
        return {
            "total_records": self.total_records,
            "temp_pct": self.temp_pct,
            "humidity_pct": self.humidity_pct,
            "condition_pct": self.condition_pct,
        }


class CoverageAuditor:
    """Computes a CoverageReport over already-materialised enriched records."""

    def audit(self, records: Sequence[EnrichedRecord]) -> CoverageReport:
        tier_counts = {
            attribute.value: {tier.value: 0 for tier in ResolutionTier}
            for attribute in WeatherAttribute
        }
        row_ids: Counter[int] = Counter()

        for record in records:
            row_ids[record.row_id] += 1
            for attribute, tier in record.resolution_tiers.items():
                tier_counts[attribute.value][tier.value] += 1

        def covered(attribute: WeatherAttribute) -> int:
            counts = tier_counts[attribute.value]
            return sum(counts.values()) - counts[ResolutionTier.MISSING.value]

        return CoverageReport(
            total_records=len(records),
            temp_covered=covered(WeatherAttribute.TEMPERATURE),
            humidity_covered=covered(WeatherAttribute.HUMIDITY),
            condition_covered=covered(WeatherAttribute.CONDITION),
            tier_counts=tier_counts,
            duplicate_row_ids=sorted(row_id for row_id, n in row_ids.items() if n > 1),
        )
