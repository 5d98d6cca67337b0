"""
Per-city daily weather facts with date-scoped geographic aggregates.

The raw weather arrives as one source per attribute (temperature, humidity,
description). ``merge_observations`` folds those into one ``WeatherFact`` per
(date, city); ``WeatherFactStore`` indexes the facts once and then serves
point lookups and state/region/global aggregates without further mutation,
so it can be shared by any number of reconciliation workers.
"""

import datetime as dt
import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from ..shared.exceptions import DuplicateWeatherFactError
from ..shared.models import WeatherAttribute, WeatherFact, WeatherObservation
from .geo_hierarchy import GeoHierarchy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeatherAggregate:
    """Weather summarised over every fact of one date and geographic scope.

    Numeric fields are means over the facts carrying that field;
    ``condition`` is a representative value, never an average.
    """

    temperature: float | None = None
    humidity: float | None = None
    condition: str | None = None
    temperature_samples: int = 0
    humidity_samples: int = 0

    def value_for(self, attribute: WeatherAttribute) -> float | str | None:
        return getattr(self, attribute.value)

    @property
    def is_empty(self) -> bool:
        return self.temperature is None and self.humidity is None and self.condition is None


EMPTY_AGGREGATE = WeatherAggregate()


def mean_ignoring_missing(values: Iterable[float | None]) -> tuple[float | None, int]:
    """Arithmetic mean of the present values and how many there were.

    Absent values are skipped, not treated as zero, so a scope where only two
    of five cities report humidity averages over those two.
    """
    present = [v for v in values if v is not None]
    if not present:
        return None, 0
    return math.fsum(present) / len(present), len(present)


def aggregate_facts(facts: Sequence[WeatherFact]) -> WeatherAggregate:
    """Summarise facts that are already sorted by city.

    The condition representative is taken from the lowest city name that
    reports one.
    """
    if not facts:
        return EMPTY_AGGREGATE

    temperature, temperature_samples = mean_ignoring_missing(f.temperature for f in facts)
    humidity, humidity_samples = mean_ignoring_missing(f.humidity for f in facts)
    condition = next((f.condition for f in facts if f.condition is not None), None)

    return WeatherAggregate(
        temperature=temperature,
        humidity=humidity,
        condition=condition,
        temperature_samples=temperature_samples,
        humidity_samples=humidity_samples,
    )


def merge_observations(observations: Iterable[WeatherObservation]) -> list[WeatherFact]:
    """
    Fold single-attribute observations into one fact per (date, city).

    A (date, city) reported by any source yields a fact; attributes whose
    source has no row for it stay absent.

    Raises:
        DuplicateWeatherFactError: If a source reports the same (date, city) twice
    """
    merged: dict[tuple[dt.date, str], dict[str, Any]] = {}
    for obs in observations:
        fields = merged.setdefault((obs.date, obs.city), {})
        if obs.attribute.value in fields:
            raise DuplicateWeatherFactError(obs.date, obs.city, obs.attribute.value)
        fields[obs.attribute.value] = obs.value

    return [
        WeatherFact(date=fact_date, city=city, **fields)
        for (fact_date, city), fields in sorted(merged.items())
    ]


class WeatherFactStore:
    """Immutable weather lookup keyed by (date, city).

    Attributes:
        unplaced_cities: Weather cities unknown to the geo hierarchy. Their
            facts count towards the global aggregate only.
    """

    def __init__(self, facts: Iterable[WeatherFact], geo: GeoHierarchy):
        """
        Index facts for point lookups and scoped aggregation.

        Args:
            facts: Merged weather facts
            geo: Hierarchy used to place weather cities into states and regions

        Raises:
            DuplicateWeatherFactError: If two facts share a (date, city) key
        """
        self._facts: dict[tuple[dt.date, str], WeatherFact] = {}
        for fact in facts:
            if fact.key in self._facts:
                raise DuplicateWeatherFactError(fact.date, fact.city)
            self._facts[fact.key] = fact

        by_date: dict[dt.date, list[WeatherFact]] = defaultdict(list)
        by_state: dict[tuple[dt.date, str], list[WeatherFact]] = defaultdict(list)
        by_region: dict[tuple[dt.date, str], list[WeatherFact]] = defaultdict(list)
        unplaced: set[str] = set()

        # Sorted keys keep every scope ordered by city within its date
        for key in sorted(self._facts):
            fact = self._facts[key]
            by_date[fact.date].append(fact)
            placements = geo.placements(fact.city)
            if not placements:
                unplaced.add(fact.city)
                continue
            # A city shared by several states counts once in each of them
            for state in {entry.state for entry in placements}:
                by_state[(fact.date, state)].append(fact)
            for region in {entry.region for entry in placements}:
                by_region[(fact.date, region)].append(fact)

        self._by_date = {k: tuple(v) for k, v in by_date.items()}
        self._by_state = {k: tuple(v) for k, v in by_state.items()}
        self._by_region = {k: tuple(v) for k, v in by_region.items()}
        self.unplaced_cities = frozenset(unplaced)

        if unplaced:
            logger.info(
                f"{len(unplaced)} weather cities are not in the sales geography "
                "and only contribute to global averages"
            )
        logger.debug(
            f"Weather store built: {len(self._facts)} facts over {len(self._by_date)} dates"
        )

    @classmethod
    def from_observations(
        cls, observations: Iterable[WeatherObservation], geo: GeoHierarchy
    ) -> "WeatherFactStore":
        return cls(merge_observations(observations), geo)

    def lookup(self, fact_date: dt.date, city: str) -> WeatherFact | None:
        """Point lookup; a miss is a normal outcome and returns None."""
        return self._facts.get((fact_date, city))

    def average_by_state(self, fact_date: dt.date, state: str) -> WeatherAggregate:
        return aggregate_facts(self._by_state.get((fact_date, state), ()))

    def average_by_region(self, fact_date: dt.date, region: str) -> WeatherAggregate:
        return aggregate_facts(self._by_region.get((fact_date, region), ()))

    def average_global(self, fact_date: dt.date) -> WeatherAggregate:
        return aggregate_facts(self._by_date.get(fact_date, ()))

    def has_date(self, fact_date: dt.date) -> bool:
        return fact_date in self._by_date

    def dates(self) -> list[dt.date]:
        return sorted(self._by_date)

    def __contains__(self, key: object) -> bool:
        return key in self._facts

    def __len__(self) -> int:
        return len(self._facts)
