"""
City -> state -> region hierarchy derived from the sales dataset.

The hierarchy is only a fallback key for weather imputation: it never owns
weather facts and is never used to validate the weather sources. A city that
appears only in weather data is simply invisible here.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from ..shared.exceptions import UnknownCityError
from ..shared.models import SalesRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoEntry:
    """Geographic placement of a city."""

    city: str
    state: str
    region: str


class GeoHierarchy:
    """Read-only city -> (state, region) mapping.

    Attributes:
        conflicts: Cities observed with more than one (state, region) pair,
            mapped to every pair seen. ``resolve`` returns the lowest pair;
            ``placements`` and the state/region groupings keep them all.
    """

    def __init__(self, entries: Iterable[GeoEntry]):
        candidates: dict[str, set[tuple[str, str]]] = defaultdict(set)
        for entry in entries:
            candidates[entry.city].add((entry.state, entry.region))

        self._placements: dict[str, tuple[GeoEntry, ...]] = {}
        self.conflicts: dict[str, list[tuple[str, str]]] = {}
        for city in sorted(candidates):
            pairs = sorted(candidates[city])
            if len(pairs) > 1:
                self.conflicts[city] = pairs
                logger.warning(
                    f"City '{city}' observed in {len(pairs)} state/region pairs "
                    f"{pairs}; resolving to {pairs[0]}, weather counts towards all of them"
                )
            self._placements[city] = tuple(
                GeoEntry(city=city, state=state, region=region) for state, region in pairs
            )

        self._state_cities: dict[str, tuple[str, ...]] = self._group_by("state")
        self._region_cities: dict[str, tuple[str, ...]] = self._group_by("region")

        logger.debug(
            f"Geo hierarchy built: {len(self._placements)} cities, "
            f"{len(self._state_cities)} states, {len(self._region_cities)} regions"
        )

    @classmethod
    def from_sales_records(cls, records: Iterable[SalesRecord]) -> "GeoHierarchy":
        """Build the hierarchy from the distinct (city, state, region) triples of sales."""
        triples = {(r.city, r.state, r.region) for r in records}
        return cls(GeoEntry(city, state, region) for city, state, region in triples)

    def _group_by(self, attr: str) -> dict[str, tuple[str, ...]]:
        grouped: dict[str, set[str]] = defaultdict(set)
        for city, placements in self._placements.items():
            for entry in placements:
                grouped[getattr(entry, attr)].add(city)
        return {key: tuple(sorted(cities)) for key, cities in grouped.items()}

    def resolve(self, city: str) -> GeoEntry:
        """
        Resolve a city to its state and region.

        Raises:
            UnknownCityError: If the city was never observed in the sales data
        """
        try:
            return self._placements[city][0]
        except KeyError:
            raise UnknownCityError(city) from None

    def get(self, city: str) -> GeoEntry | None:
        placements = self._placements.get(city)
        return placements[0] if placements else None

    def placements(self, city: str) -> tuple[GeoEntry, ...]:
        """Every (state, region) the city was observed in, lowest first; empty if unknown."""
        return self._placements.get(city, ())

    def cities_in_state(self, state: str) -> tuple[str, ...]:
        return self._state_cities.get(state, ())

    def cities_in_region(self, region: str) -> tuple[str, ...]:
        return self._region_cities.get(region, ())

    def __contains__(self, city: object) -> bool:
        return city in self._placements

    def __len__(self) -> int:
        return len(self._placements)
