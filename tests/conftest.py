"""
Pytest configuration and fixtures for retail weather tests.

Provides sample sales rows, weather facts and factories for building
reconcilers over small hand-checked datasets.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure src/ is on sys.path for local test runs without installation
_SRC = Path(__file__).resolve().parents[1] / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from retail_weather.config.models import ReconciliationConfig  # noqa: E402
from retail_weather.reconciliation.geo_hierarchy import GeoHierarchy  # noqa: E402
from retail_weather.reconciliation.reconciler import Reconciler  # noqa: E402
from retail_weather.reconciliation.weather_store import WeatherFactStore  # noqa: E402
from retail_weather.shared.models import SalesRecord, WeatherFact  # noqa: E402

MARCH_1 = date(2014, 3, 1)
MARCH_2 = date(2014, 3, 2)


@pytest.fixture
def make_sale():
    """Factory for SalesRecords with sensible defaults."""

    def _make(
        row_id: int,
        city: str = "Seattle",
        state: str = "WA",
        region: str = "West",
        order_date: date | str = MARCH_1,
        **overrides,
    ) -> SalesRecord:
        data = {
            "row_id": row_id,
            "order_id": f"CA-2014-{100000 + row_id}",
            "order_date": order_date,
            "city": city,
            "state": state,
            "region": region,
            "product_id": f"OFF-PA-{10000 + row_id}",
            "sales": "19.99",
            "quantity": 2,
            "profit": "4.50",
        }
        data.update(overrides)
        return SalesRecord(**data)

    return _make


@pytest.fixture
def reference_sales(make_sale) -> list[SalesRecord]:
    """Sales population that defines the geo hierarchy used in most tests."""
    return [
        make_sale(1, "Seattle", "WA", "West"),
        make_sale(2, "Tacoma", "WA", "West"),
        make_sale(3, "Spokane", "WA", "West"),
        make_sale(4, "Portland", "OR", "West"),
        make_sale(5, "Los Angeles", "CA", "West"),
        make_sale(6, "New York City", "NY", "East"),
        make_sale(7, "Buffalo", "NY", "East"),
    ]


@pytest.fixture
def geo(reference_sales) -> GeoHierarchy:
    return GeoHierarchy.from_sales_records(reference_sales)


@pytest.fixture
def build_reconciler(geo):
    """Factory: reconciler over the given facts with optional config overrides."""

    def _build(
        facts: list[WeatherFact], hierarchy: GeoHierarchy | None = None, **config
    ) -> Reconciler:
        hierarchy = hierarchy or geo
        store = WeatherFactStore(facts, hierarchy)
        return Reconciler(store, hierarchy, ReconciliationConfig(**config))

    return _build


@pytest.fixture
def sample_sales_rows() -> list[dict]:
    """Raw order rows as produced by the CSV loader (day-first dates, text cells)."""
    return [
        {
            "row_id": "1",
            "order_id": "CA-2014-152156",
            "order_date": "01/03/14",
            "ship_date": "04/03/14",
            "ship_mode": "Second Class",
            "customer_id": "CG-12520",
            "customer_name": "Claire Gute",
            "segment": "Consumer",
            "country": "United States",
            "city": "Seattle",
            "state": "WA",
            "postal_code": "98103",
            "region": "West",
            "product_id": "FUR-BO-10001798",
            "category": "Furniture",
            "sub_category": "Bookcases",
            "product_name": "Bush Somerset Collection Bookcase",
            "sales": "261.96",
            "quantity": "2",
            "discount": "0",
            "profit": "41.9136",
        },
        {
            "row_id": "2",
            "order_id": "CA-2014-152156",
            "order_date": "01/03/14",
            "city": "Seattle",
            "state": "WA",
            "region": "West",
            "product_id": "FUR-CH-10000454",
            "category": "Furniture",
            "sub_category": "Chairs",
            "sales": "731.94",
            "quantity": "3",
            "discount": None,
            "profit": "219.582",
        },
        {
            "row_id": "3",
            "order_id": "US-2014-108966",
            "order_date": "02/03/14",
            "city": "Portland",
            "state": "OR",
            "region": "West",
            "product_id": "OFF-LA-10000240",
            "sales": "14.62",
            "quantity": "2",
            "profit": "6.8714",
        },
        {
            "row_id": "4",
            "order_id": "CA-2014-138688",
            "order_date": "01/03/14",
            "city": "New York City",
            "state": "NY",
            "region": "East",
            "product_id": "TEC-PH-10002275",
            "sales": "957.5775",
            "quantity": "5",
            "profit": "-383.031",
        },
    ]


@pytest.fixture
def sample_weather_rows() -> list[dict]:
    """Per-attribute observation rows; Seattle has no humidity on March 1."""
    return [
        {"date": "2014-03-01", "city": "Seattle", "attribute": "temperature", "value": "281.5"},
        {"date": "2014-03-01", "city": "Seattle", "attribute": "condition", "value": "light rain"},
        {"date": "2014-03-01", "city": "Tacoma", "attribute": "humidity", "value": "81"},
        {"date": "2014-03-01", "city": "New York City", "attribute": "temperature", "value": "270.2"},
        {"date": "2014-03-01", "city": "New York City", "attribute": "humidity", "value": "55"},
        {"date": "2014-03-01", "city": "New York City", "attribute": "condition", "value": "snow"},
        {"date": "2014-03-02", "city": "Los Angeles", "attribute": "temperature", "value": "292.0"},
        {"date": "2014-03-02", "city": "Los Angeles", "attribute": "humidity", "value": "40"},
    ]
