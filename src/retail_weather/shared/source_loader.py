"""
CSV ingestion for the orders export and the per-attribute weather sources.

Rows are returned as plain dicts with snake_case keys and blank cells mapped
to None; validation (and tallying of rejected rows) happens in the pipeline.
"""

import logging
import re
from pathlib import Path
from typing import Any

import pandas as pd

from ..config.models import PathsConfig
from .exceptions import SourceLoadError
from .models import WeatherAttribute

logger = logging.getLogger(__name__)

SALES_REQUIRED_COLUMNS = {
    "row_id",
    "order_id",
    "order_date",
    "city",
    "state",
    "region",
    "product_id",
    "sales",
    "quantity",
    "profit",
}

# Accepted value column names per weather source
WEATHER_VALUE_COLUMNS = {
    WeatherAttribute.TEMPERATURE: ("temperature",),
    WeatherAttribute.HUMIDITY: ("humidity",),
    WeatherAttribute.CONDITION: ("condition", "description", "weather_description"),
}


def normalize_column(name: str) -> str:
    """'Row ID' -> 'row_id', 'Sub-Category' -> 'sub_category'."""
    return re.sub(r"[^0-9a-z]+", "_", str(name).strip().lower()).strip("_")


def _read_csv(path: str | Path, encoding: str) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise SourceLoadError("File not found", path)

    try:
        # Keep every cell as text; typed parsing belongs to the record models
        df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding=encoding)
    except pd.errors.EmptyDataError as e:
        raise SourceLoadError("File is empty", path, e)
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise SourceLoadError("CSV parsing failed", path, e)

    df.columns = [normalize_column(c) for c in df.columns]
    return df


def _to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    rows = df.to_dict("records")
    # Short rows are padded with NaN even with keep_default_na=False
    return [
        {
            key: (value if isinstance(value, str) and value.strip() else None)
            for key, value in row.items()
        }
        for row in rows
    ]


def load_sales_rows(path: str | Path, encoding: str = "utf-8") -> list[dict[str, Any]]:
    """
    Load the orders export.

    Raises:
        SourceLoadError: If the file is missing, unreadable, or lacks required columns
    """
    df = _read_csv(path, encoding)

    missing = SALES_REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise SourceLoadError(f"Missing required columns: {sorted(missing)}", Path(path))

    rows = _to_rows(df)
    logger.info(f"Loaded {len(rows)} sales rows from {path}")
    return rows


def load_weather_rows(
    path: str | Path, attribute: WeatherAttribute, encoding: str = "utf-8"
) -> list[dict[str, Any]]:
    """
    Load one long-format weather source (date, city, <value>).

    Returns:
        Rows with ``date``, ``city``, ``attribute`` and ``value`` keys

    Raises:
        SourceLoadError: If the file is missing, unreadable, or lacks required columns
    """
    df = _read_csv(path, encoding)

    value_column = next(
        (c for c in WEATHER_VALUE_COLUMNS[attribute] if c in df.columns), None
    )
    missing = {"date", "city"} - set(df.columns)
    if value_column is None:
        missing.add(WEATHER_VALUE_COLUMNS[attribute][0])
    if missing:
        raise SourceLoadError(f"Missing required columns: {sorted(missing)}", Path(path))

    rows = [
        {
            "date": row.get("date"),
            "city": row.get("city"),
            "attribute": attribute,
            "value": row.get(value_column),
        }
        for row in _to_rows(df)
    ]
    logger.info(f"Loaded {len(rows)} {attribute.value} observations from {path}")
    return rows


def load_weather_sources(paths: PathsConfig, encoding: str = "utf-8") -> list[dict[str, Any]]:
    """Load every configured weather source into one observation row list."""
    sources = {
        WeatherAttribute.TEMPERATURE: paths.temperature,
        WeatherAttribute.HUMIDITY: paths.humidity,
        WeatherAttribute.CONDITION: paths.description,
    }

    rows: list[dict[str, Any]] = []
    for attribute, path in sources.items():
        if path is None:
            logger.warning(f"No {attribute.value} source configured")
            continue
        rows.extend(load_weather_rows(path, attribute, encoding))
    return rows
