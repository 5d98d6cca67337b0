"""
Custom exceptions for the retail weather reconciliation pipeline.

This module contains the error taxonomy used while ingesting sales and
weather sources, building the lookup stores, and reconciling records.
Per-record errors (unknown cities, malformed dates) are recovered and
tallied by the pipeline; store construction errors are fatal.
"""

from datetime import date
from pathlib import Path
from typing import Any


class RetailWeatherError(Exception):
    """Base exception for all retail weather pipeline errors."""

    pass


class UnknownCityError(RetailWeatherError, LookupError):
    """Exception raised when a city is absent from the geographic hierarchy."""

    def __init__(self, city: str):
        self.city = city
        super().__init__(f"City not present in geographic hierarchy: '{city}'")


class MalformedDateError(RetailWeatherError, ValueError):
    """Exception raised when a sales row or weather observation has an unparseable date."""

    def __init__(
        self,
        value: Any,
        source: str | None = None,
        row_id: Any | None = None,
    ):
        self.value = value
        self.source = source
        self.row_id = row_id

        error_parts = [f"Unparseable date: {value!r}"]

        if source:
            error_parts.append(f"Source: {source}")

        if row_id is not None:
            error_parts.append(f"Row: {row_id}")

        super().__init__(" | ".join(error_parts))


class DuplicateWeatherFactError(RetailWeatherError):
    """Exception raised when two weather facts claim the same (date, city) key."""

    def __init__(self, fact_date: date, city: str, attribute: str | None = None):
        self.fact_date = fact_date
        self.city = city
        self.attribute = attribute

        message = f"Duplicate weather fact for ({fact_date.isoformat()}, '{city}')"
        if attribute:
            message = f"{message} in {attribute} source"

        super().__init__(message)


class SourceLoadError(RetailWeatherError):
    """Exception raised when a sales or weather source file cannot be loaded."""

    def __init__(
        self,
        message: str,
        file_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.file_path = file_path
        self.original_error = original_error

        if file_path:
            message = f"Error loading source file '{file_path}': {message}"

        if original_error:
            message = f"{message} (Original error: {original_error})"

        super().__init__(message)
