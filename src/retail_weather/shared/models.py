"""
Core data models for the retail weather reconciliation pipeline.

This module contains the input models (sales rows and raw weather
observations), the merged per-city daily weather fact, and the enriched
output record that carries one resolution tier per weather attribute.
"""

import datetime as dt
import math
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .exceptions import MalformedDateError

# Day-first forms used by the raw orders export (STR_TO_DATE(..., '%d/%m/%y'))
_DAY_FIRST_FORMATS = ("%d/%m/%y", "%d/%m/%Y", "%d-%m-%Y")


def parse_record_date(
    value: Any, source: str | None = None, row_id: Any | None = None
) -> dt.date:
    """
    Parse a sales or weather date into a ``date``.

    Accepts ``date``/``datetime`` instances, ISO dates, ISO timestamps
    (the time part is dropped) and the day-first ``DD/MM/YY`` form of the
    raw orders export.

    Raises:
        MalformedDateError: If the value cannot be interpreted as a date
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise MalformedDateError(value, source=source, row_id=row_id)

    text = value.strip()
    try:
        return dt.date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in _DAY_FIRST_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise MalformedDateError(value, source=source, row_id=row_id)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


# ================================
# ENUMERATIONS
# ================================


class WeatherAttribute(str, Enum):
    """Weather attributes resolved independently for every sales record."""

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    CONDITION = "condition"

    @property
    def is_numeric(self) -> bool:
        return self is not WeatherAttribute.CONDITION


class TemperatureUnit(str, Enum):
    """Temperature scales; the raw weather sources are recorded in Kelvin."""

    KELVIN = "K"
    CELSIUS = "C"
    FAHRENHEIT = "F"


def convert_temperature(
    value: float, from_unit: TemperatureUnit, to_unit: TemperatureUnit
) -> float:
    """Convert a temperature between Kelvin, Celsius and Fahrenheit."""
    if from_unit is to_unit:
        return value

    if from_unit is TemperatureUnit.KELVIN:
        celsius = value - 273.15
    elif from_unit is TemperatureUnit.FAHRENHEIT:
        celsius = (value - 32.0) * 5.0 / 9.0
    else:
        celsius = value

    if to_unit is TemperatureUnit.KELVIN:
        return celsius + 273.15
    if to_unit is TemperatureUnit.FAHRENHEIT:
        return celsius * 9.0 / 5.0 + 32.0
    return celsius


class ResolutionTier(str, Enum):
    """Fallback level at which a weather attribute was resolved."""

    EXACT = "EXACT"
    STATE_AVG = "STATE_AVG"
    REGION_AVG = "REGION_AVG"
    GLOBAL_AVG = "GLOBAL_AVG"
    MISSING = "MISSING"


# ================================
# INPUT MODELS
# ================================


class SalesRecord(BaseModel):
    """One order line of the raw orders export.

    ``order_id`` repeats across the lines of a multi-product order; ``row_id``
    is the only per-record unique identifier.
    """

    model_config = ConfigDict(frozen=True)

    row_id: int = Field(..., description="Per-line unique identifier")
    order_id: str = Field(..., min_length=1, description="Order identifier (not unique)")
    order_date: dt.date = Field(..., description="Order date")
    city: str = Field(..., min_length=1, description="Customer city")
    state: str = Field(..., min_length=1, description="Customer state")
    region: str = Field(..., min_length=1, description="Sales region")
    product_id: str = Field(..., min_length=1, description="Product identifier")
    sales: Decimal = Field(..., description="Sales amount")
    quantity: int = Field(..., gt=0, description="Units sold")
    profit: Decimal = Field(..., description="Profit amount")

    ship_date: dt.date | None = Field(None, description="Ship date")
    ship_mode: str | None = None
    customer_id: str | None = None
    customer_name: str | None = None
    segment: str | None = None
    country: str | None = None
    postal_code: str | None = None
    category: str | None = None
    sub_category: str | None = None
    product_name: str | None = None
    discount: Decimal | None = Field(None, ge=0, le=1, description="Discount ratio (0-1)")

    @field_validator("order_date", mode="before")
    @classmethod
    def parse_order_date(cls, v: Any) -> dt.date:
        """Parse ISO or day-first order dates."""
        return parse_record_date(v, source="sales")

    @field_validator("ship_date", mode="before")
    @classmethod
    def parse_ship_date(cls, v: Any) -> dt.date | None:
        """Ship date is optional; blanks become None."""
        if _is_blank(v):
            return None
        return parse_record_date(v, source="sales")

    @field_validator("order_id", "product_id", "city", "state", "region", mode="before")
    @classmethod
    def coerce_key_text(cls, v: Any) -> Any:
        """Strip key columns and accept numeric identifiers."""
        if v is None:
            return v
        return str(v).strip()

    @field_validator(
        "ship_mode",
        "customer_id",
        "customer_name",
        "segment",
        "country",
        "postal_code",
        "category",
        "sub_category",
        "product_name",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        """Treat empty strings as None for optional descriptive columns."""
        if _is_blank(v):
            return None
        return str(v).strip()

    @field_validator("discount", mode="before")
    @classmethod
    def blank_discount(cls, v: Any) -> Any:
        return None if _is_blank(v) else v

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SalesRecord":
        """
        Build a record from a raw ingestion row.

        Raises:
            MalformedDateError: If ``order_date`` or a non-blank ``ship_date``
                cannot be parsed
            pydantic.ValidationError: If any other column is invalid
        """
        row_id = row.get("row_id")
        dates = {
            "order_date": parse_record_date(row.get("order_date"), source="sales", row_id=row_id)
        }
        if not _is_blank(row.get("ship_date")):
            dates["ship_date"] = parse_record_date(row["ship_date"], source="sales", row_id=row_id)
        return cls.model_validate({**row, **dates})


class WeatherObservation(BaseModel):
    """A single-attribute weather reading from one of the per-attribute sources."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    city: str = Field(..., min_length=1)
    attribute: WeatherAttribute
    value: float | str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> dt.date:
        return parse_record_date(v, source="weather")

    @field_validator("city", mode="before")
    @classmethod
    def strip_city(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value_type(cls, v: Any, info: ValidationInfo) -> Any:
        """Numeric attributes carry floats, the condition carries text."""
        if _is_blank(v):
            return None
        attribute = info.data.get("attribute")
        if attribute is None:
            # attribute failed validation; its own error is reported
            return v
        if attribute.is_numeric:
            number = float(v)
            return None if math.isnan(number) else number
        return str(v).strip()

    @classmethod
    def from_row(
        cls, row: Mapping[str, Any], attribute: WeatherAttribute | None = None
    ) -> "WeatherObservation":
        """
        Build an observation from a raw ingestion row.

        Raises:
            MalformedDateError: If ``date`` cannot be parsed
        """
        obs_date = parse_record_date(row.get("date"), source="weather")
        data = {**row, "date": obs_date}
        if attribute is not None:
            data["attribute"] = attribute
        return cls.model_validate(data)


class WeatherFact(BaseModel):
    """Merged weather for one (date, city); every field may be absent on its own."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    city: str = Field(..., min_length=1)
    temperature: float | None = None
    humidity: float | None = None
    condition: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> dt.date:
        return parse_record_date(v, source="weather")

    @field_validator("temperature", "humidity", "condition", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if _is_blank(v):
            return None
        return v.strip() if isinstance(v, str) else v

    @property
    def key(self) -> tuple[dt.date, str]:
        return (self.date, self.city)

    def value_for(self, attribute: WeatherAttribute) -> float | str | None:
        return getattr(self, attribute.value)


# ================================
# OUTPUT MODEL
# ================================


class EnrichedRecord(SalesRecord):
    """Sales record with best-effort weather context attached."""

    temperature: float | None = None
    humidity: float | None = None
    condition: str | None = None
    temperature_tier: ResolutionTier = ResolutionTier.MISSING
    humidity_tier: ResolutionTier = ResolutionTier.MISSING
    condition_tier: ResolutionTier = ResolutionTier.MISSING

    @model_validator(mode="after")
    def validate_tier_consistency(self) -> "EnrichedRecord":
        """A value is present exactly when its tier is not MISSING."""
        for attribute in WeatherAttribute:
            value = getattr(self, attribute.value)
            tier = getattr(self, f"{attribute.value}_tier")
            if (value is None) != (tier is ResolutionTier.MISSING):
                raise ValueError(
                    f"{attribute.value} value {value!r} inconsistent with tier {tier.value}"
                )
        return self

    @property
    def resolution_tiers(self) -> dict[WeatherAttribute, ResolutionTier]:
        return {
            attribute: getattr(self, f"{attribute.value}_tier")
            for attribute in WeatherAttribute
        }

    def to_row(self) -> dict[str, Any]:
        """Flat, JSON-compatible representation for sinks."""
        return self.model_dump(mode="json")
