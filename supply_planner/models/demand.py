"""
Forecast inputs and aggregated component demand.

``DemandForecast`` and ``SupplierQualityForecast`` are the opaque outputs of
the external forecasting model as they are stored: the series stays a JSON
text blob in the database so malformed rows can be detected and skipped at
read time instead of failing the import.

``QuarterlyDemand`` / ``DailyDemand`` are the aggregator's outputs. They are
frozen; the allocation engine derives inventory-adjusted copies with
``model_copy(update=...)`` instead of mutating them.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class ForecastPoint(BaseModel):
    """One dated value of a forecast series (demand units or quality 0–1)."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    value: float
    lower: Optional[float] = None
    upper: Optional[float] = None

    @model_validator(mode="after")
    def validate_interval(self) -> "ForecastPoint":
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ValueError(
                f"lower ({self.lower}) must be <= upper ({self.upper}) on {self.date}."
            )
        return self


class DemandForecast(BaseModel):
    """Stored demand forecast for one (location, tractor model).

    Attributes:
        forecast_id: Auto-assigned DB PK; ``None`` before insertion.
        location_id: Location the forecast applies to.
        model_id: Tractor model forecast.
        is_default: Only default forecasts feed the recommendation pipeline.
        forecast_data: Raw JSON text of ``[{date, value, lower?, upper?}]``.
        created_at: Insertion timestamp (UTC), set by the database.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    forecast_id: Optional[int] = None
    location_id: str
    model_id: str
    is_default: bool = True
    forecast_data: str
    created_at: Optional[dt.datetime] = None


class SupplierQualityForecast(BaseModel):
    """Stored quality forecast for one supplier; the newest row wins."""

    model_config = ConfigDict(frozen=True)

    forecast_id: Optional[int] = None
    supplier_id: str
    forecast_data: str
    created_at: Optional[dt.datetime] = None


class ModelContribution(BaseModel):
    """Demand contributed to a period by one tractor model."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str
    demand: float


class QuarterlyDemand(BaseModel):
    """Component demand for one calendar quarter.

    ``total_required`` is always ``round(total_demand + safety_stock)`` on
    freshly aggregated records. Inventory-adjusted copies overwrite
    ``total_required`` only; the remaining fields keep the original values.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    quarter: int
    year: int
    total_demand: int
    safety_stock: int
    total_required: int
    model_contributions: list[ModelContribution] = []

    @field_validator("quarter")
    @classmethod
    def validate_quarter(cls, v: int) -> int:
        if v not in (1, 2, 3, 4):
            raise ValueError(f"quarter must be within 1-4, got {v}.")
        return v


class DailyDemand(BaseModel):
    """Component demand for one calendar date (no safety stock)."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    date: dt.date
    total_demand: int
    model_contributions: list[ModelContribution] = []


class ComponentDemand(BaseModel):
    """Quarterly demand for one (location, component), sorted by (year, quarter)."""

    model_config = ConfigDict(frozen=True)

    location_id: str
    component_id: str
    quarterly_demand: list[QuarterlyDemand]

    def for_quarter(self, quarter: int, year: int) -> Optional[QuarterlyDemand]:
        for qd in self.quarterly_demand:
            if qd.quarter == quarter and qd.year == year:
                return qd
        return None
