"""
Historical location reports.

A ``LocationReport`` is one dated snapshot of a location: macro indicators,
per-model demand observed, per-supplier component inventory on hand,
deliveries received and component failures observed. Reports are the only
source of "status quo" data: current inventory, the current supplier split
and observed supplier performance are all derived from them.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class ModelDemandRecord(BaseModel):
    """Units of a tractor model demanded during the report period."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str
    demand: float


class InventoryRecord(BaseModel):
    """Units of a component on hand, sourced from one supplier."""

    model_config = ConfigDict(frozen=True)

    component_id: str
    supplier_id: str
    quantity: float

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"quantity must be non-negative, got {v}.")
        return v


class DeliveryRecord(BaseModel):
    """A delivery received from a supplier.

    ``lead_time_variance`` is the relative deviation from the promised lead
    time (0.1 = 10 % late on average).
    """

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    component_id: str
    order_size: float
    lead_time_variance: float = 0.0
    discount: float = 0.0


class FailureRecord(BaseModel):
    """Observed failure rate for components bought from one supplier."""

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    component_id: str
    failure_rate: float

    @field_validator("failure_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"failure_rate must be in [0, 1], got {v}.")
        return v


class LocationReport(BaseModel):
    """One dated historical snapshot for a location.

    Attributes:
        report_id: Auto-assigned DB PK; ``None`` before insertion.
        location_id: Location the report describes.
        report_date: Calendar date of the snapshot.
        market_trend_index: Market demand index (1.0 = neutral).
        inflation_rate: Inflation rate as a fraction.
        model_demand: Per-model demand during the period.
        component_inventory: Per-(component, supplier) units on hand.
        deliveries: Deliveries received.
        component_failures: Observed failure rates.
    """

    model_config = ConfigDict(frozen=True)

    report_id: Optional[int] = None
    location_id: str
    report_date: date
    market_trend_index: float = 1.0
    inflation_rate: float = 0.0
    model_demand: list[ModelDemandRecord] = []
    component_inventory: list[InventoryRecord] = []
    deliveries: list[DeliveryRecord] = []
    component_failures: list[FailureRecord] = []

    def inventory_for(self, component_id: str) -> float:
        """Total units of a component on hand across all suppliers."""
        return sum(
            rec.quantity for rec in self.component_inventory
            if rec.component_id == component_id
        )
