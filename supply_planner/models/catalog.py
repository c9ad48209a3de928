"""
Static reference catalog: components, suppliers, tractor models, locations.

These records are loaded once (from the seed JSON or the database) and never
mutated by the pipeline. ``Catalog`` bundles the four maps and exposes the
lookups every stage needs, so no stage reaches into module-level constants.

Target inventory level
----------------------
``Catalog.target_inventory_level()`` sizes the status-quo inventory policy.
For each model consuming the component, with ``p`` the location's demand
preference for that model::

    min_daily = 40 × max(0.5, √p)
    max_daily = 150 × max(0.2, p)
    base      = min_daily + pos × (max_daily − min_daily)
    pos       = 0.6 if p < 0.2, 0.4 if p < 1, else 0.7
    safety    = 1.8 if p < 0.2, 1.3 if p < 1, else 1.5

    target = max(200, ceil(Σ base × safety × days × 1.2))
"""

from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

_HIGH_VALUE_MARKERS = ("ENGINE", "PREMIUM")
_MIN_TARGET_INVENTORY = 200
_TARGET_INVENTORY_BUFFER = 1.2


class Component(BaseModel):
    """A purchasable tractor component.

    Attributes:
        component_id: Stable identifier, e.g. ``"ENGINE-A"``.
        name: Display name, e.g. ``"Basic Engine"``.
        baseline_failure_rate: Expected field failure rate as a fraction.
    """

    model_config = ConfigDict(frozen=True)

    component_id: str
    name: str
    baseline_failure_rate: float

    @field_validator("baseline_failure_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"baseline_failure_rate must be in [0, 1], got {v}.")
        return v

    def _matches(self, marker: str) -> bool:
        return marker in self.component_id.upper() or marker in self.name.upper()

    @property
    def is_engine(self) -> bool:
        return self._matches("ENGINE")

    @property
    def is_premium(self) -> bool:
        return self._matches("PREMIUM")

    @property
    def is_high_value(self) -> bool:
        """Engines and premium parts get scaled impact thresholds."""
        return any(self._matches(m) for m in _HIGH_VALUE_MARKERS)


class SupplierOffer(BaseModel):
    """One component a supplier sells, at a fixed unit price."""

    model_config = ConfigDict(frozen=True)

    component_id: str
    price_per_unit: float

    @field_validator("price_per_unit")
    @classmethod
    def validate_price(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"price_per_unit must be non-negative, got {v}.")
        return v


class Supplier(BaseModel):
    """A component supplier with its price list and quality profile.

    The quality profile (volatility, seasonal strength, momentum) describes
    how the supplier's quality series behaves; only ``seasonal_strength`` is
    read by the pipeline (seasonal risk factor).
    """

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    base_lead_time: float
    quality_volatility: float = 0.0
    seasonal_strength: float = 0.0
    quality_momentum: float = 0.0
    components: list[SupplierOffer] = []

    def offer_for(self, component_id: str) -> Optional[SupplierOffer]:
        for offer in self.components:
            if offer.component_id == component_id:
                return offer
        return None

    def price_for(self, component_id: str) -> Optional[float]:
        offer = self.offer_for(component_id)
        return offer.price_per_unit if offer else None


class TractorModel(BaseModel):
    """A tractor model and the components it consumes."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str
    component_ids: list[str]
    market_sensitivity: float = 0.0
    inflation_sensitivity: float = 0.0


class Location(BaseModel):
    """A dealer region with its reachable suppliers and model preferences."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    location_id: str
    supplier_ids: list[str]
    model_preferences: dict[str, float] = {}

    @property
    def display_name(self) -> str:
        return self.location_id[:1].upper() + self.location_id[1:]


class Catalog(BaseModel):
    """All static reference data, keyed by id.

    Dict insertion order is the iteration order the pipeline uses for
    locations and components.
    """

    model_config = ConfigDict(frozen=True)

    components: dict[str, Component]
    suppliers: dict[str, Supplier]
    tractor_models: dict[str, TractorModel]
    locations: dict[str, Location]

    @model_validator(mode="after")
    def validate_references(self) -> "Catalog":
        errors: list[str] = []
        for model in self.tractor_models.values():
            for cid in model.component_ids:
                if cid not in self.components:
                    errors.append(f"model {model.model_id} uses unknown component {cid}")
        for supplier in self.suppliers.values():
            for offer in supplier.components:
                if offer.component_id not in self.components:
                    errors.append(
                        f"supplier {supplier.supplier_id} offers unknown component "
                        f"{offer.component_id}"
                    )
        for location in self.locations.values():
            for sid in location.supplier_ids:
                if sid not in self.suppliers:
                    errors.append(f"location {location.location_id} lists unknown supplier {sid}")
        if errors:
            raise ValueError("; ".join(errors))
        return self

    # ── Lookups ──────────────────────────────────────────────────────────────

    def component_name(self, component_id: str) -> str:
        component = self.components.get(component_id)
        return component.name if component else component_id

    def models_using(self, component_id: str) -> list[str]:
        """Model ids consuming ``component_id`` (may be empty)."""
        return [
            m.model_id for m in self.tractor_models.values()
            if component_id in m.component_ids
        ]

    def components_in_use(self) -> list[str]:
        """Distinct component ids consumed by any model, in bill-of-materials order."""
        seen: dict[str, None] = {}
        for model in self.tractor_models.values():
            for cid in model.component_ids:
                seen.setdefault(cid, None)
        return list(seen)

    def suppliers_offering(self, component_id: str) -> list[Supplier]:
        """Every supplier selling the component, regardless of location."""
        return [
            s for s in self.suppliers.values() if s.offer_for(component_id) is not None
        ]

    def eligible_suppliers(self, location_id: str, component_id: str) -> list[Supplier]:
        """Suppliers that both serve the location and sell the component."""
        location = self.locations.get(location_id)
        if location is None:
            return []
        result: list[Supplier] = []
        for sid in location.supplier_ids:
            supplier = self.suppliers.get(sid)
            if supplier is not None and supplier.offer_for(component_id) is not None:
                result.append(supplier)
        return result

    def average_lead_time(self, location_id: str, default: float = 7.0) -> float:
        """Mean ``base_lead_time`` of the location's suppliers, or ``default``."""
        location = self.locations.get(location_id)
        if location is None or not location.supplier_ids:
            return default
        lead_times = [
            self.suppliers[sid].base_lead_time if sid in self.suppliers else 0.0
            for sid in location.supplier_ids
        ]
        return sum(lead_times) / len(lead_times)

    def target_inventory_level(
        self,
        location_id: str,
        component_id: str,
        days: int = 30,
    ) -> int:
        """Status-quo target stock for a component at a location (see module doc)."""
        location = self.locations.get(location_id)
        preferences = location.model_preferences if location else {}

        daily_units = 0.0
        for model_id in self.models_using(component_id):
            pref = preferences.get(model_id, 1.0)
            min_daily = 40 * max(0.5, math.sqrt(pref))
            max_daily = 150 * max(0.2, pref)
            if pref < 0.2:
                position, safety = 0.6, 1.8
            elif pref < 1.0:
                position, safety = 0.4, 1.3
            else:
                position, safety = 0.7, 1.5
            base = min_daily + position * (max_daily - min_daily)
            daily_units += base * safety

        return max(
            _MIN_TARGET_INVENTORY,
            math.ceil(daily_units * days * _TARGET_INVENTORY_BUFFER),
        )
