"""
Repository for the static reference catalog.

Child lists (supplier price list, model bill of materials, location supplier
list and model preferences) are replaced wholesale on every upsert so
re-seeding the catalog is idempotent. A ``position`` column preserves the
seed file's ordering, which is the order suppliers and models are iterated in.
"""

from __future__ import annotations

import logging

from supply_planner.db.repositories.base import BaseRepository
from supply_planner.models.catalog import (
    Catalog,
    Component,
    Location,
    Supplier,
    SupplierOffer,
    TractorModel,
)

logger = logging.getLogger(__name__)


class CatalogRepository(BaseRepository):
    """Read/write access to components, suppliers, tractor models and locations."""

    # ── Writes ───────────────────────────────────────────────────────────────

    def upsert_component(self, component: Component) -> None:
        self.execute(
            """
            INSERT INTO components (component_id, name, baseline_failure_rate)
            VALUES (?, ?, ?)
            ON CONFLICT(component_id) DO UPDATE SET
                name                  = excluded.name,
                baseline_failure_rate = excluded.baseline_failure_rate;
            """,
            (component.component_id, component.name, component.baseline_failure_rate),
        )

    def upsert_supplier(self, supplier: Supplier) -> None:
        """Insert or update a supplier and replace its price list."""
        self.execute(
            """
            INSERT INTO suppliers (
                supplier_id, base_lead_time, quality_volatility,
                seasonal_strength, quality_momentum
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(supplier_id) DO UPDATE SET
                base_lead_time     = excluded.base_lead_time,
                quality_volatility = excluded.quality_volatility,
                seasonal_strength  = excluded.seasonal_strength,
                quality_momentum   = excluded.quality_momentum;
            """,
            (
                supplier.supplier_id,
                supplier.base_lead_time,
                supplier.quality_volatility,
                supplier.seasonal_strength,
                supplier.quality_momentum,
            ),
        )
        self.execute(
            "DELETE FROM supplier_components WHERE supplier_id = ?;",
            (supplier.supplier_id,),
        )
        self.executemany(
            """
            INSERT INTO supplier_components (supplier_id, component_id, price_per_unit, position)
            VALUES (?, ?, ?, ?);
            """,
            [
                (supplier.supplier_id, offer.component_id, offer.price_per_unit, pos)
                for pos, offer in enumerate(supplier.components)
            ],
        )

    def upsert_tractor_model(self, model: TractorModel) -> None:
        """Insert or update a tractor model and replace its component list."""
        self.execute(
            """
            INSERT INTO tractor_models (model_id, market_sensitivity, inflation_sensitivity)
            VALUES (?, ?, ?)
            ON CONFLICT(model_id) DO UPDATE SET
                market_sensitivity    = excluded.market_sensitivity,
                inflation_sensitivity = excluded.inflation_sensitivity;
            """,
            (model.model_id, model.market_sensitivity, model.inflation_sensitivity),
        )
        self.execute("DELETE FROM model_components WHERE model_id = ?;", (model.model_id,))
        self.executemany(
            "INSERT INTO model_components (model_id, component_id, position) VALUES (?, ?, ?);",
            [(model.model_id, cid, pos) for pos, cid in enumerate(model.component_ids)],
        )

    def upsert_location(self, location: Location) -> None:
        """Insert a location and replace its supplier list and model preferences."""
        self.execute(
            "INSERT INTO locations (location_id) VALUES (?) ON CONFLICT(location_id) DO NOTHING;",
            (location.location_id,),
        )
        self.execute(
            "DELETE FROM location_suppliers WHERE location_id = ?;", (location.location_id,)
        )
        self.executemany(
            "INSERT INTO location_suppliers (location_id, supplier_id, position) VALUES (?, ?, ?);",
            [
                (location.location_id, sid, pos)
                for pos, sid in enumerate(location.supplier_ids)
            ],
        )
        self.execute(
            "DELETE FROM location_model_preferences WHERE location_id = ?;",
            (location.location_id,),
        )
        self.executemany(
            """
            INSERT INTO location_model_preferences (location_id, model_id, preference)
            VALUES (?, ?, ?);
            """,
            [
                (location.location_id, model_id, pref)
                for model_id, pref in location.model_preferences.items()
            ],
        )

    def upsert_catalog(self, catalog: Catalog) -> int:
        """Write every catalog record in FK order. Returns records written."""
        for component in catalog.components.values():
            self.upsert_component(component)
        for supplier in catalog.suppliers.values():
            self.upsert_supplier(supplier)
        for model in catalog.tractor_models.values():
            self.upsert_tractor_model(model)
        for location in catalog.locations.values():
            self.upsert_location(location)
        return (
            len(catalog.components) + len(catalog.suppliers)
            + len(catalog.tractor_models) + len(catalog.locations)
        )

    # ── Reads ────────────────────────────────────────────────────────────────

    def load_catalog(self) -> Catalog:
        """Rebuild the full ``Catalog`` from the database.

        Raises:
            ValueError: If the stored catalog has dangling references.
        """
        components = {
            row["component_id"]: Component(
                component_id=row["component_id"],
                name=row["name"],
                baseline_failure_rate=row["baseline_failure_rate"],
            )
            for row in self.fetchall("SELECT * FROM components ORDER BY rowid;")
        }

        offers: dict[str, list[SupplierOffer]] = {}
        for row in self.fetchall(
            "SELECT * FROM supplier_components ORDER BY supplier_id, position;"
        ):
            offers.setdefault(row["supplier_id"], []).append(
                SupplierOffer(component_id=row["component_id"], price_per_unit=row["price_per_unit"])
            )
        suppliers = {
            row["supplier_id"]: Supplier(
                supplier_id=row["supplier_id"],
                base_lead_time=row["base_lead_time"],
                quality_volatility=row["quality_volatility"],
                seasonal_strength=row["seasonal_strength"],
                quality_momentum=row["quality_momentum"],
                components=offers.get(row["supplier_id"], []),
            )
            for row in self.fetchall("SELECT * FROM suppliers ORDER BY rowid;")
        }

        bom: dict[str, list[str]] = {}
        for row in self.fetchall("SELECT * FROM model_components ORDER BY model_id, position;"):
            bom.setdefault(row["model_id"], []).append(row["component_id"])
        tractor_models = {
            row["model_id"]: TractorModel(
                model_id=row["model_id"],
                component_ids=bom.get(row["model_id"], []),
                market_sensitivity=row["market_sensitivity"],
                inflation_sensitivity=row["inflation_sensitivity"],
            )
            for row in self.fetchall("SELECT * FROM tractor_models ORDER BY rowid;")
        }

        served: dict[str, list[str]] = {}
        for row in self.fetchall(
            "SELECT * FROM location_suppliers ORDER BY location_id, position;"
        ):
            served.setdefault(row["location_id"], []).append(row["supplier_id"])
        prefs: dict[str, dict[str, float]] = {}
        for row in self.fetchall("SELECT * FROM location_model_preferences ORDER BY rowid;"):
            prefs.setdefault(row["location_id"], {})[row["model_id"]] = row["preference"]
        locations = {
            row["location_id"]: Location(
                location_id=row["location_id"],
                supplier_ids=served.get(row["location_id"], []),
                model_preferences=prefs.get(row["location_id"], {}),
            )
            for row in self.fetchall("SELECT * FROM locations ORDER BY rowid;")
        }

        logger.debug(
            "Loaded catalog: %d components, %d suppliers, %d models, %d locations",
            len(components), len(suppliers), len(tractor_models), len(locations),
        )
        return Catalog(
            components=components,
            suppliers=suppliers,
            tractor_models=tractor_models,
            locations=locations,
        )

    def list_location_ids(self) -> list[str]:
        return [
            row["location_id"]
            for row in self.fetchall("SELECT location_id FROM locations ORDER BY location_id;")
        ]
