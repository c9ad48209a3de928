"""
Tests for the planning-store repositories.

What we test
------------
- CatalogRepository: round trip of the sample catalog, seed ordering kept,
  re-seeding replaces child lists instead of duplicating them.
- ForecastRepository: a new default demotes older defaults for the same
  pair; the newest default wins; quality forecasts read newest first.
- HistoryRepository: re-importing a (location, date) report replaces its
  detail rows; latest report lookup.
- CardRepository: upsert is idempotent per (location, component, quarter,
  year); filters; the strategy blob round-trips.
- RunMetadataRepository: insert, update, lookup by slug, recent runs.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from supply_planner.db.repositories.card_repo import CardRepository
from supply_planner.db.repositories.catalog_repo import CatalogRepository
from supply_planner.db.repositories.forecast_repo import ForecastRepository
from supply_planner.db.repositories.history_repo import HistoryRepository
from supply_planner.db.repositories.run_repo import RunMetadataRepository
from supply_planner.models.card import QuarterlyCard
from supply_planner.models.catalog import Location
from supply_planner.models.meta import RunMetadata
from supply_planner.models.strategy import (
    AllocationReasoning,
    QuantityReasoning,
    ReasonedAllocationStrategy,
    RiskConsiderations,
    SupplierAllocation,
)
from supply_planner.taxonomy.recommendation_taxonomy import (
    ImpactLevel,
    Priority,
    RecommendationUrgency,
)


# ── Helpers ────────────────────────────────────────────────────────────────────

def _card(
    location_id: str = "heartland",
    component_id: str = "ENGINE-A",
    quarter: int = 1,
    recommended_units: int = 800,
) -> QuarterlyCard:
    strategy = ReasonedAllocationStrategy(
        component_id=component_id,
        location_id=location_id,
        overall_strategy="Allocate 100% to Atlas based on superior overall performance.",
        current_inventory=0,
        demand_forecast=[],
        original_demand=[],
        supplier_allocations=[SupplierAllocation(
            supplier_id="Atlas", component_id=component_id, location_id=location_id,
            allocation_percentage=100, quality_score=85.0, cost_score=100.0, total_score=89.5,
        )],
        top_level_recommendation="Purchase 800 units.",
        quantity_reasoning=QuantityReasoning(summary="q"),
        allocation_reasoning=AllocationReasoning(summary="a"),
        risk_considerations=RiskConsiderations(summary="r"),
    )
    return QuarterlyCard(
        location_id=location_id, component_id=component_id, quarter=quarter, year=2025,
        current_units=1000, current_cost=10_000.0,
        recommended_units=recommended_units, recommended_cost=recommended_units * 10.0,
        unit_delta=recommended_units - 1000, cost_delta=recommended_units * 10.0 - 10_000.0,
        urgency=RecommendationUrgency.IMMEDIATE, impact_level=ImpactLevel.MODERATE,
        priority=Priority.IMPORTANT, opportunity_score=12.5, strategy=strategy,
    )


def _run(slug: str, stage: str = "recommend", hour: int = 9) -> RunMetadata:
    return RunMetadata(
        run_slug=slug,
        pipeline_stage=stage,
        config_snapshot={"recommendation": {"planning_year": 2025}},
        started_at=datetime(2025, 1, 15, hour, 0, tzinfo=timezone.utc),
    )


def _points(value: float) -> list[dict]:
    return [{"date": f"2025-01-{d:02d}", "value": value} for d in range(1, 8)]


# ── Catalog ───────────────────────────────────────────────────────────────────

class TestCatalogRepository:
    def test_upsert_returns_record_count(self, in_memory_db, sample_catalog):
        assert CatalogRepository(in_memory_db).upsert_catalog(sample_catalog) == 10

    def test_round_trip(self, seeded_db, sample_catalog):
        assert CatalogRepository(seeded_db).load_catalog() == sample_catalog

    def test_seed_order_preserved(self, seeded_db):
        catalog = CatalogRepository(seeded_db).load_catalog()
        assert list(catalog.suppliers) == ["Elite", "Atlas", "Bolt"]
        assert catalog.locations["heartland"].supplier_ids == ["Bolt", "Atlas", "Elite"]
        assert catalog.tractor_models["TX-300"].component_ids == ["ENGINE-A", "HYDRAULICS-SMALL"]

    def test_reseed_is_idempotent(self, seeded_db, sample_catalog):
        repo = CatalogRepository(seeded_db)
        repo.upsert_catalog(sample_catalog)
        assert repo.count_rows("supplier_components") == 7
        assert repo.count_rows("location_suppliers") == 5
        assert repo.load_catalog() == sample_catalog

    def test_location_update_replaces_children(self, seeded_db):
        repo = CatalogRepository(seeded_db)
        repo.upsert_location(Location(
            location_id="west", supplier_ids=["Elite"], model_preferences={"TX-300": 0.5},
        ))
        west = repo.load_catalog().locations["west"]
        assert west.supplier_ids == ["Elite"]
        assert west.model_preferences == {"TX-300": 0.5}

    def test_list_location_ids_sorted(self, seeded_db):
        assert CatalogRepository(seeded_db).list_location_ids() == ["heartland", "west"]


# ── Forecasts ─────────────────────────────────────────────────────────────────

class TestForecastRepository:
    def test_new_default_demotes_older(self, seeded_db, make_demand_forecast):
        repo = ForecastRepository(seeded_db)
        first = repo.insert_demand_forecast(
            make_demand_forecast("heartland", "TX-100", _points(1.0))
        )
        second = repo.insert_demand_forecast(
            make_demand_forecast("heartland", "TX-100", _points(2.0))
        )
        assert second > first
        defaults = repo.fetchall(
            "SELECT forecast_id FROM demand_forecasts WHERE is_default = 1;"
        )
        assert [r["forecast_id"] for r in defaults] == [second]

    def test_non_default_leaves_default_alone(self, seeded_db, make_demand_forecast):
        repo = ForecastRepository(seeded_db)
        default_id = repo.insert_demand_forecast(
            make_demand_forecast("heartland", "TX-100", _points(1.0))
        )
        repo.insert_demand_forecast(
            make_demand_forecast("heartland", "TX-100", _points(2.0), is_default=False)
        )
        assert repo.get_demand_forecast("heartland", "TX-100").forecast_id == default_id
        latest_any = repo.get_demand_forecast("heartland", "TX-100", default_only=False)
        assert latest_any.forecast_id != default_id
        assert latest_any.is_default is False

    def test_newest_default_wins_even_when_flags_collide(self, seeded_db):
        repo = ForecastRepository(seeded_db)
        for value in ("[1]", "[2]"):
            repo.execute(
                "INSERT INTO demand_forecasts (location_id, model_id, is_default, forecast_data) "
                "VALUES ('heartland', 'TX-100', 1, ?);",
                (value,),
            )
        forecasts = repo.get_default_forecasts("heartland", ["TX-100"])
        assert [f.forecast_data for f in forecasts] == ["[2]"]

    def test_default_forecasts_by_model(self, populated_db):
        forecasts = ForecastRepository(populated_db).get_default_forecasts(
            "heartland", ["TX-300", "TX-100"]
        )
        assert [f.model_id for f in forecasts] == ["TX-100", "TX-300"]
        assert forecasts[0].created_at is not None

    def test_default_forecasts_missing(self, populated_db):
        repo = ForecastRepository(populated_db)
        assert repo.get_default_forecasts("west", ["TX-100"]) == []
        assert repo.get_default_forecasts("heartland", []) == []
        assert repo.get_demand_forecast("west", "TX-100") is None

    def test_latest_quality_forecast(self, populated_db, make_quality_forecast):
        repo = ForecastRepository(populated_db)
        repo.insert_quality_forecast(make_quality_forecast("Atlas", [0.5]))
        latest = repo.get_latest_quality_forecast("Atlas")
        assert latest.forecast_data.count("date") == 1
        assert repo.get_latest_quality_forecast("Nobody") is None

    def test_count_forecasts(self, populated_db):
        assert ForecastRepository(populated_db).count_forecasts() == (2, 3)


# ── History ───────────────────────────────────────────────────────────────────

class TestHistoryRepository:
    def test_round_trip(self, populated_db):
        report = HistoryRepository(populated_db).get_latest_report("heartland")
        assert report.report_date == date(2024, 12, 31)
        assert report.inventory_for("ENGINE-A") == 400
        assert [(d.supplier_id, d.lead_time_variance) for d in report.deliveries] == [
            ("Elite", 0.5), ("Atlas", 1.5),
        ]
        assert len(report.component_failures) == 2

    def test_reimport_replaces_details(self, populated_db, make_report):
        repo = HistoryRepository(populated_db)
        first_id = repo.get_latest_report("heartland").report_id
        report_id = repo.upsert_report(make_report(inventory=[("ENGINE-A", "Bolt", 50)]))

        assert report_id == first_id
        report = repo.get_latest_report("heartland")
        assert [(r.supplier_id, r.quantity) for r in report.component_inventory] == [("Bolt", 50)]
        assert report.deliveries == []
        assert repo.count_rows("location_reports") == 1

    def test_latest_and_ordering(self, populated_db, make_report):
        repo = HistoryRepository(populated_db)
        repo.upsert_report(make_report(report_date=date(2024, 6, 30)))
        repo.upsert_report(make_report(location_id="west", report_date=date(2024, 3, 31)))

        assert repo.get_latest_report("heartland").report_date == date(2024, 12, 31)
        assert [(r.location_id, r.report_date) for r in repo.get_reports()] == [
            ("heartland", date(2024, 6, 30)),
            ("heartland", date(2024, 12, 31)),
            ("west", date(2024, 3, 31)),
        ]
        assert len(repo.get_reports("west")) == 1

    def test_no_report(self, seeded_db):
        assert HistoryRepository(seeded_db).get_latest_report("west") is None


# ── Cards ─────────────────────────────────────────────────────────────────────

class TestCardRepository:
    def test_upsert_is_idempotent(self, seeded_db):
        repo = CardRepository(seeded_db)
        cards = [_card(quarter=1), _card(quarter=2)]
        assert repo.upsert_cards(cards) == 2
        repo.upsert_cards(cards)
        assert repo.count() == 2

    def test_upsert_replaces_values(self, seeded_db):
        repo = CardRepository(seeded_db)
        repo.upsert_cards([_card(recommended_units=800)])
        repo.upsert_cards([_card(recommended_units=900)])
        (card,) = repo.fetch_all()
        assert card.recommended_units == 900
        assert card.unit_delta == -100

    def test_strategy_round_trip(self, seeded_db):
        repo = CardRepository(seeded_db)
        original = _card()
        repo.upsert_cards([original])
        (stored,) = repo.fetch_all()
        assert stored.strategy == original.strategy
        assert stored.priority == Priority.IMPORTANT
        assert stored.card_id is not None
        assert stored.created_at is not None

    def test_filters_and_order(self, seeded_db):
        repo = CardRepository(seeded_db)
        repo.upsert_cards([
            _card("west", "CHASSIS-BASIC", 2),
            _card("heartland", "ENGINE-A", 2),
            _card("heartland", "CHASSIS-BASIC", 1),
        ])
        assert [(c.quarter, c.location_id, c.component_id) for c in repo.fetch_all()] == [
            (1, "heartland", "CHASSIS-BASIC"),
            (2, "heartland", "ENGINE-A"),
            (2, "west", "CHASSIS-BASIC"),
        ]
        assert len(repo.fetch_all(location_id="heartland")) == 2
        assert len(repo.fetch_all(quarter=2)) == 2
        assert len(repo.fetch_all(location_id="west", quarter=1)) == 0
        assert repo.fetch_all(year=2026) == []

    def test_clear_all(self, seeded_db):
        repo = CardRepository(seeded_db)
        repo.upsert_cards([_card(quarter=1), _card(quarter=2)])
        assert repo.clear_all() == 2
        assert repo.count() == 0


# ── Run metadata ──────────────────────────────────────────────────────────────

class TestRunMetadataRepository:
    def test_insert_and_lookup(self, in_memory_db):
        repo = RunMetadataRepository(in_memory_db)
        run_id = repo.insert_run(_run("slug-1"))
        stored = repo.get_run_by_slug("slug-1")
        assert stored.run_id == run_id
        assert stored.status == "started"
        assert stored.config_snapshot == {"recommendation": {"planning_year": 2025}}
        assert repo.get_run_by_slug("missing") is None

    def test_update(self, in_memory_db):
        repo = RunMetadataRepository(in_memory_db)
        run = _run("slug-1")
        run.run_id = repo.insert_run(run)
        run.status = "success"
        run.rows_processed = 12
        run.pairs_skipped = 3
        run.finished_at = datetime(2025, 1, 15, 9, 5, tzinfo=timezone.utc)
        repo.update_run(run)

        stored = repo.get_run_by_slug("slug-1")
        assert (stored.status, stored.rows_processed, stored.pairs_skipped) == ("success", 12, 3)
        assert stored.finished_at == run.finished_at

    def test_update_requires_id(self, in_memory_db):
        with pytest.raises(ValueError, match="run_id"):
            RunMetadataRepository(in_memory_db).update_run(_run("slug-1"))

    def test_recent_runs(self, in_memory_db):
        repo = RunMetadataRepository(in_memory_db)
        repo.insert_run(_run("a", "seed_catalog", hour=8))
        repo.insert_run(_run("b", "recommend", hour=9))
        repo.insert_run(_run("c", "recommend", hour=10))

        assert [r.run_slug for r in repo.get_recent_runs()] == ["c", "b", "a"]
        assert [r.run_slug for r in repo.get_recent_runs("recommend", limit=1)] == ["c"]
