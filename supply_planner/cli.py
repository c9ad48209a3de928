"""
Supply Planner — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, import, recommendation run, report).
  5. Report result to stdout.

Install and run::

    pip install -e .
    supply-planner --help
    supply-planner init-db
    supply-planner seed-catalog
    supply-planner import-forecasts --file data/raw/forecasts.json
    supply-planner import-history --file data/raw/history.json
    supply-planner run-recommendations --clear
    supply-planner list-cards --location heartland --quarter 1
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="supply-planner",
    help="Tractor component supply planner — demand, supplier allocation and quarterly cards.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from supply_planner.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from supply_planner.utils.logging import configure_logging
    configure_logging(config.logging)


def _open_db(config, db_path: Optional[str] = None):
    from supply_planner.db.connection import get_connection

    return get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )


def _run_import_stage(stage, **kwargs):
    """Run an ingestion stage, converting input errors into exit code 1."""
    try:
        return stage.run(**kwargs)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


_CONFIG_OPTION = typer.Option(None, "--config", help="Path to TOML config file.")
_DB_OPTION = typer.Option(None, "--db-path", help="Override DB path from config.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    Also runs pending schema migrations.
    """
    from supply_planner.db.migrations import run_migrations
    from supply_planner.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with _open_db(config, target_path) as conn:
        apply_schema(conn)
        migrations_applied = run_migrations(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo(f"  Migrations applied: {migrations_applied}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPTION,
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)
    rec = config.recommendation

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:     {config.database.db_path}")
    typer.echo(f"  Catalog seed file: {config.data.catalog_seed_file}")
    typer.echo(f"  Card output dir:   {config.data.output_dir}")
    typer.echo(f"  Planning year:     {rec.planning_year}")
    typer.echo(f"  Card quarters:     {', '.join(f'Q{q}' for q in rec.card_quarters)}")
    typer.echo(f"  Service level Z:   {rec.service_level_z}")
    typer.echo(f"  Target inventory:  {rec.target_inventory_days} days")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config is valid.")


@app.command("seed-catalog")
def seed_catalog(
    catalog_file: Optional[str] = typer.Option(
        None,
        "--file",
        "-f",
        help="Catalog JSON file. Defaults to config.data.catalog_seed_file.",
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Validate the catalog but do not write to the database.",
    ),
) -> None:
    """Load the reference catalog (components, suppliers, models, locations).

    Uses UPSERT semantics — re-seeding updates existing rows in place.
    """
    from supply_planner.pipeline.ingest import SeedCatalogStage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(catalog_file) if catalog_file else Path(config.data.catalog_seed_file)
    typer.echo(f"Loading catalog from: {path}")

    run = _run_import_stage(
        SeedCatalogStage(config, db_path=db_path), catalog_path=path, dry_run=dry_run
    )
    if dry_run:
        typer.echo("[DRY RUN] Catalog validated; nothing written.")
        return
    typer.echo(f"  Upserted {run.rows_processed} catalog record(s).")
    typer.echo("[OK] Catalog seeded.")


@app.command("import-forecasts")
def import_forecasts(
    forecast_file: str = typer.Option(
        ...,
        "--file",
        "-f",
        help="Forecast document (.json) or demand forecast table (.csv).",
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Validate forecasts but do not write to the database.",
    ),
) -> None:
    """Import demand and supplier-quality forecasts.

    \b
      .json — {"demand_forecasts": [...], "supplier_quality_forecasts": [...]}
      .csv  — one row per (location_id, model_id, date, value) point.

    Every referenced location, model and supplier must already be seeded.
    """
    from supply_planner.pipeline.ingest import ImportForecastsStage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    typer.echo(f"Loading forecasts from: {forecast_file}")
    run = _run_import_stage(
        ImportForecastsStage(config, db_path=db_path),
        path=Path(forecast_file),
        dry_run=dry_run,
    )
    if dry_run:
        typer.echo(f"[DRY RUN] {run.rows_processed} forecast(s) validated; nothing written.")
        return
    typer.echo(f"  Imported {run.rows_processed} forecast(s).")
    typer.echo("[OK] Forecasts imported.")


@app.command("import-history")
def import_history(
    history_file: str = typer.Option(
        ...,
        "--file",
        "-f",
        help="Historical location reports (.json array).",
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Validate reports but do not write to the database.",
    ),
) -> None:
    """Import historical location reports (inventory, deliveries, failures).

    A report for an existing (location, report_date) replaces the stored one.
    """
    from supply_planner.pipeline.ingest import ImportHistoryStage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    typer.echo(f"Loading history from: {history_file}")
    run = _run_import_stage(
        ImportHistoryStage(config, db_path=db_path),
        path=Path(history_file),
        dry_run=dry_run,
    )
    if dry_run:
        typer.echo(f"[DRY RUN] {run.rows_processed} report(s) validated; nothing written.")
        return
    typer.echo(f"  Imported {run.rows_processed} report(s).")
    typer.echo("[OK] History imported.")


@app.command("run-recommendations")
def run_recommendations(
    clear: bool = typer.Option(
        False,
        "--clear",
        help="Delete all existing cards before generating.",
    ),
    no_gen: bool = typer.Option(
        False,
        "--no-gen",
        help="Skip generation (use with --clear to only delete cards).",
    ),
    trace_file: Optional[str] = typer.Option(
        None,
        "--trace-file",
        help="Write the structured calculation trace to this JSON file.",
    ),
    export: bool = typer.Option(
        False,
        "--export",
        help="Also write the new cards to CSV / JSON / Parquet in config.data.output_dir.",
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Compute demand, supplier allocations and quarterly cards for every pair.

    Pairs with missing forecasts or no eligible suppliers are skipped and
    counted; any other error aborts the run and leaves stored cards untouched.
    """
    from supply_planner.pipeline.recommend import RecommendStage

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    stage = RecommendStage(config, db_path=db_path)
    try:
        run = stage.run(
            clear_existing=clear,
            generate_new=not no_gen,
            trace_file=Path(trace_file) if trace_file else None,
            export_dir=Path(config.data.output_dir) if export else None,
        )
    except Exception as exc:
        typer.echo(f"[ERROR] Recommendation run failed: {exc}", err=True)
        raise typer.Exit(code=1)

    if no_gen:
        typer.echo("[OK] Cards cleared; generation skipped." if clear else "[OK] Nothing to do.")
        return

    typer.echo(f"  Cards written:  {run.rows_processed}")
    typer.echo(f"  Pairs skipped:  {run.pairs_skipped}")
    if trace_file:
        typer.echo(f"  Trace written:  {trace_file}")
    typer.echo(f"  Run slug:       {run.run_slug}")
    typer.echo("[OK] Recommendations generated.")


@app.command("list-cards")
def list_cards(
    location: Optional[str] = typer.Option(None, "--location", help="Filter by location id."),
    quarter: Optional[int] = typer.Option(
        None, "--quarter", min=1, max=4, help="Filter by quarter (1-4)."
    ),
    detail: bool = typer.Option(
        False, "--detail", help="Also print each card's headline and rationale."
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print stored recommendation cards."""
    from supply_planner.db.repositories.catalog_repo import CatalogRepository
    from supply_planner.reporting.formatters import format_card_detail, format_cards_table
    from supply_planner.reporting.queries import fetch_all_cards

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        cards = fetch_all_cards(conn, location_id=location, quarter=quarter)
        catalog = CatalogRepository(conn).load_catalog() if detail else None
    typer.echo(format_cards_table(cards))

    if catalog is not None:
        for card in cards:
            typer.echo(format_card_detail(card, catalog.components[card.component_id]))


@app.command("list-strategies")
def list_strategies(
    location: Optional[str] = typer.Option(None, "--location", help="Filter by location id."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print the allocation strategy behind every stored card."""
    from supply_planner.reporting.formatters import format_strategies
    from supply_planner.reporting.queries import fetch_all_allocation_strategies

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        strategies = fetch_all_allocation_strategies(conn, location_id=location)
    typer.echo(format_strategies(strategies))


@app.command("show-forecast")
def show_forecast(
    location: str = typer.Option(..., "--location", help="Location id."),
    model: str = typer.Option(..., "--model", help="Tractor model id."),
    limit: int = typer.Option(30, "--limit", min=1, help="Maximum points to print."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print the newest default demand forecast for a (location, model)."""
    from supply_planner.reporting.formatters import format_forecast
    from supply_planner.reporting.queries import fetch_demand_forecast

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        forecast = fetch_demand_forecast(conn, location, model)

    if forecast is None:
        typer.echo(f"[ERROR] No default forecast for model '{model}' at '{location}'.", err=True)
        raise typer.Exit(code=1)
    typer.echo(format_forecast(forecast, limit=limit))


@app.command("list-locations")
def list_locations(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print every seeded location id."""
    from supply_planner.reporting.formatters import format_location_list
    from supply_planner.reporting.queries import fetch_location_list

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        locations = fetch_location_list(conn)
    typer.echo(format_location_list(locations))


@app.command("show-history")
def show_history(
    location: str = typer.Option(..., "--location", help="Location id."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print historical reports for one location, oldest first."""
    from supply_planner.reporting.formatters import format_history
    from supply_planner.reporting.queries import fetch_historical_reports

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        reports = fetch_historical_reports(conn, location)
    typer.echo(format_history(reports, location))


@app.command("export-cards")
def export_cards(
    output_dir: Optional[str] = typer.Option(
        None,
        "--output-dir",
        help="Directory for the export files. Defaults to config.data.output_dir.",
    ),
    fmt: str = typer.Option(
        "all",
        "--format",
        help="csv, json, parquet or all.",
    ),
    location: Optional[str] = typer.Option(None, "--location", help="Filter by location id."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Write stored cards to CSV / JSON / Parquet files."""
    from supply_planner.recommendations.reporter import (
        write_cards_csv,
        write_cards_json,
        write_cards_parquet,
    )
    from supply_planner.reporting.queries import fetch_all_cards

    writers = {
        "csv": write_cards_csv,
        "json": write_cards_json,
        "parquet": write_cards_parquet,
    }
    fmt = fmt.lower()
    if fmt != "all" and fmt not in writers:
        typer.echo(f"[ERROR] Unsupported format '{fmt}'. Use csv, json, parquet or all.", err=True)
        raise typer.Exit(code=1)

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        cards = fetch_all_cards(conn, location_id=location)

    if not cards:
        typer.echo("  No cards stored — run 'run-recommendations' first.")
        return

    out = Path(output_dir) if output_dir else Path(config.data.output_dir)
    year = config.recommendation.planning_year
    selected = writers if fmt == "all" else {fmt: writers[fmt]}
    for name, writer in selected.items():
        path = writer(cards, out, year)
        typer.echo(f"  {name:<8} {path}")
    typer.echo(f"[OK] Exported {len(cards)} card(s).")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
