"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      committed static defaults
  2. ``config/local.toml``        optional local overrides (gitignored)
  3. ``.env``                     local overrides (gitignored)
  4. Environment variables        ``SUPPLY_PLANNER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Pipeline stages, importers and CLI commands all receive an ``AppConfig``
instance; planning constants (service level, planning year, inventory days)
live in ``RecommendationConfig`` rather than as scattered literals.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/supply_planner.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class DataConfig(BaseModel):
    """Filesystem paths for reference data and generated outputs."""

    model_config = ConfigDict(frozen=True)

    catalog_seed_file: str = "config/catalog/reference_catalog.json"
    processed_dir: str = "data/processed"
    output_dir: str = "data/outputs/cards"


class RecommendationConfig(BaseModel):
    """Planning constants for the recommendation pipeline.

    ``planning_year`` anchors the horizon: forecast points dated before
    1 January of that year are discarded, and cards are emitted for
    ``card_quarters`` of that year.
    """

    model_config = ConfigDict(frozen=True)

    planning_year: int = 2025
    service_level_z: float = 1.65
    default_lead_time_days: float = 7.0
    target_inventory_days: int = 30
    quality_window_days: int = 90
    card_quarters: list[int] = [1, 2]

    @field_validator("service_level_z")
    @classmethod
    def validate_z(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"service_level_z must be positive, got {v}.")
        return v

    @field_validator("quality_window_days")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"quality_window_days must be at least 1, got {v}.")
        return v

    @field_validator("default_lead_time_days", "target_inventory_days")
    @classmethod
    def validate_non_negative(cls, v: float, info: ValidationInfo) -> float:
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative, got {v}.")
        return v

    @field_validator("card_quarters")
    @classmethod
    def validate_quarters(cls, v: list[int]) -> list[int]:
        bad = [q for q in v if q not in (1, 2, 3, 4)]
        if bad:
            raise ValueError(f"card_quarters must be within 1-4, got {bad}.")
        if not v:
            raise ValueError("card_quarters must not be empty.")
        return sorted(set(v))


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/supply_planner.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    Constructed by ``load_config()`` which merges TOML + .env + env vars.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    data: DataConfig = DataConfig()
    recommendation: RecommendationConfig = RecommendationConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

# (env var, section or None for top level, key, converter)
_ENV_OVERRIDES: tuple[tuple[str, Optional[str], str, Callable[[str], Any]], ...] = (
    ("SUPPLY_PLANNER_DB_PATH", "database", "db_path", str),
    ("SUPPLY_PLANNER_LOG_LEVEL", "logging", "level", str),
    ("SUPPLY_PLANNER_PLANNING_YEAR", "recommendation", "planning_year", int),
    ("SUPPLY_PLANNER_DEBUG", None, "debug", lambda v: v.lower() in ("1", "true", "yes")),
)


def project_root() -> Path:
    """Directory holding ``pyproject.toml``, or the package parent as a fallback."""
    here = Path(__file__).resolve().parent
    for candidate in (here, *here.parents[:4]):
        if (candidate / "pyproject.toml").is_file():
            return candidate
    return here.parent


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit TOML file. Defaults to
            ``<project_root>/config/default.toml``. A ``local.toml`` sitting
            next to it is merged on top.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        pydantic.ValidationError: If merged values fail validation.
    """
    root = project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / "config" / "default.toml"
    if not path.is_file():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    layers = [_read_toml(path)]
    local = path.with_name("local.toml")
    if local.is_file():
        layers.append(_read_toml(local))

    merged: dict[str, Any] = {}
    for layer in layers:
        merged = _merge_tables(merged, layer)
    return _to_app_config(_with_env_overrides(merged))


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def _merge_tables(base: dict[str, Any], top: dict[str, Any]) -> dict[str, Any]:
    """Merge ``top`` over ``base``; nested tables merge key by key."""
    merged = dict(base)
    for key, value in top.items():
        below = merged.get(key)
        merged[key] = (
            _merge_tables(below, value)
            if isinstance(below, dict) and isinstance(value, dict)
            else value
        )
    return merged


def _with_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    for var, section, key, convert in _ENV_OVERRIDES:
        value = os.environ.get(var)
        if not value:
            continue
        target = raw if section is None else raw.setdefault(section, {})
        target[key] = convert(value)
    return raw


def _to_app_config(raw: dict[str, Any]) -> AppConfig:
    debug = raw.get("debug", raw.get("project", {}).get("debug", False))
    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        data=DataConfig(**raw.get("data", {})),
        recommendation=RecommendationConfig(**raw.get("recommendation", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=debug,
    )
