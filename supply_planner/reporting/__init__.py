"""
supply_planner.reporting — Read-only queries and terminal formatting.

This package reads already-persisted rows (cards, forecasts, history) and
formats them for CLI display. It does NOT produce new data.

Modules:
  queries    — Read-only accessors over the planning database.
  formatters — ASCII terminal table formatters for Typer CLI commands.
"""
