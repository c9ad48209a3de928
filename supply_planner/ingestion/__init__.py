"""
Ingestion layer: external forecast and history files → planning store.

Submodules:
  forecast_csv — CSV parser for demand forecast points (one row per point)
  importers    — JSON forecast / history document parsing, catalog
                 cross-checks and persistence

The forecasting model itself is external; this package only accepts its
output. Series are stored as JSON text so the recommendation pipeline reads
them exactly as imported.
"""
