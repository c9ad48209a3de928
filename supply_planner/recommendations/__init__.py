"""
Recommendation pipeline: forecasts and history → quarterly purchase cards.

Modules:
  trace             -- injectable trace collectors for structured debug output
  demand            -- per-model forecasts → quarterly component demand
  supplier_scoring  -- quality/cost scoring of eligible suppliers
  performance       -- failure rates and delivery variance from history
  allocation        -- percentage split, diversification rules, quantities
  current_strategy  -- status-quo baseline (inventory, split, needs, risk)
  reasoning         -- explanation blocks attached to each strategy
  impact            -- recommended vs. current deltas per pair
  prioritization    -- urgency / impact / priority / opportunity score
  cards             -- quarterly card construction and ordering
  reporter          -- CSV / JSON / Parquet card exports
"""
