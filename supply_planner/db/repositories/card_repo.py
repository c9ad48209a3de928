"""
Repository for quarterly recommendation cards.

Cards are keyed by (location_id, component_id, quarter, year); writing a card
for an existing key replaces it in place, so re-running the pipeline on the
same inputs leaves the same card set.

The ``strategy`` column holds ``ReasonedAllocationStrategy.model_dump_json()``.
Reading validates the blob back into the model, which rejects unknown
``schema_version`` values with a ``pydantic.ValidationError``.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from supply_planner.db.repositories.base import BaseRepository
from supply_planner.models.card import QuarterlyCard
from supply_planner.models.strategy import ReasonedAllocationStrategy

logger = logging.getLogger(__name__)

_UPSERT_CARD = """
INSERT INTO quarterly_recommendation_cards (
    location_id, component_id, quarter, year,
    current_units, current_cost, recommended_units, recommended_cost,
    unit_delta, cost_delta, urgency, impact_level, priority,
    opportunity_score, strategy
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(location_id, component_id, quarter, year) DO UPDATE SET
    current_units     = excluded.current_units,
    current_cost      = excluded.current_cost,
    recommended_units = excluded.recommended_units,
    recommended_cost  = excluded.recommended_cost,
    unit_delta        = excluded.unit_delta,
    cost_delta        = excluded.cost_delta,
    urgency           = excluded.urgency,
    impact_level      = excluded.impact_level,
    priority          = excluded.priority,
    opportunity_score = excluded.opportunity_score,
    strategy          = excluded.strategy,
    updated_at        = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
"""


class CardRepository(BaseRepository):
    """Read/write access to ``quarterly_recommendation_cards``."""

    def upsert_cards(self, cards: list[QuarterlyCard]) -> int:
        """Insert or replace cards and return how many were written."""
        self.executemany(_UPSERT_CARD, [_card_params(c) for c in cards])
        logger.debug("Upserted %d card(s)", len(cards))
        return len(cards)

    def clear_all(self) -> int:
        """Delete every card. Returns rows deleted."""
        cur = self.execute("DELETE FROM quarterly_recommendation_cards;")
        return cur.rowcount

    def fetch_all(
        self,
        location_id: Optional[str] = None,
        quarter: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[QuarterlyCard]:
        """Cards in storage order (year, quarter, location, component)."""
        clauses: list[str] = []
        params: list[object] = []
        if location_id is not None:
            clauses.append("location_id = ?")
            params.append(location_id)
        if quarter is not None:
            clauses.append("quarter = ?")
            params.append(quarter)
        if year is not None:
            clauses.append("year = ?")
            params.append(year)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.fetchall(
            f"""
            SELECT * FROM quarterly_recommendation_cards
            {where}
            ORDER BY year, quarter, location_id, component_id;
            """,
            tuple(params),
        )
        return [_row_to_card(r) for r in rows]

    def count(self) -> int:
        return self.count_rows("quarterly_recommendation_cards")


# ── Private helpers ────────────────────────────────────────────────────────────

def _card_params(card: QuarterlyCard) -> tuple:
    return (
        card.location_id,
        card.component_id,
        card.quarter,
        card.year,
        card.current_units,
        card.current_cost,
        card.recommended_units,
        card.recommended_cost,
        card.unit_delta,
        card.cost_delta,
        str(card.urgency),
        str(card.impact_level),
        str(card.priority),
        card.opportunity_score,
        card.strategy.model_dump_json(),
    )


def _row_to_card(row: sqlite3.Row) -> QuarterlyCard:
    return QuarterlyCard(
        card_id=row["card_id"],
        location_id=row["location_id"],
        component_id=row["component_id"],
        quarter=row["quarter"],
        year=row["year"],
        current_units=row["current_units"],
        current_cost=row["current_cost"],
        recommended_units=row["recommended_units"],
        recommended_cost=row["recommended_cost"],
        unit_delta=row["unit_delta"],
        cost_delta=row["cost_delta"],
        urgency=row["urgency"],
        impact_level=row["impact_level"],
        priority=row["priority"],
        opportunity_score=row["opportunity_score"],
        strategy=ReasonedAllocationStrategy.model_validate_json(row["strategy"]),
        created_at=datetime.fromisoformat(row["created_at"].replace("Z", "+00:00")),
    )
