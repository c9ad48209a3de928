"""
ASCII terminal formatters for CLI reporting commands.

All formatters accept validated models (cards, strategies, reports) and
return plain multi-line strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Deltas
------
Card tables show ``recommended - current``. A negative cost delta is a
saving; a positive unit delta means the recommendation buys more than the
status-quo policy would.
"""

from __future__ import annotations

from supply_planner.models.card import QuarterlyCard
from supply_planner.models.catalog import Component
from supply_planner.models.demand import DemandForecast
from supply_planner.models.history import LocationReport
from supply_planner.models.strategy import ReasonedAllocationStrategy
from supply_planner.recommendations.demand import parse_forecast
from supply_planner.recommendations.prioritization import (
    adjust_status_for_quarter,
    determine_recommendation_status,
    enhance_rationale_with_impact,
    format_cost_impact,
    format_number,
)


def _header(title: str) -> list[str]:
    return ["", f"=== {title} ==="]


def _rule(header: str) -> str:
    return "  " + "-" * (len(header) - 2)


# ── Cards ─────────────────────────────────────────────────────────────────────


def format_cards_table(cards: list[QuarterlyCard]) -> str:
    """Format cards as one row each, grouped by (year, quarter).

    Example::

        [2025 Q1]
          Location    Component      Units  Delta  Cost          Delta        Priority
          --------------------------------------------------------------------------
          heartland   ENGINE-A         420    -30  2,100,000     -150,000     critical
    """
    lines = _header("Recommendation Cards")
    lines.append(f"  Cards: {len(cards)}")

    if not cards:
        lines.append("")
        lines.append("  (no cards stored — run 'run-recommendations' first)")
        return "\n".join(lines)

    current_key: tuple[int, int] | None = None
    for card in cards:
        key = (card.year, card.quarter)
        if key != current_key:
            current_key = key
            lines.append("")
            lines.append(f"  [{card.year} Q{card.quarter}]")
            header = (
                f"  {'Location':<12}  {'Component':<14}  {'Units':>7}  {'Delta':>7}  "
                f"{'Cost':>14}  {'Delta':>12}  {'Urgency':<9}  {'Impact':<8}  "
                f"{'Priority':<10}  {'Score':>6}"
            )
            lines.append(header)
            lines.append(_rule(header))
        lines.append(
            f"  {card.location_id[:12]:<12}  {card.component_id[:14]:<14}  "
            f"{card.recommended_units:>7}  {card.unit_delta:>+7}  "
            f"{format_number(card.recommended_cost):>14}  {card.cost_delta:>+12,.0f}  "
            f"{card.urgency:<9}  {card.impact_level:<8}  {card.priority:<10}  "
            f"{card.opportunity_score:>6.2f}"
        )

    return "\n".join(lines)


def format_card_detail(card: QuarterlyCard, component: Component) -> str:
    """Headline, status and impact rationale for one card."""
    status = adjust_status_for_quarter(
        determine_recommendation_status(card.cost_delta, 0.0, component), card.quarter
    )
    rationale = enhance_rationale_with_impact(
        [card.strategy.allocation_reasoning.summary],
        card.unit_delta,
        card.cost_delta,
        0.0,
        card.priority,
    )
    lines = [
        "",
        f"  [{card.location_id} / {card.component_id} / Q{card.quarter} {card.year}]",
        f"    {card.strategy.top_level_recommendation}",
        f"    Status: {status} | Priority: {card.priority} | "
        f"Cost impact: {format_cost_impact(card.cost_delta)}",
    ]
    lines.extend(f"    - {sentence}" for sentence in rationale)
    return "\n".join(lines)


# ── Strategies ────────────────────────────────────────────────────────────────


def format_strategy(strategy: ReasonedAllocationStrategy) -> str:
    """One strategy: headline, supplier split, then the reasoning summaries."""
    lines = [
        "",
        f"  [{strategy.location_id} / {strategy.component_id}]",
        f"    {strategy.top_level_recommendation}",
        f"    Inventory on hand: {strategy.current_inventory:,}",
    ]
    header = (
        f"    {'Supplier':<14}  {'Share':>6}  {'Quality':>8}  {'Cost':>6}  "
        f"{'Score':>6}  {'Reason':<9}  {'Total cost':>14}"
    )
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for alloc in strategy.supplier_allocations:
        lines.append(
            f"    {alloc.supplier_id[:14]:<14}  {alloc.allocation_percentage:>5}%  "
            f"{alloc.quality_score:>8.1f}  {alloc.cost_score:>6.1f}  "
            f"{alloc.total_score:>6.1f}  {alloc.allocation_reason:<9}  "
            f"{format_number(alloc.total_cost):>14}"
        )
    lines.append(f"    Quantity: {strategy.quantity_reasoning.summary}")
    lines.append(f"    Allocation: {strategy.allocation_reasoning.summary}")
    lines.append(f"    Risk: {strategy.risk_considerations.summary}")
    return "\n".join(lines)


def format_strategies(strategies: list[ReasonedAllocationStrategy]) -> str:
    lines = _header("Allocation Strategies")
    lines.append(f"  Strategies: {len(strategies)}")
    if not strategies:
        lines.append("")
        lines.append("  (no strategies stored — run 'run-recommendations' first)")
        return "\n".join(lines)
    for strategy in strategies:
        lines.append(format_strategy(strategy))
    return "\n".join(lines)


# ── Forecasts ─────────────────────────────────────────────────────────────────


def format_forecast(forecast: DemandForecast, limit: int = 30) -> str:
    """Print the first ``limit`` points of a stored demand forecast."""
    parsed = parse_forecast(forecast)
    lines = _header("Demand Forecast")
    lines.append(f"  Location: {forecast.location_id}")
    lines.append(f"  Model:    {forecast.model_id}")
    lines.append(f"  Points:   {len(parsed.points)}")
    if forecast.created_at is not None:
        lines.append(f"  Imported: {forecast.created_at.isoformat()}")
    lines.append("")
    header = f"  {'Date':<12}  {'Value':>12}"
    lines.append(header)
    lines.append(_rule(header))
    for day, value in parsed.points[:limit]:
        lines.append(f"  {day.isoformat():<12}  {value:>12,.2f}")
    if len(parsed.points) > limit:
        lines.append(f"  ... {len(parsed.points) - limit} more point(s)")
    return "\n".join(lines)


# ── Locations / history ───────────────────────────────────────────────────────


def format_location_list(location_ids: list[str]) -> str:
    lines = _header("Locations")
    if not location_ids:
        lines.append("  (no locations — run 'seed-catalog' first)")
        return "\n".join(lines)
    for location_id in location_ids:
        lines.append(f"  {location_id}")
    return "\n".join(lines)


def format_history(reports: list[LocationReport], location_id: str) -> str:
    """One row per report with inventory, delivery and failure totals."""
    lines = _header("Historical Reports")
    lines.append(f"  Location: {location_id}")
    lines.append(f"  Reports:  {len(reports)}")
    if not reports:
        lines.append("")
        lines.append("  (no history — run 'import-history' first)")
        return "\n".join(lines)

    lines.append("")
    header = (
        f"  {'Date':<12}  {'Market':>7}  {'Inflation':>9}  {'Inventory':>10}  "
        f"{'Deliveries':>10}  {'Failures':>8}"
    )
    lines.append(header)
    lines.append(_rule(header))
    for report in reports:
        inventory = sum(r.quantity for r in report.component_inventory)
        lines.append(
            f"  {report.report_date.isoformat():<12}  {report.market_trend_index:>7.3f}  "
            f"{report.inflation_rate:>9.3f}  {inventory:>10,.0f}  "
            f"{len(report.deliveries):>10}  {len(report.component_failures):>8}"
        )
    return "\n".join(lines)
