"""
Calendar helpers for quarter-based planning.

Key concepts:
  - Calendar quarters: ``quarter = (month - 1) // 3 + 1``; Q1 is Jan–Mar.
  - Planning horizon: forecast points before 1 January of the planning year
    are history, not demand to plan for.
  - Quarter windows: inclusive first/last dates used by the status-quo
    inventory simulation.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def quarter_of(day: date) -> int:
    """Return the calendar quarter (1–4) containing ``day``."""
    return (day.month - 1) // 3 + 1


def quarter_bounds(year: int, quarter: int) -> tuple[date, date]:
    """Return the first and last calendar day of a quarter.

    Raises:
        ValueError: If ``quarter`` is not within 1–4.
    """
    if quarter not in (1, 2, 3, 4):
        raise ValueError(f"quarter must be within 1-4, got {quarter}.")
    start = date(year, 3 * (quarter - 1) + 1, 1)
    if quarter == 4:
        end = date(year, 12, 31)
    else:
        end = date(year, 3 * quarter + 1, 1) - timedelta(days=1)
    return start, end


def planning_horizon_start(planning_year: int) -> date:
    """First day that counts as plannable demand."""
    return date(planning_year, 1, 1)


def parse_point_date(raw: object) -> date | None:
    """Parse a forecast point's ``date`` field.

    Accepts ``YYYY-MM-DD`` or a full ISO timestamp (trailing ``Z`` allowed).
    Returns ``None`` for anything unparseable so callers can skip the point.
    """
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    try:
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        return None


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)
