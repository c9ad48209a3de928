"""Tests for supply_planner/utils/time_utils.py."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from supply_planner.utils.time_utils import (
    parse_point_date,
    planning_horizon_start,
    quarter_bounds,
    quarter_of,
    utcnow,
)


class TestQuarters:
    @pytest.mark.parametrize("month,quarter", [(1, 1), (3, 1), (4, 2), (9, 3), (10, 4), (12, 4)])
    def test_quarter_of(self, month, quarter):
        assert quarter_of(date(2025, month, 15)) == quarter

    def test_bounds(self):
        assert quarter_bounds(2025, 1) == (date(2025, 1, 1), date(2025, 3, 31))
        assert quarter_bounds(2024, 1) == (date(2024, 1, 1), date(2024, 3, 31))
        assert quarter_bounds(2025, 2) == (date(2025, 4, 1), date(2025, 6, 30))
        assert quarter_bounds(2025, 4) == (date(2025, 10, 1), date(2025, 12, 31))

    def test_bounds_reject_bad_quarter(self):
        with pytest.raises(ValueError):
            quarter_bounds(2025, 0)

    def test_horizon_start(self):
        assert planning_horizon_start(2025) == date(2025, 1, 1)


class TestParsePointDate:
    @pytest.mark.parametrize("raw,expected", [
        ("2025-01-31", date(2025, 1, 31)),
        ("2025-01-31T23:00:00Z", date(2025, 1, 31)),
        ("2025-01-31 08:00:00", date(2025, 1, 31)),
        (date(2025, 2, 1), date(2025, 2, 1)),
        (datetime(2025, 2, 1, 12), date(2025, 2, 1)),
    ])
    def test_accepted(self, raw, expected):
        assert parse_point_date(raw) == expected

    @pytest.mark.parametrize("raw", ["", "  ", "31/01/2025", "2025-13-01", None, 20250101])
    def test_rejected(self, raw):
        assert parse_point_date(raw) is None


def test_utcnow_is_aware():
    assert utcnow().tzinfo == timezone.utc
