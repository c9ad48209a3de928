"""Tests for the recommendation tag sets."""

from __future__ import annotations

from supply_planner.taxonomy.recommendation_taxonomy import (
    PRIORITY_RANK,
    AllocationReason,
    ImpactLevel,
    Priority,
    RecommendationStatus,
    RecommendationUrgency,
)


class TestTagValues:
    def test_allocation_reasons(self):
        assert {r.value for r in AllocationReason} == {
            "quality", "cost", "diversity", "safety", "q2-cost",
        }

    def test_string_round_trip(self):
        assert RecommendationUrgency("upcoming") is RecommendationUrgency.UPCOMING
        assert str(ImpactLevel.HIGH) == "high"
        assert f"{Priority.CRITICAL}" == "critical"

    def test_status_values(self):
        assert [s.value for s in RecommendationStatus] == ["high-impact", "opportunity", "optimal"]


class TestPriorityRank:
    def test_every_priority_ranked(self):
        assert set(PRIORITY_RANK) == set(Priority)

    def test_rank_order(self):
        ordered = sorted(Priority, key=PRIORITY_RANK.__getitem__)
        assert ordered == [
            Priority.CRITICAL, Priority.IMPORTANT, Priority.STANDARD, Priority.OPTIONAL,
        ]
