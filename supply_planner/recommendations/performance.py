"""
Observed supplier performance derived from historical location reports.

Two figures feed the pipeline:
  - failure rate per (supplier, component): mean of every failure record
    for the pair across all reports; 0 when never observed.
  - lead-time variance per supplier: mean ``lead_time_variance`` over all
    of the supplier's deliveries; 0 when it has none.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from supply_planner.models.history import LocationReport
from supply_planner.utils.numeric import mean


@dataclass
class SupplierPerformance:
    """Observed failure rates and delivery variance.

    Attributes:
        failure_rates: ``(supplier_id, component_id)`` → mean failure rate.
        lead_time_variance: ``supplier_id`` → mean lead-time variance.
    """

    failure_rates: dict[tuple[str, str], float] = field(default_factory=dict)
    lead_time_variance: dict[str, float] = field(default_factory=dict)

    def failure_rate(self, supplier_id: str, component_id: str) -> float:
        return self.failure_rates.get((supplier_id, component_id), 0.0)

    def lead_time_variance_for(self, supplier_id: str) -> float:
        return self.lead_time_variance.get(supplier_id, 0.0)


def analyze_supplier_performance(reports: list[LocationReport]) -> SupplierPerformance:
    """Aggregate failure and delivery records from every report."""
    failures: dict[tuple[str, str], list[float]] = {}
    variances: dict[str, list[float]] = {}

    for report in reports:
        for rec in report.component_failures:
            failures.setdefault((rec.supplier_id, rec.component_id), []).append(rec.failure_rate)
        for rec in report.deliveries:
            variances.setdefault(rec.supplier_id, []).append(rec.lead_time_variance)

    return SupplierPerformance(
        failure_rates={key: mean(vals) for key, vals in failures.items()},
        lead_time_variance={sid: mean(vals) for sid, vals in variances.items()},
    )
