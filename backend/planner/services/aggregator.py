from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from planner.schemas.allocations import DAY_FIELDS, AllocationRead
from planner.schemas.planner import DayTotals, RowGroup


@dataclass(slots=True)
class GridTotals:
    per_employee: dict[int, DayTotals] = field(default_factory=dict)
    grand: DayTotals = field(default_factory=DayTotals)


def day_totals(allocations: Iterable[AllocationRead]) -> DayTotals:
    sums = dict.fromkeys(DAY_FIELDS, 0.0)
    for a in allocations:
        for day in DAY_FIELDS:
            sums[day] += a.hours(day)
    return DayTotals(**sums)


def aggregate(groups: Iterable[RowGroup]) -> GridTotals:
    """Per-employee and grand totals over every visible row, orphans included."""
    totals = GridTotals()
    everything: list[AllocationRead] = []
    for group in groups:
        allocations = [row.allocation for row in group.rows]
        totals.per_employee[group.employee.id] = day_totals(allocations)
        everything.extend(allocations)
    totals.grand = day_totals(everything)
    return totals


def format_hours(value: float | None) -> str:
    """Cell text: zero (or absent) renders empty, negatives never show."""
    hours = max(0.0, float(value or 0.0))
    if hours == 0:
        return ""
    return f"{hours:.10g}"
