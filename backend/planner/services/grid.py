"""Join of roster and window allocations into per-employee row-groups."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from planner.core.config import settings
from planner.core.logging import get_logger
from planner.models.org import Department, Employee
from planner.schemas.allocations import AllocationRead
from planner.schemas.org import EmployeeRead
from planner.schemas.planner import GridRow, PlannerGrid, RowGroup
from planner.services.aggregator import aggregate
from planner.services.time_window import WeekWindow

logger = get_logger(__name__)


def build_grid(
    employees: Iterable[Employee],
    allocations: Iterable[AllocationRead],
    department_id: int | None,
    *,
    ghost_rows: int | None = None,
    stale_ids: set[int] | None = None,
) -> list[RowGroup]:
    """One row-group per employee in the department (all when department_id is None).

    Allocations of employees outside the filter are dropped; allocations whose
    project no longer resolves stay in the grid flagged as orphaned.
    """
    by_employee: dict[int, list[AllocationRead]] = defaultdict(list)
    for a in allocations:
        by_employee[a.employee_id].append(a)

    stale_ids = stale_ids or set()
    ghosts = settings.ghost_rows_per_employee if ghost_rows is None else ghost_rows

    groups: list[RowGroup] = []
    for emp in sorted(employees, key=lambda e: (e.name.lower(), e.id or 0)):
        if department_id is not None and emp.department_id != department_id:
            continue
        rows: list[GridRow] = []
        for a in by_employee.get(emp.id, []):
            if a.orphaned:
                logger.debug("planner.grid.orphaned allocation_id=%s project_id=%s", a.id, a.project_id)
            rows.append(GridRow(allocation=a, orphaned=a.orphaned, stale=a.id in stale_ids))
        groups.append(
            RowGroup(
                employee=EmployeeRead.model_validate(emp, from_attributes=True),
                rows=rows,
                ghost_rows=ghosts,
            )
        )
    return groups


def compose_grid(
    window: WeekWindow,
    employees: Iterable[Employee],
    departments: list[Department],
    allocations: Iterable[AllocationRead],
    department_id: int | None,
    *,
    ghost_rows: int | None = None,
    stale_ids: set[int] | None = None,
) -> PlannerGrid:
    groups = build_grid(employees, allocations, department_id, ghost_rows=ghost_rows, stale_ids=stale_ids)
    totals = aggregate(groups)
    for group in groups:
        group.totals = totals.per_employee[group.employee.id]
    return PlannerGrid(
        year=window.year,
        week_number=window.week,
        week_start=window.start,
        week_end=window.end,
        label=window.label(),
        department_id=department_id,
        departments=departments,
        groups=groups,
        totals=totals.grand,
    )
