"""View models for the composed weekly grid."""

from __future__ import annotations

from datetime import date

from sqlmodel import Field, SQLModel

from planner.models.org import Department
from planner.schemas.allocations import AllocationRead
from planner.schemas.org import EmployeeRead


class DayTotals(SQLModel):
    monday: float = 0.0
    tuesday: float = 0.0
    wednesday: float = 0.0
    thursday: float = 0.0
    friday: float = 0.0

    @property
    def total(self) -> float:
        return self.monday + self.tuesday + self.wednesday + self.thursday + self.friday


class GridRow(SQLModel):
    allocation: AllocationRead
    orphaned: bool = False
    # Set when a store write for this row failed and a refetch is pending.
    stale: bool = False


class RowGroup(SQLModel):
    employee: EmployeeRead
    rows: list[GridRow] = Field(default_factory=list)
    ghost_rows: int = 0
    totals: DayTotals = Field(default_factory=DayTotals)


class PlannerGrid(SQLModel):
    year: int
    week_number: int
    week_start: date
    week_end: date
    label: str = ""
    department_id: int | None = None
    departments: list[Department] = Field(default_factory=list)
    groups: list[RowGroup] = Field(default_factory=list)
    totals: DayTotals = Field(default_factory=DayTotals)
