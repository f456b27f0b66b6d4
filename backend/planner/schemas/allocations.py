from __future__ import annotations

from typing import Any

from sqlmodel import SQLModel

from planner.schemas.projects import ClientRead, ProjectRead

DAY_FIELDS: tuple[str, ...] = ("monday", "tuesday", "wednesday", "thursday", "friday")
TEXT_FIELDS: tuple[str, ...] = ("task_description", "comment")
EDITABLE_FIELDS: tuple[str, ...] = DAY_FIELDS + TEXT_FIELDS


class AllocationCreate(SQLModel):
    employee_id: int
    project_id: int
    year: int
    week_number: int


class AllocationFieldUpdate(SQLModel):
    field: str
    value: Any = None


class AllocationRead(SQLModel):
    id: int
    employee_id: int
    project_id: int
    year: int
    week_number: int

    monday: float = 0.0
    tuesday: float = 0.0
    wednesday: float = 0.0
    thursday: float = 0.0
    friday: float = 0.0

    task_description: str = ""
    comment: str = ""

    # Hydrated by the store; None when the project reference no longer resolves.
    project: ProjectRead | None = None
    client: ClientRead | None = None
    project_manager_initials: str | None = None

    @property
    def orphaned(self) -> bool:
        return self.project is None

    def hours(self, day: str) -> float:
        return max(0.0, float(getattr(self, day) or 0.0))
