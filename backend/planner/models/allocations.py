from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from planner.core.time import utcnow


class ResourceAllocation(SQLModel, table=True):
    """One task slice of an employee's week on a project.

    Several rows may exist for the same (employee, project, week); they are
    never merged.
    """

    __tablename__ = "resource_allocations"

    id: int | None = Field(default=None, primary_key=True)
    employee_id: int = Field(foreign_key="employees.id", index=True)
    project_id: int = Field(foreign_key="projects.id", index=True)

    year: int = Field(index=True)
    week_number: int = Field(index=True, ge=1, le=53)

    monday: float = Field(default=0.0, ge=0)
    tuesday: float = Field(default=0.0, ge=0)
    wednesday: float = Field(default=0.0, ge=0)
    thursday: float = Field(default=0.0, ge=0)
    friday: float = Field(default=0.0, ge=0)

    task_description: str = Field(default="")
    comment: str = Field(default="")

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
