from __future__ import annotations

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

PROJECT_STATUSES: tuple[str, ...] = (
    "inquiry",
    "offer",
    "in_progress",
    "implementation",
    "acceptance",
    "completed",
    "archived",
)


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    # Human-facing and intended unique, not enforced by the database.
    job_number: str | None = Field(default=None, index=True)
    status: str = Field(default="in_progress")

    client_id: int | None = Field(default=None, foreign_key="clients.id")
    project_manager_id: int | None = Field(default=None, foreign_key="employees.id")


class ProjectMember(SQLModel, table=True):
    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "employee_id", name="uq_project_members_project_id_employee_id"),
    )

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True)
    employee_id: int = Field(foreign_key="employees.id", index=True)
    role: str | None = None
