from __future__ import annotations

from sqlmodel import SQLModel


class DepartmentCreate(SQLModel):
    name: str


class EmployeeCreate(SQLModel):
    name: str
    initials: str
    department_id: int | None = None
    job_title: str | None = None


class EmployeeRead(SQLModel):
    id: int
    name: str
    initials: str
    department_id: int | None = None
    job_title: str | None = None
