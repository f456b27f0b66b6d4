from __future__ import annotations

from typing import Any

from sqlmodel import SQLModel


class ClientCreate(SQLModel):
    name: str


class ClientRead(SQLModel):
    id: int
    name: str


class ProjectCreate(SQLModel):
    title: str
    job_number: str | None = None
    client_id: int | None = None
    status: str | None = None
    project_manager_id: int | None = None


class ProjectRead(SQLModel):
    id: int
    title: str
    job_number: str | None = None
    status: str
    client_id: int | None = None
    project_manager_id: int | None = None

    # Joined for display
    client_name: str | None = None


class ProjectFieldUpdate(SQLModel):
    field: str
    value: Any = None


class MembershipUpsert(SQLModel):
    role: str | None = None
