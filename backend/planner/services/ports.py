"""Async collaborator interfaces consumed by the planner session and ghost rows."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from planner.models.clients import Client
from planner.models.org import Department, Employee
from planner.schemas.allocations import AllocationRead
from planner.schemas.projects import ProjectCreate, ProjectRead
from planner.services.changes import ChangeListener


class AllocationStore(Protocol):
    async def list_allocations(self, year: int, week_number: int) -> list[AllocationRead]: ...

    async def create_allocation(
        self, employee_id: int, project_id: int, year: int, week_number: int
    ) -> AllocationRead: ...

    async def update_allocation_field(self, allocation_id: int, field: str, value: Any) -> None: ...

    async def delete_allocation(self, allocation_id: int) -> None: ...

    def subscribe(self, on_change: ChangeListener) -> Callable[[], None]: ...


class ProjectDirectory(Protocol):
    async def search_projects(self, query: str) -> list[ProjectRead]: ...

    async def search_clients(self, query: str) -> list[Client]: ...

    async def find_project_by_job_number(self, job_number: str) -> ProjectRead | None: ...

    async def find_project_by_title(self, title: str) -> ProjectRead | None: ...

    async def get_or_create_client(self, name: str) -> tuple[Client, bool]: ...

    async def create_client(self, name: str) -> Client: ...

    async def create_project(self, payload: ProjectCreate) -> ProjectRead: ...

    async def update_project_field(self, project_id: int, field: str, value: Any) -> None: ...


class RosterProvider(Protocol):
    async def list_employees(self) -> list[Employee]: ...

    async def list_departments(self) -> list[Department]: ...
