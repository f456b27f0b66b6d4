"""SQL-backed implementations of the collaborator interfaces.

Each call opens its own session and runs the synchronous service function in
Starlette's threadpool, so awaiting callers never block their loop.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from fastapi.concurrency import run_in_threadpool

from planner.core.errors import StoreError
from planner.core.logging import get_logger
from planner.db.session import SessionFactory
from planner.models.clients import Client
from planner.models.org import Department, Employee
from planner.schemas.allocations import AllocationRead
from planner.schemas.projects import ProjectCreate, ProjectRead
from planner.services import allocations as allocation_service
from planner.services import directory as directory_service
from planner.services import roster as roster_service
from planner.services.changes import ChangeBus, ChangeListener, change_bus

logger = get_logger(__name__)

T = TypeVar("T")


class _SqlAdapter:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def _run(self, op: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        def _call() -> T:
            with self._session_factory() as session:
                return fn(session, *args, **kwargs)

        try:
            return await run_in_threadpool(_call)
        except SQLAlchemyError as exc:
            logger.warning("planner.store.%s_failed error_type=%s error=%s", op, exc.__class__.__name__, str(exc))
            raise StoreError(f"{op} failed") from exc


class SqlAllocationStore(_SqlAdapter):
    def __init__(self, session_factory: SessionFactory, bus: ChangeBus = change_bus):
        super().__init__(session_factory)
        self.bus = bus

    async def list_allocations(self, year: int, week_number: int) -> list[AllocationRead]:
        return await self._run("list_allocations", allocation_service.list_allocations, year, week_number)

    async def create_allocation(
        self, employee_id: int, project_id: int, year: int, week_number: int
    ) -> AllocationRead:
        return await self._run(
            "create_allocation",
            allocation_service.create_allocation,
            employee_id,
            project_id,
            year,
            week_number,
            bus=self.bus,
        )

    async def update_allocation_field(self, allocation_id: int, field: str, value: Any) -> None:
        await self._run(
            "update_allocation_field",
            allocation_service.update_allocation_field,
            allocation_id,
            field,
            value,
            bus=self.bus,
        )

    async def delete_allocation(self, allocation_id: int) -> None:
        await self._run("delete_allocation", allocation_service.delete_allocation, allocation_id, bus=self.bus)

    def subscribe(self, on_change: ChangeListener) -> Callable[[], None]:
        return self.bus.subscribe(on_change)


class SqlProjectDirectory(_SqlAdapter):
    def __init__(self, session_factory: SessionFactory, bus: ChangeBus = change_bus):
        super().__init__(session_factory)
        self.bus = bus

    async def search_projects(self, query: str) -> list[ProjectRead]:
        return await self._run("search_projects", directory_service.search_projects, query)

    async def search_clients(self, query: str) -> list[Client]:
        return await self._run("search_clients", directory_service.search_clients, query)

    async def find_project_by_job_number(self, job_number: str) -> ProjectRead | None:
        return await self._run("find_project", directory_service.find_project_by_job_number, job_number)

    async def find_project_by_title(self, title: str) -> ProjectRead | None:
        return await self._run("find_project", directory_service.find_project_by_title, title)

    async def get_or_create_client(self, name: str) -> tuple[Client, bool]:
        return await self._run("create_client", directory_service.get_or_create_client, name)

    async def create_client(self, name: str) -> Client:
        return await self._run("create_client", directory_service.create_client, name)

    async def create_project(self, payload: ProjectCreate) -> ProjectRead:
        return await self._run("create_project", directory_service.create_project, payload)

    async def update_project_field(self, project_id: int, field: str, value: Any) -> None:
        await self._run(
            "update_project_field",
            directory_service.update_project_field,
            project_id,
            field,
            value,
            bus=self.bus,
        )


class SqlRosterProvider(_SqlAdapter):
    async def list_employees(self) -> list[Employee]:
        return await self._run("list_employees", roster_service.list_employees)

    async def list_departments(self) -> list[Department]:
        return await self._run("list_departments", roster_service.list_departments)


class PlannerBackend:
    """The three collaborators wired to one session factory and change bus."""

    def __init__(self, session_factory: SessionFactory, bus: ChangeBus = change_bus):
        self.store = SqlAllocationStore(session_factory, bus)
        self.directory = SqlProjectDirectory(session_factory, bus)
        self.roster = SqlRosterProvider(session_factory)


