"""Planner session: the weekly grid as one user sees and edits it.

Holds the local allocation cache for the active window and applies every
write optimistically before the store call. Failed writes are reported as
notices, the affected row is marked stale and a refetch reconciles the cache
with the store. Change notifications trigger a refetch that replaces the cache
while focused cell buffers stay untouched until blur.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

from planner.core.config import settings
from planner.core.errors import PlannerError, ValidationError
from planner.core.logging import get_logger
from planner.models.org import Department, Employee
from planner.schemas.allocations import EDITABLE_FIELDS, AllocationRead
from planner.schemas.planner import PlannerGrid
from planner.services.cell_editors import CellEditor, strategy_for_field
from planner.services.changes import AllocationChange
from planner.services.ghost_rows import GhostRow
from planner.services.grid import compose_grid
from planner.services.ports import AllocationStore, ProjectDirectory, RosterProvider
from planner.services.roster import resolve_department_filter
from planner.services.time_window import WeekWindow, resolve_week, step_week

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Notice:
    level: Literal["info", "warning", "error"]
    message: str


class PlannerSession:
    def __init__(
        self,
        store: AllocationStore,
        directory: ProjectDirectory,
        roster: RosterProvider,
        *,
        today: date | None = None,
        viewer: Employee | None = None,
        department: int | str | None = None,
        text_delay: float | None = None,
    ):
        self.store = store
        self.directory = directory
        self.roster = roster
        self.current_date = today or date.today()
        self.viewer = viewer
        self.text_delay = text_delay

        self.employees: list[Employee] = []
        self.departments: list[Department] = []
        self.department_id: int | None = None
        self._requested_department = department

        self.allocations: dict[int, AllocationRead] = {}
        self.stale_ids: set[int] = set()
        self.notices: list[Notice] = []
        self.loading = False

        self._editors: dict[tuple[int, str], CellEditor] = {}
        self._ghost_rows: dict[tuple[int, int], GhostRow] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._unsubscribe = None
        self._refresh_requested = False
        self._refresh_future: asyncio.Future[None] | None = None

    # -- lifecycle -------------------------------------------------------

    @property
    def window(self) -> WeekWindow:
        return resolve_week(self.current_date)

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.store.subscribe(self._on_change)
        self.employees = await self.roster.list_employees()
        self.departments = await self.roster.list_departments()
        self.department_id = resolve_department_filter(self._requested_department, self.departments, self.viewer)
        await self.refresh()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for editor in self._editors.values():
            editor.cancel_timer()

    async def settle(self) -> None:
        """Wait for pending commits and refetches."""
        while True:
            await asyncio.sleep(0)
            pending = [t for t in self._tasks if not t.done()]
            for editor in self._editors.values():
                await editor.flush()
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # -- window and filter ----------------------------------------------

    async def step_week(self, delta: int) -> WeekWindow:
        self.current_date = step_week(self.current_date, delta)
        self._editors.clear()
        for row in self._ghost_rows.values():
            row.reset()
        await self.refresh()
        return self.window

    def set_department(self, department: int | str | None) -> None:
        self._requested_department = department
        self.department_id = resolve_department_filter(department, self.departments, self.viewer)

    # -- fetching --------------------------------------------------------

    async def refresh(self) -> None:
        """Replace the cache with the freshest fetch of the active window.

        Concurrent callers share one fetch loop; every caller returns only
        after a fetch that started after its request has been applied.
        """
        self._refresh_requested = True
        if self._refresh_future is None or self._refresh_future.done():
            self._refresh_future = asyncio.ensure_future(self._refresh_loop())
        await asyncio.shield(self._refresh_future)

    async def _refresh_loop(self) -> None:
        self.loading = True
        try:
            while self._refresh_requested:
                self._refresh_requested = False
                window = self.window
                try:
                    fetched = await self.store.list_allocations(window.year, window.week)
                except PlannerError as exc:
                    self._report("load", exc)
                    return
                if window != self.window:
                    self._refresh_requested = True
                    continue
                self._apply_fetch(fetched)
        finally:
            self.loading = False

    def _apply_fetch(self, fetched: list[AllocationRead]) -> None:
        self.allocations = {a.id: a for a in fetched}
        self.stale_ids.clear()
        for (allocation_id, field), editor in list(self._editors.items()):
            alloc = self.allocations.get(allocation_id)
            if alloc is None:
                self._editors.pop((allocation_id, field)).cancel_timer()
                continue
            editor.sync_from_server(getattr(alloc, field))

    def _on_change(self, change: AllocationChange) -> None:
        # May run on a store worker thread.
        if self._loop is None or self._loop.is_closed():
            return
        window = self.window
        if change.year is not None and (change.year, change.week_number) != (window.year, window.week):
            return
        self._loop.call_soon_threadsafe(self._spawn_refresh)

    def _spawn_refresh(self) -> None:
        self._track(self._loop.create_task(self.refresh()))

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -- view ------------------------------------------------------------

    def grid(self) -> PlannerGrid:
        return compose_grid(
            self.window,
            self.employees,
            self.departments,
            list(self.allocations.values()),
            self.department_id,
            ghost_rows=settings.ghost_rows_per_employee,
            stale_ids=self.stale_ids,
        )

    # -- cell editing ----------------------------------------------------

    def editor(self, allocation_id: int, field: str) -> CellEditor:
        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Field '{field}' is not editable")
        key = (allocation_id, field)
        if key not in self._editors:
            alloc = self.allocations.get(allocation_id)
            if alloc is None:
                raise ValidationError(f"Allocation {allocation_id} is not in the current window")
            self._editors[key] = CellEditor(
                allocation_id,
                field,
                getattr(alloc, field),
                self.commit_field,
                strategy_for_field(field, text_delay=self.text_delay),
                on_commit=self.apply_local,
            )
        return self._editors[key]

    def apply_local(self, allocation_id: int, field: str, value: Any) -> None:
        alloc = self.allocations.get(allocation_id)
        if alloc is not None:
            self.allocations[allocation_id] = alloc.model_copy(update={field: value})

    async def commit_field(self, allocation_id: int, field: str, value: Any) -> None:
        self.apply_local(allocation_id, field, value)
        try:
            await self.store.update_allocation_field(allocation_id, field, value)
        except PlannerError as exc:
            self._report("update", exc, allocation_id=allocation_id)

    async def delete_allocation(self, allocation_id: int) -> None:
        self.allocations.pop(allocation_id, None)
        for key in [k for k in self._editors if k[0] == allocation_id]:
            self._editors.pop(key).cancel_timer()
        try:
            await self.store.delete_allocation(allocation_id)
        except PlannerError as exc:
            self._report("delete", exc, allocation_id=allocation_id)

    async def update_project_field(self, project_id: int, field: str, value: Any) -> None:
        """Inline edit of a project's status or manager from an allocation row."""
        try:
            await self.directory.update_project_field(project_id, field, value)
        except PlannerError as exc:
            self._report("project_update", exc)
            return
        await self.refresh()

    # -- ghost rows ------------------------------------------------------

    def ghost_row(self, employee_id: int, slot: int = 0) -> GhostRow:
        key = (employee_id, slot)
        if key not in self._ghost_rows:
            self._ghost_rows[key] = GhostRow(
                employee_id,
                lambda: self.window,
                self.store,
                self.directory,
                slot=slot,
                on_created=self._add_allocation,
                on_error=lambda exc: self._report("create", exc),
            )
        return self._ghost_rows[key]

    def _add_allocation(self, allocation: AllocationRead) -> None:
        window = self.window
        if (allocation.year, allocation.week_number) == (window.year, window.week):
            self.allocations[allocation.id] = allocation

    # -- errors ----------------------------------------------------------

    def _report(self, op: str, exc: PlannerError, *, allocation_id: int | None = None) -> None:
        logger.warning(
            "planner.session.%s_failed allocation_id=%s error_type=%s error=%s",
            op,
            allocation_id,
            exc.__class__.__name__,
            str(exc),
        )
        self.notices.append(Notice(level="error", message=f"Could not save change ({op}): {exc}"))
        if allocation_id is not None:
            self.stale_ids.add(allocation_id)
        if self._loop is not None and op != "load":
            self._track(self._loop.create_task(self.refresh()))
