"""Ghost rows: free-text creation of allocations at the end of each row-group.

A ghost row collects a client name, a job number and a project title. On
commit (Enter, or leaving the title or job-number input) the entry resolves
to one of:

1. job number equals an existing project's job number -> link that project
2. title equals an existing project's title (case-insensitive) -> link it
3. title plus client and/or job number -> create client (unless an exact
   case-insensitive match exists), project and allocation
4. title alone -> ask for a client or job number before creating anything
5. nothing typed -> no-op
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from planner.core.config import settings
from planner.core.errors import PlannerError
from planner.core.logging import get_logger
from planner.models.clients import Client
from planner.schemas.allocations import AllocationRead
from planner.schemas.ghost_rows import GhostEntry, GhostOutcome, GhostResolution
from planner.schemas.projects import ClientRead, ProjectCreate, ProjectRead
from planner.services.ports import AllocationStore, ProjectDirectory
from planner.services.time_window import WeekWindow

logger = get_logger(__name__)

GHOST_FIELDS: tuple[str, ...] = ("client_name", "job_number", "title")
COMMIT_ON_BLUR: frozenset[str] = frozenset({"title", "job_number"})


class GhostRowState(str, Enum):
    IDLE = "idle"
    TYPING = "typing"
    AWAITING_DISAMBIGUATION = "awaiting_disambiguation"


@dataclass(slots=True)
class DisambiguationPrompt:
    title: str
    client_name: str = ""
    job_number: str = ""


async def link_project(
    project: ProjectRead,
    *,
    employee_id: int,
    window: WeekWindow,
    store: AllocationStore,
) -> GhostResolution:
    allocation = await store.create_allocation(employee_id, project.id, window.year, window.week)
    return GhostResolution(outcome=GhostOutcome.LINKED, allocation=allocation, project=project)


async def create_from_entry(
    entry: GhostEntry,
    *,
    employee_id: int,
    window: WeekWindow,
    store: AllocationStore,
    directory: ProjectDirectory,
) -> GhostResolution:
    """Create (client,) project and allocation from a title plus client and/or job number."""
    entry = entry.normalized()

    # Best-effort duplicate check right before creating; not transactional.
    if entry.job_number:
        existing = await directory.find_project_by_job_number(entry.job_number)
        if existing is not None:
            return await link_project(existing, employee_id=employee_id, window=window, store=store)

    client: Client | None = None
    created_client = False
    if entry.client_name:
        client, created_client = await directory.get_or_create_client(entry.client_name)

    project = await directory.create_project(
        ProjectCreate(
            title=entry.title,
            job_number=entry.job_number or None,
            client_id=client.id if client is not None else None,
        )
    )
    allocation = await store.create_allocation(employee_id, project.id, window.year, window.week)
    logger.info(
        "planner.ghost_row.created employee_id=%s project_id=%s client_id=%s created_client=%s",
        employee_id,
        project.id,
        client.id if client is not None else None,
        created_client,
    )
    return GhostResolution(
        outcome=GhostOutcome.CREATED,
        allocation=allocation,
        project=project,
        client=ClientRead(id=client.id, name=client.name) if client is not None else None,
        created_project=True,
        created_client=created_client,
    )


async def resolve_ghost_entry(
    entry: GhostEntry,
    *,
    employee_id: int,
    window: WeekWindow,
    store: AllocationStore,
    directory: ProjectDirectory,
) -> GhostResolution:
    entry = entry.normalized()
    if entry.is_empty:
        return GhostResolution(outcome=GhostOutcome.NOOP)

    if entry.job_number:
        project = await directory.find_project_by_job_number(entry.job_number)
        if project is not None:
            return await link_project(project, employee_id=employee_id, window=window, store=store)

    if entry.title:
        project = await directory.find_project_by_title(entry.title)
        if project is not None:
            return await link_project(project, employee_id=employee_id, window=window, store=store)

        if entry.client_name or entry.job_number:
            return await create_from_entry(
                entry,
                employee_id=employee_id,
                window=window,
                store=store,
                directory=directory,
            )
        return GhostResolution(outcome=GhostOutcome.NEEDS_DISAMBIGUATION)

    return GhostResolution(outcome=GhostOutcome.NOOP)


class GhostRow:
    """Editing state of one ghost row of one employee's row-group."""

    def __init__(
        self,
        employee_id: int,
        window: Callable[[], WeekWindow],
        store: AllocationStore,
        directory: ProjectDirectory,
        *,
        slot: int = 0,
        on_created: Callable[[AllocationRead], None] | None = None,
        on_error: Callable[[PlannerError], None] | None = None,
    ):
        self.employee_id = employee_id
        self.slot = slot
        self._window = window
        self._store = store
        self._directory = directory
        self._on_created = on_created
        self._on_error = on_error

        self.client_name = ""
        self.job_number = ""
        self.title = ""
        self.project_suggestions: list[ProjectRead] = []
        self.client_suggestions: list[Client] = []
        self.prompt: DisambiguationPrompt | None = None
        self._latest_query: dict[str, str] = {}
        self._busy = False

    @property
    def state(self) -> GhostRowState:
        if self.prompt is not None:
            return GhostRowState.AWAITING_DISAMBIGUATION
        if self.client_name or self.job_number or self.title:
            return GhostRowState.TYPING
        return GhostRowState.IDLE

    @property
    def entry(self) -> GhostEntry:
        return GhostEntry(client_name=self.client_name, job_number=self.job_number, title=self.title)

    def reset(self) -> None:
        self.client_name = ""
        self.job_number = ""
        self.title = ""
        self.project_suggestions = []
        self.client_suggestions = []
        self.prompt = None
        self._latest_query = {}

    async def input(self, field: str, text: str) -> None:
        """Keystroke in one of the three inputs; refreshes that input's type-ahead."""
        if field not in GHOST_FIELDS:
            raise ValueError(f"Unknown ghost row field '{field}'")
        if self.state is GhostRowState.AWAITING_DISAMBIGUATION:
            return
        setattr(self, field, text)

        query = text.strip()
        self._latest_query[field] = query
        if field == "title":
            if len(query) < settings.suggestion_min_chars:
                self.project_suggestions = []
                return
            found = await self._directory.search_projects(query)
            # A newer keystroke owns the list.
            if self._latest_query.get(field) == query:
                self.project_suggestions = found[: settings.suggestion_limit]
        elif field == "client_name":
            if len(query) < settings.suggestion_min_chars:
                self.client_suggestions = []
                return
            found = await self._directory.search_clients(query)
            if self._latest_query.get(field) == query:
                self.client_suggestions = found[: settings.suggestion_limit]

    def select_client(self, client: Client) -> None:
        self.client_name = client.name
        self.client_suggestions = []

    async def select_project(self, project: ProjectRead) -> GhostResolution:
        """Picking a title suggestion links that project straight away."""
        return await self._guarded(
            lambda: link_project(
                project,
                employee_id=self.employee_id,
                window=self._window(),
                store=self._store,
            )
        )

    async def on_enter(self) -> GhostResolution:
        return await self.commit()

    async def on_blur(self, field: str) -> GhostResolution:
        if field not in COMMIT_ON_BLUR:
            return GhostResolution(outcome=GhostOutcome.NOOP)
        return await self.commit()

    async def commit(self) -> GhostResolution:
        if self.state is GhostRowState.AWAITING_DISAMBIGUATION:
            return GhostResolution(outcome=GhostOutcome.NEEDS_DISAMBIGUATION)
        if self.state is GhostRowState.IDLE:
            return GhostResolution(outcome=GhostOutcome.NOOP)

        entry = self.entry
        resolution = await self._guarded(
            lambda: resolve_ghost_entry(
                entry,
                employee_id=self.employee_id,
                window=self._window(),
                store=self._store,
                directory=self._directory,
            )
        )
        if resolution.outcome is GhostOutcome.NEEDS_DISAMBIGUATION:
            self.prompt = DisambiguationPrompt(title=entry.title.strip())
            self.project_suggestions = []
            self.client_suggestions = []
        return resolution

    async def confirm_disambiguation(self, client_name: str = "", job_number: str = "") -> GhostResolution:
        """Create the project once the prompt has a client name or a job number.

        With both left empty the prompt stays open and nothing is created.
        """
        if self.prompt is None:
            return GhostResolution(outcome=GhostOutcome.NOOP)
        self.prompt.client_name = client_name
        self.prompt.job_number = job_number
        if not client_name.strip() and not job_number.strip():
            return GhostResolution(outcome=GhostOutcome.NEEDS_DISAMBIGUATION)

        entry = GhostEntry(client_name=client_name, job_number=job_number, title=self.prompt.title)
        return await self._guarded(
            lambda: create_from_entry(
                entry,
                employee_id=self.employee_id,
                window=self._window(),
                store=self._store,
                directory=self._directory,
            )
        )

    def cancel_disambiguation(self) -> None:
        """Dismissing the prompt throws the typed title away."""
        self.reset()

    async def _guarded(self, run: Callable[[], Awaitable[GhostResolution]]) -> GhostResolution:
        # Enter followed by the blur it causes must not resolve twice.
        if self._busy:
            return GhostResolution(outcome=GhostOutcome.NOOP)
        self._busy = True
        try:
            resolution = await run()
        except PlannerError as exc:
            logger.warning(
                "planner.ghost_row.resolve_failed employee_id=%s error_type=%s error=%s",
                self.employee_id,
                exc.__class__.__name__,
                str(exc),
            )
            if self._on_error is None:
                raise
            self._on_error(exc)
            return GhostResolution(outcome=GhostOutcome.FAILED)
        finally:
            self._busy = False

        if resolution.outcome in (GhostOutcome.LINKED, GhostOutcome.CREATED):
            self.reset()
            if self._on_created is not None and resolution.allocation is not None:
                self._on_created(resolution.allocation)
        return resolution
