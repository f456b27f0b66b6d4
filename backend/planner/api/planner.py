"""Weekly planner endpoints: grid, allocation writes, change stream, ghost rows."""

from __future__ import annotations

import json
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sse_starlette.sse import EventSourceResponse
from sqlmodel import Session

from planner.api.deps import get_backend, get_change_bus, http_error
from planner.core.config import settings
from planner.core.errors import PlannerError
from planner.core.logging import get_logger
from planner.db.session import get_session
from planner.schemas.allocations import AllocationCreate, AllocationFieldUpdate, AllocationRead
from planner.schemas.ghost_rows import GhostResolution, GhostResolveRequest
from planner.schemas.planner import PlannerGrid
from planner.services import allocations as allocation_service
from planner.services.backend import PlannerBackend
from planner.services.changes import ChangeBus
from planner.services.ghost_rows import resolve_ghost_entry
from planner.services.grid import compose_grid
from planner.services.roster import list_departments, list_employees, resolve_department_filter
from planner.services.time_window import WeekWindow, resolve_week, window_from_week

router = APIRouter(prefix="/planner", tags=["planner"])
logger = get_logger(__name__)


def _window(year: int | None, week: int | None) -> WeekWindow:
    if year is None or week is None:
        return resolve_week(date.today())
    try:
        return window_from_week(year, week)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{year} has no ISO week {week}",
        )


@router.get("/grid", response_model=PlannerGrid)
def get_grid(
    year: int | None = Query(default=None),
    week: int | None = Query(default=None),
    department_id: str | None = Query(default=None),
    viewer_id: int | None = Query(default=None),
    session: Session = Depends(get_session),
) -> PlannerGrid:
    window = _window(year, week)
    departments = list_departments(session)
    employees = list_employees(session)
    viewer = next((e for e in employees if e.id == viewer_id), None) if viewer_id is not None else None
    try:
        dept_id = resolve_department_filter(department_id, departments, viewer)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="department_id is invalid")
    allocations = allocation_service.list_allocations(session, window.year, window.week)
    return compose_grid(window, employees, departments, allocations, dept_id)


@router.get("/allocations", response_model=list[AllocationRead])
def list_allocations(
    year: int = Query(),
    week: int = Query(),
    session: Session = Depends(get_session),
) -> list[AllocationRead]:
    window = _window(year, week)
    return allocation_service.list_allocations(session, window.year, window.week)


@router.post("/allocations", response_model=AllocationRead)
def create_allocation(
    payload: AllocationCreate,
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_change_bus),
) -> AllocationRead:
    window = _window(payload.year, payload.week_number)
    try:
        return allocation_service.create_allocation(
            session, payload.employee_id, payload.project_id, window.year, window.week, bus=bus
        )
    except PlannerError as exc:
        raise http_error(exc) from exc


@router.patch("/allocations/{allocation_id}", response_model=AllocationRead)
def update_allocation_field(
    allocation_id: int,
    payload: AllocationFieldUpdate,
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_change_bus),
) -> AllocationRead:
    try:
        allocation_service.update_allocation_field(session, allocation_id, payload.field, payload.value, bus=bus)
        return allocation_service.get_allocation(session, allocation_id)
    except PlannerError as exc:
        raise http_error(exc) from exc


@router.delete("/allocations/{allocation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_allocation(
    allocation_id: int,
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_change_bus),
) -> None:
    try:
        allocation_service.delete_allocation(session, allocation_id, bus=bus)
    except PlannerError as exc:
        raise http_error(exc) from exc


@router.post("/ghost-rows/resolve", response_model=GhostResolution)
async def resolve_ghost_row(
    payload: GhostResolveRequest,
    backend: PlannerBackend = Depends(get_backend),
) -> GhostResolution:
    """Resolve one ghost-row entry; title-only entries come back as needs_disambiguation."""
    window = _window(payload.year, payload.week_number)
    try:
        return await resolve_ghost_entry(
            payload.entry,
            employee_id=payload.employee_id,
            window=window,
            store=backend.store,
            directory=backend.directory,
        )
    except PlannerError as exc:
        raise http_error(exc) from exc


@router.get("/stream")
async def stream_changes(
    request: Request,
    year: int | None = Query(default=None),
    week: int | None = Query(default=None),
    bus: ChangeBus = Depends(get_change_bus),
) -> EventSourceResponse:
    """Stream allocation changes as SSE events, optionally scoped to one window."""

    async def event_generator():
        async for change in bus.stream():
            if await request.is_disconnected():
                break
            if year is not None and change.year is not None and change.year != year:
                continue
            if week is not None and change.week_number is not None and change.week_number != week:
                continue
            yield {"event": change.kind, "data": json.dumps(change.as_payload())}
        logger.info("planner.stream.closed")

    return EventSourceResponse(event_generator(), ping=settings.stream_ping_seconds)
