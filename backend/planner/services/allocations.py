"""Allocation persistence: window listing with project/client hydration and single-field writes."""

from __future__ import annotations

import math
from typing import Any

from sqlmodel import Session, col, select

from planner.core.errors import AllocationNotFoundError, ProjectNotFoundError, ValidationError
from planner.core.logging import get_logger
from planner.core.time import utcnow
from planner.models.allocations import ResourceAllocation
from planner.models.clients import Client
from planner.models.org import Employee
from planner.models.projects import Project
from planner.schemas.allocations import DAY_FIELDS, EDITABLE_FIELDS, AllocationRead
from planner.schemas.projects import ClientRead, ProjectRead
from planner.services.changes import AllocationChange, ChangeBus, change_bus
from planner.services.membership import sync_membership

logger = get_logger(__name__)


def parse_hours(value: Any) -> float:
    """Coerce user input to a non-negative hour count; anything unparsable is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return 0.0
    try:
        hours = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(hours) or hours < 0:
        return 0.0
    return hours


def coerce_field_value(field: str, value: Any) -> float | str:
    if field not in EDITABLE_FIELDS:
        raise ValidationError(f"Field '{field}' is not editable")
    if field in DAY_FIELDS:
        return parse_hours(value)
    return "" if value is None else str(value)


def project_read(project: Project, client: Client | None = None) -> ProjectRead:
    return ProjectRead(
        id=project.id,
        title=project.title,
        job_number=project.job_number,
        status=project.status,
        client_id=project.client_id,
        project_manager_id=project.project_manager_id,
        client_name=client.name if client is not None else None,
    )


def hydrate(
    allocations: list[ResourceAllocation],
    projects: dict[int, Project],
    clients: dict[int, Client],
    managers: dict[int, Employee],
) -> list[AllocationRead]:
    out: list[AllocationRead] = []
    for a in allocations:
        project = projects.get(a.project_id)
        client = clients.get(project.client_id) if project and project.client_id else None
        manager = managers.get(project.project_manager_id) if project and project.project_manager_id else None
        out.append(
            AllocationRead(
                **a.model_dump(exclude={"created_at", "updated_at"}),
                project=project_read(project, client) if project else None,
                client=ClientRead(id=client.id, name=client.name) if client else None,
                project_manager_initials=manager.initials if manager else None,
            )
        )
    return out


def _hydrate_from_db(session: Session, allocations: list[ResourceAllocation]) -> list[AllocationRead]:
    project_ids = {a.project_id for a in allocations}
    projects = {
        p.id: p for p in session.exec(select(Project).where(col(Project.id).in_(project_ids))).all()
    } if project_ids else {}

    client_ids = {p.client_id for p in projects.values() if p.client_id is not None}
    clients = {
        c.id: c for c in session.exec(select(Client).where(col(Client.id).in_(client_ids))).all()
    } if client_ids else {}

    manager_ids = {p.project_manager_id for p in projects.values() if p.project_manager_id is not None}
    managers = {
        e.id: e for e in session.exec(select(Employee).where(col(Employee.id).in_(manager_ids))).all()
    } if manager_ids else {}

    return hydrate(allocations, projects, clients, managers)


def list_allocations(session: Session, year: int, week_number: int) -> list[AllocationRead]:
    rows = session.exec(
        select(ResourceAllocation)
        .where(ResourceAllocation.year == year, ResourceAllocation.week_number == week_number)
        .order_by(col(ResourceAllocation.id).asc())
    ).all()
    return _hydrate_from_db(session, list(rows))


def get_allocation(session: Session, allocation_id: int) -> AllocationRead:
    alloc = session.get(ResourceAllocation, allocation_id)
    if alloc is None:
        raise AllocationNotFoundError(allocation_id)
    return _hydrate_from_db(session, [alloc])[0]


def create_allocation(
    session: Session,
    employee_id: int,
    project_id: int | None,
    year: int,
    week_number: int,
    *,
    bus: ChangeBus = change_bus,
) -> AllocationRead:
    """Create an empty allocation and register the employee on the project.

    The membership step runs after the allocation commit; its failure is
    logged and does not undo the allocation.
    """
    if project_id is None:
        raise ValidationError("An allocation needs a project")
    if session.get(Project, project_id) is None:
        raise ProjectNotFoundError(project_id)
    if session.get(Employee, employee_id) is None:
        raise ValidationError(f"Employee {employee_id} does not exist")
    if not 1 <= week_number <= 53:
        raise ValidationError(f"Week {week_number} is out of range")

    alloc = ResourceAllocation(
        employee_id=employee_id,
        project_id=project_id,
        year=year,
        week_number=week_number,
    )
    session.add(alloc)
    session.commit()
    session.refresh(alloc)

    sync_membership(session, project_id, employee_id)

    logger.info(
        "planner.allocation.created allocation_id=%s employee_id=%s project_id=%s year=%s week=%s",
        alloc.id,
        employee_id,
        project_id,
        year,
        week_number,
    )
    bus.publish(
        AllocationChange(
            kind="allocation.created",
            allocation_id=alloc.id,
            project_id=project_id,
            year=year,
            week_number=week_number,
        )
    )
    return _hydrate_from_db(session, [alloc])[0]


def update_allocation_field(
    session: Session,
    allocation_id: int,
    field: str,
    value: Any,
    *,
    bus: ChangeBus = change_bus,
) -> float | str:
    """Write one field of one allocation and return the stored value.

    Only the touched column is part of the UPDATE, so concurrent edits to
    other fields of the same row survive. Same-field edits are last-write-wins.
    """
    coerced = coerce_field_value(field, value)
    alloc = session.get(ResourceAllocation, allocation_id)
    if alloc is None:
        raise AllocationNotFoundError(allocation_id)

    setattr(alloc, field, coerced)
    alloc.updated_at = utcnow()
    session.add(alloc)
    session.commit()

    bus.publish(
        AllocationChange(
            kind="allocation.updated",
            allocation_id=allocation_id,
            project_id=alloc.project_id,
            year=alloc.year,
            week_number=alloc.week_number,
            fields={field: coerced},
        )
    )
    return coerced


def delete_allocation(session: Session, allocation_id: int, *, bus: ChangeBus = change_bus) -> None:
    alloc = session.get(ResourceAllocation, allocation_id)
    if alloc is None:
        raise AllocationNotFoundError(allocation_id)
    change = AllocationChange(
        kind="allocation.deleted",
        allocation_id=allocation_id,
        project_id=alloc.project_id,
        year=alloc.year,
        week_number=alloc.week_number,
    )
    session.delete(alloc)
    session.commit()
    logger.info("planner.allocation.deleted allocation_id=%s", allocation_id)
    bus.publish(change)
