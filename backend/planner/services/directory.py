"""Project/client directory: type-ahead search, exact lookups and creation."""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import func, or_
from sqlmodel import Session, col, select

from planner.core.config import settings
from planner.core.errors import ProjectNotFoundError, ValidationError
from planner.core.logging import get_logger
from planner.models.clients import Client
from planner.models.org import Employee
from planner.models.projects import PROJECT_STATUSES, Project
from planner.schemas.projects import ProjectCreate, ProjectRead
from planner.services.allocations import project_read
from planner.services.changes import AllocationChange, ChangeBus, change_bus

logger = get_logger(__name__)

PROJECT_EDITABLE_FIELDS: tuple[str, ...] = ("title", "job_number", "status", "client_id", "project_manager_id")


def _like(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped.lower()}%"


def _with_clients(session: Session, projects: list[Project]) -> list[ProjectRead]:
    client_ids = {p.client_id for p in projects if p.client_id is not None}
    clients = {
        c.id: c for c in session.exec(select(Client).where(col(Client.id).in_(client_ids))).all()
    } if client_ids else {}
    return [project_read(p, clients.get(p.client_id)) for p in projects]


def search_projects(session: Session, query: str, limit: int | None = None) -> list[ProjectRead]:
    """Substring match on title, job number or client name."""
    q = query.strip()
    if not q:
        return []
    pattern = _like(q)
    statement = (
        select(Project)
        .outerjoin(Client, col(Project.client_id) == col(Client.id))
        .where(
            or_(
                func.lower(col(Project.title)).like(pattern, escape="\\"),
                func.lower(col(Project.job_number)).like(pattern, escape="\\"),
                func.lower(col(Client.name)).like(pattern, escape="\\"),
            )
        )
        .order_by(func.lower(col(Project.title)).asc(), col(Project.id).asc())
        .limit(limit or settings.suggestion_limit)
    )
    return _with_clients(session, list(session.exec(statement).all()))


def search_clients(session: Session, query: str, limit: int | None = None) -> list[Client]:
    q = query.strip()
    if not q:
        return []
    statement = (
        select(Client)
        .where(func.lower(col(Client.name)).like(_like(q), escape="\\"))
        .order_by(func.lower(col(Client.name)).asc(), col(Client.id).asc())
        .limit(limit or settings.suggestion_limit)
    )
    return list(session.exec(statement).all())


def find_project_by_job_number(session: Session, job_number: str) -> ProjectRead | None:
    job_number = job_number.strip()
    if not job_number:
        return None
    project = session.exec(
        select(Project).where(Project.job_number == job_number).order_by(col(Project.id).asc())
    ).first()
    return _with_clients(session, [project])[0] if project else None


def find_project_by_title(session: Session, title: str) -> ProjectRead | None:
    title = title.strip()
    if not title:
        return None
    project = session.exec(
        select(Project)
        .where(func.lower(col(Project.title)) == title.lower())
        .order_by(col(Project.id).asc())
    ).first()
    return _with_clients(session, [project])[0] if project else None


def find_client_by_name(session: Session, name: str) -> Client | None:
    name = name.strip()
    if not name:
        return None
    return session.exec(
        select(Client).where(func.lower(col(Client.name)) == name.lower()).order_by(col(Client.id).asc())
    ).first()


def create_client(session: Session, name: str) -> Client:
    name = name.strip()
    if not name:
        raise ValidationError("Client name is required")
    client = Client(name=name)
    session.add(client)
    session.commit()
    session.refresh(client)
    logger.info("planner.client.created client_id=%s name=%s", client.id, client.name)
    return client


def get_or_create_client(session: Session, name: str) -> tuple[Client, bool]:
    """Exact case-insensitive reuse, else create. Returns (client, created)."""
    existing = find_client_by_name(session, name)
    if existing is not None:
        return existing, False
    return create_client(session, name), True


def next_job_number(session: Session, today: date | None = None) -> str:
    """Next free number of the form YY_NNNN for the current year."""
    prefix = f"{(today or date.today()).year % 100:02d}_"
    numbers = session.exec(
        select(Project.job_number).where(col(Project.job_number).startswith(prefix, autoescape=True))
    ).all()
    highest = 0
    for job_number in numbers:
        suffix = (job_number or "")[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:04d}"


def create_project(session: Session, payload: ProjectCreate) -> ProjectRead:
    title = payload.title.strip()
    if not title:
        raise ValidationError("Project title is required")
    status = payload.status or settings.default_project_status
    if status not in PROJECT_STATUSES:
        raise ValidationError(f"Unknown project status '{status}'")
    if payload.client_id is not None and session.get(Client, payload.client_id) is None:
        raise ValidationError(f"Client {payload.client_id} does not exist")

    job_number = (payload.job_number or "").strip() or next_job_number(session)
    project = Project(
        title=title,
        job_number=job_number,
        status=status,
        client_id=payload.client_id,
        project_manager_id=payload.project_manager_id,
    )
    session.add(project)
    session.commit()
    session.refresh(project)
    logger.info(
        "planner.project.created project_id=%s job_number=%s client_id=%s",
        project.id,
        project.job_number,
        project.client_id,
    )
    return _with_clients(session, [project])[0]


def update_project_field(
    session: Session,
    project_id: int,
    field: str,
    value: Any,
    *,
    bus: ChangeBus = change_bus,
) -> ProjectRead:
    if field not in PROJECT_EDITABLE_FIELDS:
        raise ValidationError(f"Field '{field}' is not editable")
    project = session.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)

    if field == "status" and value not in PROJECT_STATUSES:
        raise ValidationError(f"Unknown project status '{value}'")
    if field == "title" and not str(value or "").strip():
        raise ValidationError("Project title is required")
    if field == "project_manager_id":
        value = value or None
        if value is not None and session.get(Employee, value) is None:
            raise ValidationError(f"Employee {value} does not exist")
    if field == "client_id":
        value = value or None
        if value is not None and session.get(Client, value) is None:
            raise ValidationError(f"Client {value} does not exist")
    if field == "job_number":
        value = str(value or "").strip() or None

    setattr(project, field, value)
    session.add(project)
    session.commit()
    session.refresh(project)

    bus.publish(AllocationChange(kind="project.updated", project_id=project_id, fields={field: value}))
    return _with_clients(session, [project])[0]
