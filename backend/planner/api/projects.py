from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from planner.api.deps import get_change_bus, http_error
from planner.core.errors import PlannerError
from planner.db.session import get_session
from planner.models.clients import Client
from planner.models.org import Employee
from planner.models.projects import Project, ProjectMember
from planner.schemas.projects import ClientCreate, MembershipUpsert, ProjectCreate, ProjectFieldUpdate, ProjectRead
from planner.services import directory
from planner.services.changes import ChangeBus
from planner.services.membership import upsert_membership

router = APIRouter(tags=["projects"])


@router.get("/projects/search", response_model=list[ProjectRead])
def search_projects(q: str = Query(default=""), session: Session = Depends(get_session)):
    return directory.search_projects(session, q)


@router.get("/clients/search", response_model=list[Client])
def search_clients(q: str = Query(default=""), session: Session = Depends(get_session)):
    return directory.search_clients(session, q)


@router.post("/clients", response_model=Client)
def create_client(payload: ClientCreate, session: Session = Depends(get_session)):
    try:
        return directory.create_client(session, payload.name)
    except PlannerError as exc:
        raise http_error(exc) from exc


@router.post("/projects", response_model=ProjectRead)
def create_project(payload: ProjectCreate, session: Session = Depends(get_session)):
    try:
        return directory.create_project(session, payload)
    except PlannerError as exc:
        raise http_error(exc) from exc


@router.patch("/projects/{project_id}", response_model=ProjectRead)
def update_project_field(
    project_id: int,
    payload: ProjectFieldUpdate,
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_change_bus),
):
    try:
        return directory.update_project_field(session, project_id, payload.field, payload.value, bus=bus)
    except PlannerError as exc:
        raise http_error(exc) from exc


@router.put("/projects/{project_id}/members/{employee_id}", response_model=ProjectMember)
def put_project_member(
    project_id: int,
    employee_id: int,
    payload: MembershipUpsert | None = None,
    session: Session = Depends(get_session),
):
    if session.get(Project, project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found")
    if session.get(Employee, employee_id) is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    try:
        return upsert_membership(session, project_id, employee_id, payload.role if payload else None)
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Membership violates constraints")
