from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from planner.core.logging import get_logger
from planner.db.session import get_session
from planner.models.org import Department, Employee
from planner.schemas.org import DepartmentCreate, EmployeeCreate
from planner.services import roster

router = APIRouter(tags=["org"])
logger = get_logger(__name__)


@router.get("/departments", response_model=list[Department])
def list_departments(session: Session = Depends(get_session)):
    return roster.list_departments(session)


@router.post("/departments", response_model=Department)
def create_department(payload: DepartmentCreate, session: Session = Depends(get_session)):
    dept = Department(name=payload.name.strip())
    session.add(dept)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Department already exists or violates constraints")

    session.refresh(dept)
    logger.info("planner.department.created department_id=%s name=%s", dept.id, dept.name)
    return dept


@router.get("/employees", response_model=list[Employee])
def list_employees(session: Session = Depends(get_session)):
    return roster.list_employees(session)


@router.post("/employees", response_model=Employee)
def create_employee(payload: EmployeeCreate, session: Session = Depends(get_session)):
    if payload.department_id is not None and session.get(Department, payload.department_id) is None:
        raise HTTPException(status_code=422, detail="department_id is invalid")

    emp = Employee(**payload.model_dump())
    session.add(emp)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Employee create violates constraints")

    session.refresh(emp)
    return Employee.model_validate(emp)
