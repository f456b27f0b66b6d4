from __future__ import annotations

from sqlmodel import Session, col, select

from planner.models.org import Department, Employee

ALL_DEPARTMENTS = "all"


def list_departments(session: Session) -> list[Department]:
    return list(session.exec(select(Department).order_by(col(Department.name).asc())).all())


def list_employees(session: Session) -> list[Employee]:
    return list(session.exec(select(Employee).order_by(col(Employee.name).asc(), col(Employee.id).asc())).all())


def resolve_department_filter(
    requested: int | str | None,
    departments: list[Department],
    viewer: Employee | None = None,
) -> int | None:
    """Turn the filter control's value into a department id; None means all departments.

    An absent filter falls back to the viewer's department, then to the
    first department by name.
    """
    if requested == ALL_DEPARTMENTS:
        return None
    if requested is not None and requested != "":
        return int(requested)
    if viewer is not None and viewer.department_id is not None:
        return viewer.department_id
    if departments:
        return sorted(departments, key=lambda d: d.name.lower())[0].id
    return None
