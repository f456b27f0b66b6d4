from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from planner.core.config import settings
from planner.core.logging import get_logger
from planner.models.projects import ProjectMember

logger = get_logger(__name__)


def get_membership(session: Session, project_id: int, employee_id: int) -> ProjectMember | None:
    return session.exec(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.employee_id == employee_id,
        )
    ).first()


def upsert_membership(
    session: Session,
    project_id: int,
    employee_id: int,
    role: str | None = None,
) -> ProjectMember:
    """Register the employee on the project; an existing pair is left as is."""
    existing = get_membership(session, project_id, employee_id)
    if existing is not None:
        return existing

    member = ProjectMember(
        project_id=project_id,
        employee_id=employee_id,
        role=role or settings.default_member_role,
    )
    session.add(member)
    try:
        session.commit()
    except IntegrityError:
        # Lost the race against a concurrent insert of the same pair.
        session.rollback()
        existing = get_membership(session, project_id, employee_id)
        if existing is None:
            raise
        return existing
    session.refresh(member)
    return member


def sync_membership(session: Session, project_id: int, employee_id: int) -> bool:
    """Fire-and-forget membership registration after an allocation was created.

    Must run after the allocation commit so a failure here never rolls it back.
    Returns False when registration failed (already logged).
    """
    try:
        upsert_membership(session, project_id, employee_id)
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning(
            "planner.membership.sync_failed project_id=%s employee_id=%s error=%s",
            project_id,
            employee_id,
            str(exc),
        )
        return False
    return True
