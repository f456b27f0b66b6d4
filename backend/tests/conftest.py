# ruff: noqa

import pytest
from sqlmodel import Session, SQLModel

import planner.models  # noqa: F401
from planner.db.session import build_engine, session_factory_for
from planner.models.clients import Client
from planner.models.org import Department, Employee
from planner.models.projects import Project
from planner.services.backend import PlannerBackend
from planner.services.changes import ChangeBus


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return session_factory_for(engine)


@pytest.fixture()
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture()
def bus():
    return ChangeBus()


@pytest.fixture()
def backend(session_factory, bus):
    return PlannerBackend(session_factory, bus)


def add(session: Session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


@pytest.fixture()
def org(session):
    """Two departments, three employees, one client with two projects."""
    design = add(session, Department(name="Design"))
    dev = add(session, Department(name="Development"))
    eve = add(session, Employee(name="Eve Example", initials="EE", department_id=design.id))
    dan = add(session, Employee(name="Dan Design", initials="DD", department_id=design.id))
    bob = add(session, Employee(name="Bob Builder", initials="BB", department_id=dev.id))
    globex = add(session, Client(name="Globex"))
    brochure = add(
        session,
        Project(title="Brochure", job_number="25_0007", client_id=globex.id, project_manager_id=dan.id),
    )
    campaign = add(session, Project(title="Spring Campaign", job_number="25_0012", client_id=globex.id))
    return {
        "design": design,
        "dev": dev,
        "eve": eve,
        "dan": dan,
        "bob": bob,
        "globex": globex,
        "brochure": brochure,
        "campaign": campaign,
    }
