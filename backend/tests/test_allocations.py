# ruff: noqa

from datetime import timedelta

import pytest
from sqlmodel import select

from planner.core.errors import AllocationNotFoundError, ProjectNotFoundError, ValidationError
from planner.core.time import utcnow
from planner.models.allocations import ResourceAllocation
from planner.models.projects import ProjectMember
from planner.services import allocations as svc
from planner.services.aggregator import aggregate
from planner.services.grid import build_grid
from planner.services.membership import upsert_membership


def _members(session, project_id, employee_id):
    return session.exec(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.employee_id == employee_id,
        )
    ).all()


def test_create_allocation_starts_empty_and_registers_membership(session, org, bus):
    events = []
    bus.subscribe(events.append)
    alloc = svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)

    assert [getattr(alloc, d) for d in ("monday", "tuesday", "wednesday", "thursday", "friday")] == [0, 0, 0, 0, 0]
    assert alloc.task_description == "" and alloc.comment == ""
    assert alloc.project.title == "Brochure"
    assert alloc.client.name == "Globex"
    assert alloc.project_manager_initials == "DD"

    members = _members(session, org["brochure"].id, org["eve"].id)
    assert len(members) == 1
    assert members[0].role == "member"
    assert [e.kind for e in events] == ["allocation.created"]


def test_creating_twice_keeps_one_membership_and_two_allocations(session, org, bus):
    svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)
    svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)

    assert len(_members(session, org["brochure"].id, org["eve"].id)) == 1
    assert len(svc.list_allocations(session, 2025, 12)) == 2


def test_upsert_membership_is_idempotent_and_keeps_existing_role(session, org):
    first = upsert_membership(session, org["campaign"].id, org["bob"].id, role="pm")
    second = upsert_membership(session, org["campaign"].id, org["bob"].id, role="member")
    assert first.id == second.id
    assert second.role == "pm"


def test_membership_failure_does_not_undo_allocation(session, org, bus, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def broken(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr("planner.services.membership.upsert_membership", broken)
    alloc = svc.create_allocation(session, org["eve"].id, org["campaign"].id, 2025, 12, bus=bus)

    assert session.get(ResourceAllocation, alloc.id) is not None
    assert _members(session, org["campaign"].id, org["eve"].id) == []


def test_create_allocation_refuses_missing_project(session, org, bus):
    with pytest.raises(ValidationError):
        svc.create_allocation(session, org["eve"].id, None, 2025, 12, bus=bus)
    with pytest.raises(ProjectNotFoundError):
        svc.create_allocation(session, org["eve"].id, 4242, 2025, 12, bus=bus)
    assert svc.list_allocations(session, 2025, 12) == []


def test_update_touches_only_the_given_field(session, org, bus):
    alloc = svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)
    svc.update_allocation_field(session, alloc.id, "comment", "keep me", bus=bus)

    events = []
    bus.subscribe(events.append)
    stored = svc.update_allocation_field(session, alloc.id, "monday", "4", bus=bus)

    assert stored == 4.0
    row = svc.get_allocation(session, alloc.id)
    assert row.monday == 4
    assert row.comment == "keep me"
    assert events[0].fields == {"monday": 4.0}


def test_update_coerces_negative_and_rejects_unknown_fields(session, org, bus):
    alloc = svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)
    assert svc.update_allocation_field(session, alloc.id, "friday", -5, bus=bus) == 0.0
    with pytest.raises(ValidationError):
        svc.update_allocation_field(session, alloc.id, "project_id", 1, bus=bus)
    with pytest.raises(AllocationNotFoundError):
        svc.update_allocation_field(session, 999, "monday", 1, bus=bus)


def test_deleting_one_duplicate_slice_only_subtracts_its_hours(session, org, bus):
    eve, brochure = org["eve"], org["brochure"]
    a = svc.create_allocation(session, eve.id, brochure.id, 2025, 12, bus=bus)
    b = svc.create_allocation(session, eve.id, brochure.id, 2025, 12, bus=bus)
    svc.update_allocation_field(session, a.id, "task_description", "Layout", bus=bus)
    svc.update_allocation_field(session, b.id, "task_description", "Copy", bus=bus)
    svc.update_allocation_field(session, a.id, "monday", 3, bus=bus)
    svc.update_allocation_field(session, b.id, "monday", 5, bus=bus)

    before = aggregate(build_grid([eve], svc.list_allocations(session, 2025, 12), None)).grand.monday
    svc.delete_allocation(session, a.id, bus=bus)
    remaining = svc.list_allocations(session, 2025, 12)
    after = aggregate(build_grid([eve], remaining, None)).grand.monday

    assert before == 8
    assert after == 5
    assert [(r.task_description, r.monday) for r in remaining] == [("Copy", 5)]
    assert len(_members(session, brochure.id, eve.id)) == 1


def test_list_allocations_hydrates_orphans(session, org, bus):
    session.add(ResourceAllocation(employee_id=org["eve"].id, project_id=777, year=2025, week_number=12, monday=2))
    session.commit()
    rows = svc.list_allocations(session, 2025, 12)
    assert len(rows) == 1
    assert rows[0].orphaned
    assert rows[0].client is None


def test_list_allocations_is_scoped_to_window(session, org, bus):
    svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)
    svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 13, bus=bus)
    assert len(svc.list_allocations(session, 2025, 12)) == 1
    assert len(svc.list_allocations(session, 2024, 12)) == 0


def test_non_finite_hours_are_stored_as_zero(session, org, bus):
    alloc = svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)
    assert svc.update_allocation_field(session, alloc.id, "monday", "inf", bus=bus) == 0.0
    assert svc.update_allocation_field(session, alloc.id, "tuesday", "1e309", bus=bus) == 0.0
    grand = aggregate(build_grid([org["eve"]], svc.list_allocations(session, 2025, 12), None)).grand
    assert (grand.monday, grand.tuesday, grand.total) == (0, 0, 0)


def test_writes_stamp_timezone_aware_utc(session, org, bus):
    alloc = svc.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)
    svc.update_allocation_field(session, alloc.id, "comment", "stamped", bus=bus)
    row = session.get(ResourceAllocation, alloc.id)
    assert row.updated_at.utcoffset() == timedelta(0)
    assert utcnow().tzinfo is not None
