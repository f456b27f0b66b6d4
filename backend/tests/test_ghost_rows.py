# ruff: noqa

import asyncio

import pytest
from sqlalchemy import func
from sqlmodel import select

from planner.core.errors import StoreError
from planner.models.allocations import ResourceAllocation
from planner.models.clients import Client
from planner.models.projects import Project, ProjectMember
from planner.schemas.ghost_rows import GhostEntry, GhostOutcome
from planner.schemas.projects import ProjectRead
from planner.services.ghost_rows import GhostRow, GhostRowState, resolve_ghost_entry
from planner.services.time_window import WeekWindow

WINDOW = WeekWindow(2025, 12)


def count(session_factory, model) -> int:
    with session_factory() as s:
        return s.exec(select(func.count()).select_from(model)).one()


def make_row(backend, employee_id, **kwargs) -> GhostRow:
    return GhostRow(employee_id, lambda: WINDOW, backend.store, backend.directory, **kwargs)


def test_exact_job_number_links_without_creating_entities(backend, session_factory, org):
    async def scenario():
        return await resolve_ghost_entry(
            GhostEntry(job_number=" 25_0012 ", title="whatever"),
            employee_id=org["eve"].id,
            window=WINDOW,
            store=backend.store,
            directory=backend.directory,
        )

    resolution = asyncio.run(scenario())
    assert resolution.outcome is GhostOutcome.LINKED
    assert resolution.project.id == org["campaign"].id
    assert resolution.allocation.project_id == org["campaign"].id
    assert (resolution.allocation.year, resolution.allocation.week_number) == (2025, 12)
    assert count(session_factory, Project) == 2
    assert count(session_factory, Client) == 1


def test_exact_title_match_is_case_insensitive(backend, session_factory, org):
    async def scenario():
        row = make_row(backend, org["bob"].id)
        await row.input("title", "brochure")
        return row, await row.on_enter()

    row, resolution = asyncio.run(scenario())
    assert resolution.outcome is GhostOutcome.LINKED
    assert resolution.project.id == org["brochure"].id
    assert row.state is GhostRowState.IDLE
    assert count(session_factory, Project) == 2
    assert count(session_factory, ProjectMember) == 1


def test_title_only_asks_for_client_or_job_number(backend, session_factory, org):
    async def scenario():
        row = make_row(backend, org["eve"].id)
        await row.input("title", "Annual Report")
        first = await row.on_blur("title")
        refused = await row.confirm_disambiguation("  ", "")
        return row, first, refused

    row, first, refused = asyncio.run(scenario())
    assert first.outcome is GhostOutcome.NEEDS_DISAMBIGUATION
    assert refused.outcome is GhostOutcome.NEEDS_DISAMBIGUATION
    assert row.state is GhostRowState.AWAITING_DISAMBIGUATION
    assert row.prompt.title == "Annual Report"
    assert count(session_factory, Project) == 2
    assert count(session_factory, Client) == 1
    assert count(session_factory, ResourceAllocation) == 0


def test_confirming_disambiguation_creates_project(backend, session_factory, org):
    async def scenario():
        row = make_row(backend, org["eve"].id)
        await row.input("title", "Annual Report")
        await row.commit()
        return row, await row.confirm_disambiguation(client_name="globex")

    row, resolution = asyncio.run(scenario())
    assert resolution.outcome is GhostOutcome.CREATED
    assert resolution.created_project and not resolution.created_client
    assert resolution.project.title == "Annual Report"
    assert resolution.project.client_id == org["globex"].id
    assert row.state is GhostRowState.IDLE
    assert count(session_factory, Client) == 1


def test_cancelling_disambiguation_resets_the_row(backend, session_factory, org):
    async def scenario():
        row = make_row(backend, org["eve"].id)
        await row.input("title", "Annual Report")
        await row.commit()
        row.cancel_disambiguation()
        return row

    row = asyncio.run(scenario())
    assert row.state is GhostRowState.IDLE
    assert row.title == ""
    assert count(session_factory, Project) == 2


def test_new_client_and_title_create_client_project_and_allocation(backend, session_factory, org):
    created = []

    async def scenario():
        row = make_row(backend, org["eve"].id, on_created=created.append)
        await row.input("client_name", "Acme")
        await row.input("title", "Website")
        return await row.on_enter()

    resolution = asyncio.run(scenario())
    assert resolution.outcome is GhostOutcome.CREATED
    assert resolution.created_client and resolution.created_project
    assert resolution.client.name == "Acme"
    assert resolution.project.title == "Website"
    assert resolution.project.status == "in_progress"

    alloc = resolution.allocation
    assert (alloc.employee_id, alloc.project_id, alloc.year, alloc.week_number) == (
        org["eve"].id,
        resolution.project.id,
        2025,
        12,
    )
    assert [alloc.hours(d) for d in ("monday", "tuesday", "wednesday", "thursday", "friday")] == [0, 0, 0, 0, 0]
    assert created == [alloc]

    with session_factory() as s:
        member = s.exec(select(ProjectMember).where(ProjectMember.project_id == resolution.project.id)).one()
        assert member.employee_id == org["eve"].id


def test_blur_on_client_input_does_not_commit(backend, session_factory, org):
    async def scenario():
        row = make_row(backend, org["eve"].id)
        await row.input("client_name", "Acme")
        return row, await row.on_blur("client_name")

    row, resolution = asyncio.run(scenario())
    assert resolution.outcome is GhostOutcome.NOOP
    assert row.state is GhostRowState.TYPING
    assert count(session_factory, Client) == 1


def test_empty_entry_is_a_noop(backend, org):
    async def scenario():
        row = make_row(backend, org["eve"].id)
        return await row.on_enter()

    assert asyncio.run(scenario()).outcome is GhostOutcome.NOOP


def test_selecting_a_suggestion_links_it(backend, org):
    async def scenario():
        row = make_row(backend, org["dan"].id)
        await row.input("title", "spr")
        suggestion = row.project_suggestions[0]
        return row, await row.select_project(suggestion)

    row, resolution = asyncio.run(scenario())
    assert resolution.outcome is GhostOutcome.LINKED
    assert resolution.project.title == "Spring Campaign"
    assert row.state is GhostRowState.IDLE


def test_suggestions_need_two_characters_and_are_capped(backend, session, org):
    for n in range(7):
        session.add(Project(title=f"Poster {n}", job_number=f"24_{n:04d}"))
    session.commit()

    async def scenario():
        row = make_row(backend, org["eve"].id)
        await row.input("title", "p")
        short = list(row.project_suggestions)
        await row.input("title", "po")
        await row.input("client_name", "gl")
        return short, row.project_suggestions, row.client_suggestions

    short, projects, clients = asyncio.run(scenario())
    assert short == []
    assert len(projects) == 5
    assert [c.name for c in clients] == ["Globex"]


def test_store_failure_is_reported_and_row_keeps_its_text(org):
    errors = []

    class BrokenDirectory:
        async def find_project_by_job_number(self, job_number):
            raise StoreError("find_project failed")

    async def scenario():
        row = GhostRow(org["eve"].id, lambda: WINDOW, store=None, directory=BrokenDirectory(), on_error=errors.append)
        row.job_number = "25_0099"
        row.title = "Website"
        return row, await row.commit()

    row, resolution = asyncio.run(scenario())
    assert resolution.outcome is GhostOutcome.FAILED
    assert len(errors) == 1
    assert row.title == "Website"


def test_store_failure_without_handler_raises(org):
    class BrokenDirectory:
        async def find_project_by_job_number(self, job_number):
            raise StoreError("find_project failed")

    async def scenario():
        row = GhostRow(org["eve"].id, lambda: WINDOW, store=None, directory=BrokenDirectory())
        row.job_number = "25_0099"
        await row.commit()

    with pytest.raises(StoreError):
        asyncio.run(scenario())


def test_selecting_a_client_suggestion_fills_the_name(backend, org):
    async def scenario():
        row = make_row(backend, org["eve"].id)
        await row.input("client_name", "glo")
        row.select_client(row.client_suggestions[0])
        return row

    row = asyncio.run(scenario())
    assert row.client_name == "Globex"
    assert row.client_suggestions == []
    assert row.state is GhostRowState.TYPING


def test_late_search_response_does_not_replace_newer_suggestions(org):
    def project(id, title):
        return ProjectRead(id=id, title=title, job_number=None, status="in_progress")

    class SlowFirstDirectory:
        def __init__(self):
            self.release = asyncio.Event()

        async def search_projects(self, query):
            if query == "po":
                await self.release.wait()
                return [project(1, "Poster")]
            return [project(2, "Postcard")]

    async def scenario():
        directory = SlowFirstDirectory()
        row = GhostRow(org["eve"].id, lambda: WINDOW, store=None, directory=directory)
        slow = asyncio.create_task(row.input("title", "po"))
        await asyncio.sleep(0)
        await row.input("title", "pos")
        directory.release.set()
        await slow
        return row

    row = asyncio.run(scenario())
    assert row.title == "pos"
    assert [p.title for p in row.project_suggestions] == ["Postcard"]
