# ruff: noqa

import pytest
from fastapi.testclient import TestClient

from planner.api.deps import get_backend, get_change_bus
from planner.db.session import get_session
from planner.main import create_app
from planner.services import allocations as allocation_service


@pytest.fixture()
def client(session_factory, backend, bus):
    app = create_app()

    def _session():
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_change_bus] = lambda: bus
    return TestClient(app)


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_grid_for_week_and_department(client, session, org, bus):
    allocation_service.create_allocation(session, org["eve"].id, org["brochure"].id, 2025, 12, bus=bus)
    resp = client.get("/planner/grid", params={"year": 2025, "week": 12, "viewer_id": org["eve"].id})
    assert resp.status_code == 200
    body = resp.json()
    assert body["week_start"] == "2025-03-17"
    assert body["week_end"] == "2025-03-21"
    assert body["label"] == "W12 | 2025"
    assert body["department_id"] == org["design"].id
    assert [g["employee"]["name"] for g in body["groups"]] == ["Dan Design", "Eve Example"]

    everyone = client.get("/planner/grid", params={"year": 2025, "week": 12, "department_id": "all"}).json()
    assert everyone["department_id"] is None
    assert len(everyone["groups"]) == 3


def test_grid_rejects_weeks_the_year_does_not_have(client, org):
    assert client.get("/planner/grid", params={"year": 2025, "week": 53}).status_code == 422
    assert client.get("/planner/grid", params={"year": 2020, "week": 53}).status_code == 200


def test_create_patch_and_delete_allocation(client, org):
    resp = client.post(
        "/planner/allocations",
        json={"employee_id": org["eve"].id, "project_id": org["brochure"].id, "year": 2025, "week_number": 12},
    )
    assert resp.status_code == 200
    alloc = resp.json()
    assert alloc["project"]["title"] == "Brochure"
    assert alloc["client"]["name"] == "Globex"

    resp = client.patch(f"/planner/allocations/{alloc['id']}", json={"field": "monday", "value": "4,5"})
    assert resp.status_code == 200
    assert resp.json()["monday"] == 4.5

    resp = client.patch(f"/planner/allocations/{alloc['id']}", json={"field": "year", "value": 2030})
    assert resp.status_code == 422

    assert client.delete(f"/planner/allocations/{alloc['id']}").status_code == 204
    assert client.delete(f"/planner/allocations/{alloc['id']}").status_code == 404
    assert client.get("/planner/allocations", params={"year": 2025, "week": 12}).json() == []


def test_create_allocation_requires_existing_project(client, org):
    payload = {"employee_id": org["eve"].id, "year": 2025, "week_number": 12}
    assert client.post("/planner/allocations", json=payload).status_code == 422
    assert client.post("/planner/allocations", json={**payload, "project_id": 999}).status_code == 404


def test_ghost_row_resolution(client, org):
    base = {"employee_id": org["eve"].id, "year": 2025, "week_number": 12}
    resp = client.post("/planner/ghost-rows/resolve", json={**base, "entry": {"title": "Annual Report"}})
    assert resp.json()["outcome"] == "needs_disambiguation"

    resp = client.post(
        "/planner/ghost-rows/resolve",
        json={**base, "entry": {"title": "Website", "client_name": "Acme"}},
    )
    body = resp.json()
    assert body["outcome"] == "created"
    assert body["created_client"] is True
    assert body["allocation"]["week_number"] == 12


def test_project_endpoints(client, org):
    assert [p["title"] for p in client.get("/projects/search", params={"q": "spring"}).json()] == ["Spring Campaign"]
    assert [c["name"] for c in client.get("/clients/search", params={"q": "glo"}).json()] == ["Globex"]

    resp = client.patch(f"/projects/{org['campaign'].id}", json={"field": "status", "value": "archived"})
    assert resp.json()["status"] == "archived"
    resp = client.patch(f"/projects/{org['campaign'].id}", json={"field": "status", "value": "paused"})
    assert resp.status_code == 422

    url = f"/projects/{org['campaign'].id}/members/{org['bob'].id}"
    first = client.put(url, json={"role": "member"}).json()
    second = client.put(url, json={"role": "member"}).json()
    assert first["id"] == second["id"]
    assert client.put(f"/projects/999/members/{org['bob'].id}").status_code == 404


def test_org_endpoints(client, org):
    assert [d["name"] for d in client.get("/departments").json()] == ["Design", "Development"]
    assert client.post("/departments", json={"name": "Design"}).status_code == 409
    resp = client.post("/employees", json={"name": "Ann", "initials": "AN", "department_id": 999})
    assert resp.status_code == 422
