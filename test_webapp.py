import pytest
from fastapi.testclient import TestClient

from crewboard_core.webapp.app import create_app

TODAY = "2030-01-07"
DAY = "2030-01-10"


@pytest.fixture
def client(tmp_path):
    app = create_app(config_path=str(tmp_path / "config.toml"), state_path=str(tmp_path / "state.json"))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def grid(client):
    crew = client.post("/api/crews/", json={"name": "Alpha"}).json()
    cctv = client.post("/api/catalog/vehicles", json={"name": "CCTV 1", "vehicle_type": "CCTV"}).json()
    jet = client.post("/api/catalog/vehicles", json={"name": "Jetter 4", "vehicle_type": "Jet Vac"}).json()
    alice = client.post("/api/employees/", json={"name": "Alice"}).json()
    bob = client.post("/api/employees/", json={"name": "Bob"}).json()
    return {"crew": crew["id"], "cctv": cctv["id"], "jet": jet["id"], "alice": alice["id"], "bob": bob["id"]}


def _assign(client, grid, employee, vehicle, day=DAY):
    response = client.post(
        "/api/items/",
        json={
            "kind": "assignment",
            "date": day,
            "crew_id": grid["crew"],
            "employee_id": grid[employee],
            "vehicle_id": grid[vehicle],
            "today": TODAY,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()[0]


def _cell(client, grid, day=DAY):
    cells = client.get("/api/cells/", params={"today": TODAY}).json()
    return next(cell for cell in cells if cell["crew_id"] == grid["crew"] and cell["date"] == day)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_assignment_shows_free_job_in_cell(client, grid):
    _assign(client, grid, "alice", "cctv")
    cell = _cell(client, grid)
    kinds = [item["kind"] for item in cell["items"]]
    assert kinds == ["assignment", "job"]
    free = cell["items"][1]
    assert free["job_status"] == "free"
    assert free["color"] == "blue"


def test_pairing_prompt_and_decision(client, grid):
    _assign(client, grid, "alice", "cctv")
    _assign(client, grid, "bob", "jet")

    pending = client.get(f"/api/pairing/{grid['crew']}/{DAY}").json()
    assert pending["label"] == "CCTV/Jet Vac"
    assert pending["needs_prompt"] is True

    response = client.post(
        "/api/pairing/decide",
        json={"crew_id": grid["crew"], "date": DAY, "decision": "combined", "today": TODAY},
    )
    assert response.status_code == 200
    assert response.json()[0]["decision"] == "combined"

    free = [item for item in _cell(client, grid)["items"] if item["job_status"] == "free"]
    assert [item["color"] for item in free] == ["pink"]


def test_past_date_is_a_conflict(client, grid):
    response = client.post(
        "/api/items/",
        json={"kind": "note", "date": "2030-01-02", "crew_id": grid["crew"], "note_content": "x", "today": TODAY},
    )
    assert response.status_code == 409


def test_unknown_item_is_404(client):
    assert client.get("/api/items/missing").status_code == 404


def test_bad_scope_is_400(client, grid):
    note = client.post(
        "/api/items/",
        json={"kind": "note", "date": DAY, "crew_id": grid["crew"], "note_content": "x", "today": TODAY},
    ).json()[0]
    response = client.post(f"/api/items/{note['id']}/duplicate", json={"scope": "fortnight", "today": TODAY})
    assert response.status_code == 400


def test_drag_moves_assignment_with_free_job(client, grid):
    assignment = _assign(client, grid, "alice", "cctv")
    response = client.post(
        "/api/items/drag",
        json={
            "item_ids": [assignment["id"]],
            "target_crew_id": grid["crew"],
            "target_date": "2030-01-11",
            "today": TODAY,
        },
    )
    body = response.json()
    assert body["action"] == "move"
    assert len(_cell(client, grid, "2030-01-11")["items"]) == 2
    assert _cell(client, grid)["items"] == []


def test_group_delete(client, grid):
    ids = []
    for day in (DAY, "2030-01-11"):
        created = client.post(
            "/api/items/",
            json={
                "kind": "job",
                "date": day,
                "crew_id": grid["crew"],
                "customer_name": "ACME",
                "job_number": "J-1",
                "today": TODAY,
            },
        ).json()
        ids.append(created[0]["id"])
    group = client.get(f"/api/items/{ids[0]}/group").json()
    assert group["needs_choice"] is True
    assert sorted(group["item_ids"]) == sorted(ids)

    response = client.delete(f"/api/items/{ids[0]}", params={"apply_to_group": True, "today": TODAY})
    assert sorted(response.json()["deleted"]) == sorted(ids)


def test_undo_and_config(client, grid):
    _assign(client, grid, "alice", "cctv")
    assert client.post("/api/system/undo").status_code == 200
    assert _cell(client, grid)["items"] == []
    config = client.get("/api/config/").json()
    assert config["general"]["view_days"] == 5
    assert config["vehicle_types"]["CCTV"] == "blue"


def test_archive_crew(client, grid):
    _assign(client, grid, "alice", "cctv", day="2030-01-15")
    preview = client.get(f"/api/crews/{grid['crew']}/archive", params={"today": TODAY}).json()
    assert preview["future_items"] == 2
    response = client.post(f"/api/crews/{grid['crew']}/archive", json={"today": TODAY})
    assert response.status_code == 200
    assert response.json()["future_items"] == 2
    assert client.get("/api/crews/").json() == []


def test_time_off_preview_then_apply(client, grid):
    first = _assign(client, grid, "alice", "cctv")
    second = _assign(client, grid, "alice", "cctv", day="2030-01-11")
    path = f"/api/employees/{grid['alice']}/time-off"
    body = {"start": DAY, "end": "2030-01-11", "absence_type": "sick", "today": TODAY}

    preview = client.post(f"{path}/preview", json=body).json()
    assert [entry["item_id"] for entry in preview["impacted"]] == [first["id"], second["id"]]
    assert preview["impacted"][0]["crew_name"] == "Alpha"
    assert len(_cell(client, grid)["items"]) == 2

    applied = client.post(path, json=body)
    assert applied.status_code == 200, applied.text
    data = applied.json()
    assert len(data["deleted"]) == 4
    assert data["absence"]["absence_type"] == "sick"
    assert _cell(client, grid)["items"] == []
    employees = {entry["id"]: entry for entry in client.get("/api/employees/").json()}
    assert employees[grid["alice"]]["status"] == "sick"
    assert len(client.get("/api/employees/absences", params={"employee_id": grid["alice"]}).json()) == 1


def test_time_off_for_unknown_employee_is_404(client):
    response = client.post("/api/employees/nobody/time-off", json={"start": DAY, "today": TODAY})
    assert response.status_code == 404
