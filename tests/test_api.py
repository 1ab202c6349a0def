import pytest
from fastapi.testclient import TestClient

from gym_backend.app.config import Settings
from gym_backend.main import create_app
from tests.conftest import client_fields, plan_fields


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", api_key="secret", expiring_days=30)


@pytest.fixture
def api(db, settings):
    app = create_app(settings, db)
    with TestClient(app) as client:
        client.headers.update({"x-api-key": "secret"})
        yield client


def _client_payload(**overrides):
    payload = client_fields(birth_date="1990-05-01")
    payload.update(overrides)
    return payload


def _setup(api):
    c = api.post("/clients", json=_client_payload()).json()
    p = api.post("/plans", json=plan_fields()).json()
    return c, p


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}


def test_mutations_need_api_key(api):
    r = api.post("/clients", json=_client_payload(), headers={"x-api-key": "wrong"})
    assert r.status_code == 401
    assert api.get("/clients").status_code == 200


def test_contract_flow(api):
    c, p = _setup(api)
    r = api.post("/contracts", json={"client_id": c["id"], "plan_id": p["id"], "start_date": "2024-01-01"})
    assert r.status_code == 201
    contract = r.json()
    assert contract["end_date"].startswith("2024-01-29")

    again = api.post("/contracts", json={"client_id": c["id"], "plan_id": p["id"]})
    assert again.status_code == 409
    assert again.json()["code"] == "precondition_failed"

    renewed = api.post(f"/contracts/{contract['id']}/renew", json={"additional_weeks": 2}).json()
    assert renewed["end_date"].startswith("2024-02-12")

    details = api.get(f"/contracts/{contract['id']}").json()
    assert details["client"]["id"] == c["id"]

    cancelled = api.post(f"/contracts/{contract['id']}/cancel", json={"reason": "moving"}).json()
    assert cancelled["status"] == "cancelled"
    r = api.post(f"/contracts/{contract['id']}/cancel")
    assert r.status_code == 409
    assert "already cancelled" in r.json()["detail"]


def test_error_mapping(api):
    assert api.get("/clients/not-an-id").status_code == 400
    r = api.get(f"/clients/{'0' * 32}")
    assert (r.status_code, r.json()["code"]) == (404, "not_found")

    r = api.post("/clients", json=_client_payload(email="bad"))
    assert r.status_code == 422
    assert r.json()["errors"] == ["email: invalid email"]

    api.post("/clients", json=_client_payload())
    r = api.post("/clients", json=_client_payload(phone="+34 611 111 111"))
    assert (r.status_code, r.json()["code"]) == (409, "conflict")


def test_delete_client_with_active_contract(api):
    c, p = _setup(api)
    api.post("/contracts", json={"client_id": c["id"], "plan_id": p["id"]})
    r = api.delete(f"/clients/{c['id']}")
    assert r.status_code == 409
    assert r.json()["detail"].startswith("Error deleting client: cannot delete a client")
    assert api.get(f"/clients/{c['id']}").status_code == 200


def test_plan_endpoints(api):
    p = api.post("/plans", json=plan_fields()).json()
    ex = api.post(f"/plans/{p['id']}/exercises", json={"name": "Row", "sets": 3, "reps": 12}).json()
    assert len(ex["exercises"]) == 2
    assert api.post(f"/plans/{p['id']}/deactivate").json()["is_active"] is False
    assert api.get("/plans", params={"active": "false"}).json()[0]["id"] == p["id"]
    assert api.delete(f"/plans/{p['id']}").json() == {"deleted": True, "id": p["id"]}


def test_expiring_uses_configured_window(api):
    c, p = _setup(api)
    contract = api.post("/contracts", json={"client_id": c["id"], "plan_id": p["id"]}).json()
    # starts now, ends in 28 days; the configured window is 30
    assert [x["id"] for x in api.get("/contracts/expiring").json()] == [contract["id"]]
    assert api.get("/contracts/expiring", params={"days": 7}).json() == []
    assert [x["id"] for x in api.get("/contracts/active").json()] == [contract["id"]]


def test_records_and_reports(api):
    c, p = _setup(api)
    contract = api.post("/contracts", json={"client_id": c["id"], "plan_id": p["id"]}).json()
    r = api.post("/tracking", json={"client_id": c["id"], "contract_id": contract["id"],
                                    "date": "2024-01-02T08:00:00", "weight": 70})
    assert r.status_code == 201
    r = api.post(f"/tracking/{r.json()['id']}/measurements", json={"body_part": "arm", "value": 31})
    assert r.json()["measurements"] == {"arm": 31}

    r = api.post("/nutrition", json={"client_id": c["id"], "contract_id": contract["id"], "name": "Maintain",
                                     "daily_calories": 2200})
    plan_id = r.json()["id"]
    assert api.put(f"/nutrition/{plan_id}/macros", json={"protein": 30, "carbs": 40, "fats": 30}).status_code == 200

    api.post("/finance", json={"type": "income", "category": "membership", "amount": 100,
                               "description": "fee", "date": "2024-01-01T00:00:00"})
    assert api.get("/reports/finance").json()["income"] == 100.0
    assert api.get("/reports/clients").json() == [{"status": "active", "count": 1}]
    assert api.get("/finance", params={"type": "income"}).json()[0]["amount"] == 100.0
