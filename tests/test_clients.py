from datetime import date, datetime

import pytest

from gym_backend.errors import ConflictError, NotFoundError, PersistenceError, PreconditionFailedError, ValidationError
from tests.conftest import client_fields


def test_create_normalizes_email(services):
    c = services.clients.create_client(client_fields(email="  Ana@Example.COM "))
    assert c["email"] == "ana@example.com"
    assert c["status"] == "active"
    assert len(c["id"]) == 32


def test_duplicate_email_or_phone(services, make_client):
    first = make_client()
    with pytest.raises(ConflictError, match="email already exists"):
        make_client(email=first["email"])
    with pytest.raises(ConflictError, match="phone already exists"):
        make_client(phone=first["phone"])


def test_storage_constraint_backs_uniqueness(services, make_client, monkeypatch):
    first = make_client()
    monkeypatch.setattr(services.clients, "_ensure_unique", lambda *a, **kw: None)
    with pytest.raises(ConflictError, match="unique constraint"):
        make_client(email=first["email"])


def test_invalid_client_lists_every_problem(services):
    with pytest.raises(ValidationError) as exc:
        services.clients.create_client(client_fields(first_name="A", email="nope", phone="12", gender="x"))
    fields = {e.split(":")[0] for e in exc.value.errors}
    assert {"first_name", "email", "phone", "gender"} <= fields
    assert services.gateway.count("clients") == 0


def test_update_keeps_uniqueness(services, make_client):
    a = make_client()
    b = make_client()
    with pytest.raises(ConflictError):
        services.clients.update_client(b["id"], {"email": a["email"]})
    updated = services.clients.update_client(b["id"], {"last_name": "Garcia"})
    assert updated["last_name"] == "Garcia"
    assert updated["email"] == b["email"]


def test_list_and_search(services, make_client):
    make_client(first_name="Zoe", last_name="Adams")
    make_client(first_name="Mark", last_name="Young", status="inactive")
    assert [c["last_name"] for c in services.clients.list_clients()] == ["Adams", "Young"]
    assert [c["first_name"] for c in services.clients.list_clients(status="inactive")] == ["Mark"]
    assert [c["first_name"] for c in services.clients.list_clients(search="zo")] == ["Zoe"]


def test_deactivate_and_reactivate(services, make_client):
    c = make_client()
    assert services.clients.deactivate_client(c["id"])["status"] == "inactive"
    assert services.clients.reactivate_client(c["id"])["status"] == "active"
    with pytest.raises(NotFoundError):
        services.clients.deactivate_client("b" * 32)


def test_delete_blocked_by_active_contract(services, contract):
    with pytest.raises(PreconditionFailedError, match="1 active contract"):
        services.clients.delete_client(contract["client_id"])
    assert services.clients.get_client(contract["client_id"])
    assert services.contracts.get_contract(contract["id"])["status"] == "active"


def test_delete_cancels_completed_contracts(services, contract, make_plan, clock):
    other = services.contracts.assign_plan(contract["client_id"], make_plan()["id"], datetime(2024, 1, 2))
    services.contracts.complete(contract["id"])
    services.contracts.cancel(other["id"], "changed mind")

    assert services.clients.delete_client(contract["client_id"]) is True

    with pytest.raises(NotFoundError):
        services.clients.get_client(contract["client_id"])
    swept = services.contracts.get_contract(contract["id"])
    assert swept["status"] == "cancelled"
    assert swept["cancellation_reason"] == "client deleted"
    assert swept["cancellation_date"] == clock.now
    # already cancelled ones keep their own reason
    assert services.contracts.get_contract(other["id"])["cancellation_reason"] == "changed mind"


def test_delete_rolls_back_when_final_step_fails(services, contract, monkeypatch):
    services.contracts.complete(contract["id"])
    monkeypatch.setattr(services.gateway, "delete", lambda *a, **kw: False)

    with pytest.raises(PersistenceError, match="could not be deleted"):
        services.clients.delete_client(contract["client_id"])

    assert services.contracts.get_contract(contract["id"])["status"] == "completed"
    assert services.clients.get_client(contract["client_id"])


def test_client_with_contracts(services, contract):
    data = services.clients.get_client_with_contracts(contract["client_id"])
    assert [c["id"] for c in data["contracts"]] == [contract["id"]]
    assert [p["id"] for p in data["plans"]] == [contract["plan_id"]]


def test_update_does_not_recheck_age_of_stored_birth_date(services, make_client):
    c = make_client()
    today = date.today()
    services.gateway.update("clients", c["id"], {"birth_date": datetime(today.year - 101, 1, 1)})

    updated = services.clients.update_client(c["id"], {"phone": "+34 699 000 111"})
    assert updated["phone"] == "+34 699 000 111"

    with pytest.raises(ValidationError, match="age must be between 16 and 100"):
        services.clients.update_client(c["id"], {"birth_date": datetime(today.year - 101, 1, 1)})
