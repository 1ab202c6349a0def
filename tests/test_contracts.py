from datetime import datetime, timedelta

import pytest

from gym_backend.db import Database
from gym_backend.errors import (
    InvalidIdentifierError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from gym_backend.services import Services
from gym_backend.services.contracts import add_weeks, days_remaining, is_current
from gym_backend.validators import DEFAULT_TERMS
from tests.conftest import client_fields, plan_fields


def _contract_count(services):
    return services.gateway.count("contracts")


def test_assign_computes_end_date_and_freezes_price(services, make_client, make_plan):
    c = make_client()
    p = make_plan(duration=4, price=100)
    contract = services.contracts.assign_plan(c["id"], p["id"], datetime(2024, 1, 1))

    assert contract["end_date"] == datetime(2024, 1, 29)
    assert contract["price"] == 100
    assert contract["status"] == "active"
    assert contract["payment_schedule"] == "monthly"
    assert contract["terms"] == DEFAULT_TERMS

    services.plans.update_plan(p["id"], {"price": 150})
    assert services.contracts.get_contract(contract["id"])["price"] == 100


def test_assign_defaults_start_to_now(services, make_client, make_plan, clock):
    contract = services.contracts.assign_plan(make_client()["id"], make_plan()["id"])
    assert contract["start_date"] == clock.now


def test_assign_accepts_iso_strings(services, make_client, make_plan):
    contract = services.contracts.assign_plan(make_client()["id"], make_plan()["id"], "2024-03-04")
    assert contract["start_date"] == datetime(2024, 3, 4)
    assert contract["end_date"] == datetime(2024, 4, 1)


def test_second_assign_for_same_pair_is_rejected(services, contract):
    with pytest.raises(PreconditionFailedError) as exc:
        services.contracts.assign_plan(contract["client_id"], contract["plan_id"], datetime(2024, 1, 5))
    assert "already has an active contract" in str(exc.value)
    assert str(exc.value).startswith("Error assigning plan: ")
    assert _contract_count(services) == 1


def test_assign_after_previous_contract_completed(services, contract):
    services.contracts.complete(contract["id"])
    again = services.contracts.assign_plan(contract["client_id"], contract["plan_id"], datetime(2024, 2, 1))
    assert again["status"] == "active"
    assert _contract_count(services) == 2


def test_assign_requires_active_client(services, make_client, make_plan):
    c = make_client(status="suspended")
    with pytest.raises(PreconditionFailedError, match="client must be active"):
        services.contracts.assign_plan(c["id"], make_plan()["id"])
    assert _contract_count(services) == 0


def test_assign_requires_active_plan(services, make_client, make_plan):
    p = make_plan(is_active=False)
    with pytest.raises(PreconditionFailedError, match="plan must be active"):
        services.contracts.assign_plan(make_client()["id"], p["id"])
    assert _contract_count(services) == 0


def test_assign_missing_entities(services, make_client, make_plan):
    with pytest.raises(NotFoundError, match="client not found"):
        services.contracts.assign_plan("0" * 32, make_plan()["id"])
    with pytest.raises(NotFoundError, match="plan not found"):
        services.contracts.assign_plan(make_client()["id"], "f" * 32)


def test_assign_rejects_malformed_ids(services, make_plan):
    with pytest.raises(InvalidIdentifierError):
        services.contracts.assign_plan("not-an-id", make_plan()["id"])


def test_assign_rejects_bad_payment_schedule(services, make_client, make_plan):
    with pytest.raises(ValidationError) as exc:
        services.contracts.assign_plan(make_client()["id"], make_plan()["id"], payment_schedule="yearly")
    assert any(e.startswith("payment_schedule") for e in exc.value.errors)
    assert _contract_count(services) == 0


def test_renew_extends_end_date(services, contract):
    renewed = services.contracts.renew(contract["id"], 2)
    assert renewed["end_date"] == datetime(2024, 2, 12)
    assert renewed["status"] == "active"


def test_renew_brings_completed_contract_back(services, contract):
    services.contracts.complete(contract["id"])
    renewed = services.contracts.renew(contract["id"], 1)
    assert renewed["status"] == "active"
    assert renewed["end_date"] == datetime(2024, 2, 5)


def test_renew_rejects_cancelled(services, contract):
    services.contracts.cancel(contract["id"], "moved away")
    with pytest.raises(PreconditionFailedError, match="cancelled contract cannot be renewed"):
        services.contracts.renew(contract["id"], 2)
    assert services.contracts.get_contract(contract["id"])["end_date"] == datetime(2024, 1, 29)


@pytest.mark.parametrize("weeks", [0, -1, 1.5, "2", True])
def test_renew_requires_positive_whole_weeks(services, contract, weeks):
    with pytest.raises(ValidationError):
        services.contracts.renew(contract["id"], weeks)


def test_cancel_records_reason_and_date(services, contract, clock):
    cancelled = services.contracts.cancel(contract["id"], "injury")
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancellation_reason"] == "injury"
    assert cancelled["cancellation_date"] == clock.now


def test_cancel_twice_fails(services, contract):
    services.contracts.cancel(contract["id"])
    with pytest.raises(PreconditionFailedError, match="already cancelled"):
        services.contracts.cancel(contract["id"])


def test_cancel_completed_fails(services, contract):
    services.contracts.complete(contract["id"])
    with pytest.raises(PreconditionFailedError, match="completed contract cannot be cancelled"):
        services.contracts.cancel(contract["id"])
    assert services.contracts.get_contract(contract["id"])["status"] == "completed"


def test_complete_only_from_active(services, contract, clock):
    done = services.contracts.complete(contract["id"])
    assert done["status"] == "completed"
    assert done["completion_date"] == clock.now
    with pytest.raises(PreconditionFailedError, match="only active contracts"):
        services.contracts.complete(contract["id"])


def test_unknown_contract(services):
    with pytest.raises(NotFoundError):
        services.contracts.cancel("a" * 32)


def test_contract_details(services, contract, clock):
    details = services.contracts.get_contract_with_details(contract["id"])
    assert details["client"]["id"] == contract["client_id"]
    assert details["plan"]["id"] == contract["plan_id"]
    # 2024-01-10 09:30 -> 2024-01-29 00:00
    assert details["days_remaining"] == 19


def test_listings_by_window(services, make_client, make_plan, clock):
    plan = make_plan(duration=1)
    ending_soon = services.contracts.assign_plan(make_client()["id"], plan["id"], datetime(2024, 1, 8))
    expired = services.contracts.assign_plan(make_client()["id"], plan["id"], datetime(2023, 12, 1))
    later = services.contracts.assign_plan(
        make_client()["id"], make_plan(duration=8)["id"], datetime(2024, 1, 5)
    )

    assert [c["id"] for c in services.contracts.list_expiring(7)] == [ending_soon["id"]]
    assert [c["id"] for c in services.contracts.list_expired()] == [expired["id"]]
    assert {c["id"] for c in services.contracts.list_active()} == {ending_soon["id"], later["id"]}


def test_complete_expired(services, make_client, make_plan, clock):
    plan = make_plan(duration=1)
    old = services.contracts.assign_plan(make_client()["id"], plan["id"], datetime(2023, 12, 1))
    current = services.contracts.assign_plan(make_client()["id"], plan["id"], datetime(2024, 1, 8))

    done = services.contracts.complete_expired()
    assert [c["id"] for c in done] == [old["id"]]
    assert services.contracts.get_contract(old["id"])["status"] == "completed"
    assert services.contracts.get_contract(current["id"])["status"] == "active"
    assert services.contracts.complete_expired() == []


def test_contracts_by_client_and_plan(services, contract):
    assert [c["id"] for c in services.contracts.contracts_by_client(contract["client_id"])] == [contract["id"]]
    assert [c["id"] for c in services.contracts.contracts_by_plan(contract["plan_id"])] == [contract["id"]]


def test_helpers():
    start = datetime(2024, 1, 1)
    assert add_weeks(start, 4) == datetime(2024, 1, 29)
    c = {"status": "active", "start_date": start, "end_date": datetime(2024, 1, 29)}
    assert is_current(c, datetime(2024, 1, 15))
    assert not is_current(c, datetime(2024, 2, 1))
    assert days_remaining(c, datetime(2024, 1, 28, 12)) == 1
    assert days_remaining(c, datetime(2024, 1, 30)) == -1


# ---------------- racing transitions ----------------
@pytest.fixture
def file_services(tmp_path, clock):
    # file-backed so each transaction gets its own connection
    database = Database(f"sqlite+pysqlite:///{tmp_path / 'gym.db'}")
    database.create_all()
    yield Services(database, clock=clock)
    database.dispose()


@pytest.fixture
def racing_contract(file_services):
    c = file_services.clients.create_client(client_fields())
    p = file_services.plans.create_plan(plan_fields(duration=4))
    return file_services.contracts.assign_plan(c["id"], p["id"], datetime(2024, 1, 1))


def run_before_next_update(monkeypatch, gateway, action):
    """Run `action` in its own transaction right before the next gateway.update."""
    original = gateway.update
    pending = [action]

    def update(*args, **kwargs):
        if pending:
            pending.pop()()
        return original(*args, **kwargs)

    monkeypatch.setattr(gateway, "update", update)


def test_racing_renewals_never_lose_an_extension(file_services, racing_contract, monkeypatch):
    svc, cid = file_services, racing_contract["id"]
    run_before_next_update(monkeypatch, svc.gateway, lambda: svc.contracts.renew(cid, 2))

    with pytest.raises(PreconditionFailedError, match="changed concurrently"):
        svc.contracts.renew(cid, 1)

    # the committed 2-week renewal stands, the stale 1-week one was not applied on top
    assert svc.contracts.get_contract(cid)["end_date"] == datetime(2024, 2, 12)
    assert svc.contracts.renew(cid, 1)["end_date"] == datetime(2024, 2, 19)


def test_renew_rejected_when_cancelled_meanwhile(file_services, racing_contract, monkeypatch):
    svc, cid = file_services, racing_contract["id"]
    run_before_next_update(monkeypatch, svc.gateway, lambda: svc.contracts.cancel(cid, "left"))

    with pytest.raises(PreconditionFailedError, match="changed concurrently"):
        svc.contracts.renew(cid, 1)
    contract = svc.contracts.get_contract(cid)
    assert (contract["status"], contract["end_date"]) == ("cancelled", datetime(2024, 1, 29))


def test_cancel_rejected_when_completed_meanwhile(file_services, racing_contract, monkeypatch):
    svc, cid = file_services, racing_contract["id"]
    run_before_next_update(monkeypatch, svc.gateway, lambda: svc.contracts.complete(cid))

    with pytest.raises(PreconditionFailedError, match="changed concurrently, cancellation rejected"):
        svc.contracts.cancel(cid, "too late")
    contract = svc.contracts.get_contract(cid)
    assert contract["status"] == "completed"
    assert contract["cancellation_reason"] is None


def test_complete_rejected_when_cancelled_meanwhile(file_services, racing_contract, monkeypatch):
    svc, cid = file_services, racing_contract["id"]
    run_before_next_update(monkeypatch, svc.gateway, lambda: svc.contracts.cancel(cid, "refund"))

    with pytest.raises(PreconditionFailedError, match="changed concurrently, completion rejected"):
        svc.contracts.complete(cid)
    contract = svc.contracts.get_contract(cid)
    assert contract["status"] == "cancelled"
    assert contract["completion_date"] is None


# ---------------- date range ----------------
def test_renew_caps_weeks(services, contract):
    with pytest.raises(ValidationError, match="between 1 and 520"):
        services.contracts.renew(contract["id"], 10**6)
    assert services.contracts.renew(contract["id"], 520)["end_date"] == datetime(2024, 1, 29) + timedelta(weeks=520)


def test_renew_past_calendar_end_is_a_validation_error(services, contract):
    services.gateway.update("contracts", contract["id"], {"end_date": datetime(9999, 12, 1)})
    with pytest.raises(ValidationError, match="out of range") as exc:
        services.contracts.renew(contract["id"], 10)
    assert str(exc.value).startswith("Error renewing contract: ")
    assert services.contracts.get_contract(contract["id"])["end_date"] == datetime(9999, 12, 1)


def test_assign_with_extreme_start_date(services, make_client, make_plan):
    with pytest.raises(ValidationError, match="out of range") as exc:
        services.contracts.assign_plan(make_client()["id"], make_plan()["id"], datetime(9999, 12, 20))
    assert str(exc.value).startswith("Error assigning plan: ")
    assert services.gateway.count("contracts") == 0
