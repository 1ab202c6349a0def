from datetime import datetime

from scripts.complete_expired_contracts import main


def test_script_completes_expired(services, db, make_client, make_plan, capsys):
    old = services.contracts.assign_plan(make_client()["id"], make_plan(duration=1)["id"], datetime(2020, 1, 1))

    assert main(["--dry-run"], database=db) == 1
    assert old["id"] in capsys.readouterr().out
    assert services.contracts.get_contract(old["id"])["status"] == "active"

    assert main([], database=db) == 1
    assert services.contracts.get_contract(old["id"])["status"] == "completed"
    assert main([], database=db) == 0
