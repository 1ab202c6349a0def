from datetime import date, datetime, timedelta, timezone

import pytest

from gym_backend.errors import ValidationError
from gym_backend.validators import (
    age_on,
    validate_client,
    validate_contract,
    validate_financial_record,
    validate_macros,
    validate_meal,
    validate_nutrition_plan,
)
from tests.conftest import client_fields

CLIENT = "1" * 32
PLAN = "2" * 32


def test_client_defaults_and_normalization():
    doc = validate_client(client_fields(birth_date="1990-05-01"))
    assert doc["birth_date"] == datetime(1990, 5, 1)
    assert doc["status"] == "active"
    assert doc["medical_conditions"] == []


@pytest.mark.parametrize("years", [15, 101])
def test_client_age_bounds(years):
    today = date.today()
    birth = date(today.year - years, today.month, 1)
    with pytest.raises(ValidationError, match="age must be between 16 and 100"):
        validate_client(client_fields(birth_date=birth))


def test_client_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        validate_client(client_fields(nickname="ana"))


def test_client_requires_emergency_contact_phone():
    with pytest.raises(ValidationError) as exc:
        validate_client(client_fields(emergency_contact={"name": "Luis"}))
    assert exc.value.errors == ["emergency_contact.phone: Field required"]


def test_age_on_birthday_boundary():
    assert age_on(datetime(2000, 6, 15), date(2016, 6, 14)) == 15
    assert age_on(datetime(2000, 6, 15), date(2016, 6, 15)) == 16


def test_contract_period_and_ids():
    start = datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=2)))
    doc = validate_contract({
        "client_id": CLIENT, "plan_id": PLAN, "start_date": start, "end_date": "2024-01-29", "price": 10,
    })
    assert doc["start_date"] == datetime(2023, 12, 31, 22)
    assert doc["status"] == "active"

    with pytest.raises(ValidationError, match="start_date must be before end_date"):
        validate_contract({
            "client_id": CLIENT, "plan_id": PLAN, "start_date": "2024-02-01", "end_date": "2024-01-01", "price": 10,
        })
    with pytest.raises(ValidationError, match="must be a valid identifier"):
        validate_contract({
            "client_id": "nope", "plan_id": PLAN, "start_date": "2024-01-01", "end_date": "2024-02-01", "price": 10,
        })


def test_nutrition_plan_calorie_bounds():
    with pytest.raises(ValidationError) as exc:
        validate_nutrition_plan({"client_id": CLIENT, "contract_id": PLAN, "name": "Cut", "daily_calories": 500})
    assert exc.value.errors[0].startswith("daily_calories")


def test_meal_needs_foods():
    with pytest.raises(ValidationError):
        validate_meal({"name": "Dinner"})


def test_macros_sum():
    assert validate_macros({"protein": 33.3, "carbs": 33.3, "fats": 33.4})["fats"] == 33.4


def test_financial_record_choices():
    with pytest.raises(ValidationError) as exc:
        validate_financial_record({
            "type": "refund", "category": "x", "amount": -5, "description": "no", "date": "2024-01-01",
            "payment_method": "crypto",
        })
    assert {e.split(":")[0] for e in exc.value.errors} == {"type", "category", "amount", "description", "payment_method"}


def test_client_age_check_can_be_skipped():
    old = date(date.today().year - 101, 1, 1)
    assert validate_client(client_fields(birth_date=old), check_age=False)["birth_date"] == datetime(old.year, 1, 1)
    with pytest.raises(ValidationError):
        validate_client(client_fields(birth_date=old))
