from datetime import date, datetime

import pytest

from gym_backend.db import Database
from gym_backend.services import Services


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def client_fields(**overrides):
    fields = {
        "first_name": "Ana",
        "last_name": "Lopez",
        "email": "ana@example.com",
        "phone": "+34 600 123 456",
        "birth_date": date(1990, 5, 1),
        "gender": "female",
        "emergency_contact": {"name": "Luis Lopez", "phone": "+34 600 999 888"},
        "goals": ["strength"],
    }
    fields.update(overrides)
    return fields


def plan_fields(**overrides):
    fields = {
        "name": "Strength Basics",
        "description": "Four weeks of compound lifts for beginners.",
        "duration": 4,
        "level": "beginner",
        "price": 100.0,
        "exercises": [{"name": "Squat", "sets": 3, "reps": 10}],
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 1, 10, 9, 30))


@pytest.fixture
def services(db, clock):
    return Services(db, clock=clock)


@pytest.fixture
def make_client(services):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = client_fields(email=f"client{n}@example.com", phone=f"+34 600 000 {n:03d}")
        fields.update(overrides)
        return services.clients.create_client(fields)

    return _make


@pytest.fixture
def make_plan(services):
    def _make(**overrides):
        return services.plans.create_plan(plan_fields(**overrides))

    return _make


@pytest.fixture
def contract(services, make_client, make_plan):
    c = make_client()
    p = make_plan()
    return services.contracts.assign_plan(c["id"], p["id"], datetime(2024, 1, 1))
