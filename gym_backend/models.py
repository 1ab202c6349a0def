import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, Text, JSON, Index

from gym_backend.db import Base  # IMPORTANT: use the shared Base from db.py


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # naive UTC; SQLite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Client(Base):
    __tablename__ = "clients"
    id = Column(String(32), primary_key=True, default=new_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(20), nullable=False, unique=True)
    birth_date = Column(DateTime)
    gender = Column(String(10))
    emergency_contact = Column(JSON)
    medical_conditions = Column(JSON, default=list)
    goals = Column(JSON, default=list)
    status = Column(String(20), nullable=False, default="active", index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)


class TrainingPlan(Base):
    __tablename__ = "training_plans"
    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text)
    duration = Column(Integer, nullable=False)  # weeks
    level = Column(String(20), nullable=False)
    goals = Column(JSON, default=list)
    exercises = Column(JSON, default=list)
    price = Column(Float, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)


class Contract(Base):
    __tablename__ = "contracts"
    id = Column(String(32), primary_key=True, default=new_id)
    client_id = Column(String(32), index=True)
    plan_id = Column(String(32), index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    price = Column(Float, nullable=False)
    terms = Column(JSON, default=list)
    status = Column(String(20), nullable=False, default="active", index=True)
    payment_schedule = Column(String(20), nullable=False, default="monthly")
    cancellation_reason = Column(Text)
    cancellation_date = Column(DateTime)
    completion_date = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    __table_args__ = (Index("ix_contracts_period", "start_date", "end_date"),)


class NutritionPlan(Base):
    __tablename__ = "nutrition_plans"
    id = Column(String(32), primary_key=True, default=new_id)
    client_id = Column(String(32), index=True)
    contract_id = Column(String(32))
    name = Column(String(200), nullable=False)
    description = Column(Text)
    daily_calories = Column(Integer, nullable=False)
    macros = Column(JSON, default=dict)
    meals = Column(JSON, default=list)
    restrictions = Column(JSON, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)


class PhysicalTracking(Base):
    __tablename__ = "physical_tracking"
    id = Column(String(32), primary_key=True, default=new_id)
    client_id = Column(String(32))
    contract_id = Column(String(32))
    date = Column(DateTime, nullable=False)
    weight = Column(Float)
    body_fat = Column(Float)
    muscle_mass = Column(Float)
    measurements = Column(JSON, default=dict)
    photos = Column(JSON, default=list)
    notes = Column(Text, default="")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    __table_args__ = (Index("ix_physical_tracking_client_date", "client_id", "date"),)


class FinancialRecord(Base):
    __tablename__ = "financial_records"
    id = Column(String(32), primary_key=True, default=new_id)
    type = Column(String(10), nullable=False)
    category = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text)
    date = Column(DateTime, nullable=False)
    client_id = Column(String(32), index=True)
    contract_id = Column(String(32))
    payment_method = Column(String(20), default="cash")
    reference = Column(String(200), default="")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    __table_args__ = (Index("ix_financial_records_type_date", "type", "date"),)


COLLECTIONS = {
    "clients": Client,
    "training_plans": TrainingPlan,
    "contracts": Contract,
    "nutrition_plans": NutritionPlan,
    "physical_tracking": PhysicalTracking,
    "financial_records": FinancialRecord,
}
