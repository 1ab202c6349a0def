"""Field rules for every stored entity.

Each ``validate_*`` function takes candidate fields, checks every rule at once
and either returns the normalized document or raises one
:class:`~gym_backend.errors.ValidationError` listing all violations.
"""
import re
import uuid
from datetime import date, datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Type

import pydantic
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from gym_backend.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]{10,15}$")

DEFAULT_TERMS = [
    "The client commits to attending the scheduled sessions regularly.",
    "Payments are due on time according to the agreed schedule.",
    "The studio may cancel the contract for breach of these terms.",
    "Cancellations must be notified 48 hours in advance.",
    "The client must report any relevant medical condition.",
    "The studio is not liable for injuries caused by misuse of equipment.",
]


def as_datetime(v):
    if isinstance(v, datetime):
        return v.astimezone(timezone.utc).replace(tzinfo=None) if v.tzinfo else v
    if isinstance(v, date):
        return datetime(v.year, v.month, v.day)
    return v


def _id(v):
    if v is None:
        return v
    try:
        return uuid.UUID(str(v)).hex
    except (ValueError, TypeError):
        raise ValueError("must be a valid identifier")


def _timestamp_in(v):
    if isinstance(v, str):
        try:
            v = datetime.fromisoformat(v)
        except ValueError:
            return v  # left for pydantic to parse or reject
    return as_datetime(v)


Timestamp = Annotated[datetime, BeforeValidator(_timestamp_in), AfterValidator(as_datetime)]
Identifier = Annotated[str, BeforeValidator(_id)]
OptionalIdentifier = Annotated[Optional[str], BeforeValidator(_id)]


def age_on(birth: datetime, today: date) -> int:
    years = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        years -= 1
    return years


class _Entity(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ---------------- clients ----------------
class EmergencyContact(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class ClientIn(_Entity):
    first_name: str = Field(min_length=2)
    last_name: str = Field(min_length=2)
    email: str
    phone: str
    birth_date: Timestamp
    gender: Literal["male", "female", "other"]
    emergency_contact: EmergencyContact
    medical_conditions: List[str] = []
    goals: List[str] = []
    status: Literal["active", "inactive", "suspended"] = "active"

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        if not EMAIL_RE.match(v):
            raise ValueError("invalid email")
        return v.lower()

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        if not PHONE_RE.match(v):
            raise ValueError("invalid phone number")
        return v

    @field_validator("birth_date")
    @classmethod
    def _age(cls, v: datetime, info: ValidationInfo) -> datetime:
        # stored clients age past 100; only a new birth date is checked
        if (info.context or {}).get("check_age", True) and not 16 <= age_on(v, date.today()) <= 100:
            raise ValueError("age must be between 16 and 100 years")
        return v


# ---------------- training plans ----------------
class Exercise(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str = Field(min_length=1)
    sets: int = Field(gt=0)
    reps: int = Field(gt=0)
    weight: Optional[float] = None
    rest_time: int = 60  # seconds
    instructions: str = ""


class TrainingPlanIn(_Entity):
    name: str = Field(min_length=3)
    description: str = Field(min_length=10)
    duration: int = Field(ge=1, le=52)
    level: Literal["beginner", "intermediate", "advanced"]
    goals: List[str] = []
    exercises: List[Exercise] = []
    price: float = Field(gt=0)
    is_active: bool = True


# ---------------- contracts ----------------
class ContractIn(_Entity):
    client_id: Identifier
    plan_id: Identifier
    start_date: Timestamp
    end_date: Timestamp
    price: float = Field(gt=0)
    terms: List[str] = Field(default_factory=lambda: list(DEFAULT_TERMS))
    status: Literal["active", "completed", "cancelled"] = "active"
    payment_schedule: Literal["monthly", "weekly", "full"] = "monthly"

    @model_validator(mode="after")
    def _period(self):
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


# ---------------- nutrition ----------------
class Food(BaseModel):
    name: str = Field(min_length=1)
    calories: float = Field(default=0, ge=0)


class Meal(BaseModel):
    id: Optional[str] = None
    name: str = Field(min_length=1)
    time: str = ""
    foods: List[Food]
    total_calories: Optional[float] = None


class Macros(BaseModel):
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fats: float = Field(ge=0)

    @model_validator(mode="after")
    def _sum(self):
        if round(self.protein + self.carbs + self.fats, 6) != 100:
            raise ValueError("macros must add up to 100%")
        return self


class NutritionPlanIn(_Entity):
    client_id: Identifier
    contract_id: Identifier
    name: str = Field(min_length=3)
    description: str = ""
    daily_calories: int = Field(ge=800, le=5000)
    macros: Optional[Macros] = None
    meals: List[Meal] = []
    restrictions: List[str] = []
    is_active: bool = True


# ---------------- physical tracking ----------------
class PhysicalTrackingIn(_Entity):
    client_id: Identifier
    contract_id: Identifier
    date: Timestamp
    weight: Optional[float] = Field(default=None, gt=0, le=300)
    body_fat: Optional[float] = Field(default=None, ge=0, le=50)
    muscle_mass: Optional[float] = Field(default=None, ge=0, le=100)
    measurements: Dict[str, float] = {}
    photos: List[Dict[str, Any]] = []
    notes: str = ""

    @field_validator("measurements")
    @classmethod
    def _positive(cls, v: Dict[str, float]) -> Dict[str, float]:
        bad = [k for k, x in v.items() if not k or x <= 0]
        if bad:
            raise ValueError(f"measurements must be positive: {', '.join(bad)}")
        return v


# ---------------- finance ----------------
class FinancialRecordIn(_Entity):
    type: Literal["income", "expense"]
    category: str = Field(min_length=2)
    amount: float = Field(gt=0)
    description: str = Field(min_length=3)
    date: Timestamp
    client_id: OptionalIdentifier = None
    contract_id: OptionalIdentifier = None
    payment_method: Literal["cash", "card", "transfer", "check"] = "cash"
    reference: str = ""


# ---------------- entry points ----------------
def _messages(exc: pydantic.ValidationError) -> List[str]:
    out = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid value")
        # pydantic prefixes ValueError messages
        msg = msg[len("Value error, "):] if msg.startswith("Value error, ") else msg
        out.append(f"{loc}: {msg}" if loc else msg)
    return out


def _validate(
    schema: Type[BaseModel], entity: str, fields: Dict[str, Any], context: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    try:
        return schema.model_validate(dict(fields or {}), context=context).model_dump()
    except pydantic.ValidationError as exc:
        raise ValidationError(_messages(exc), entity=entity) from None


def validate_client(fields: Dict[str, Any], check_age: bool = True) -> Dict[str, Any]:
    return _validate(ClientIn, "client", fields, {"check_age": check_age})


def validate_training_plan(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _validate(TrainingPlanIn, "training plan", fields)


def validate_contract(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _validate(ContractIn, "contract", fields)


def validate_nutrition_plan(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _validate(NutritionPlanIn, "nutrition plan", fields)


def validate_physical_tracking(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _validate(PhysicalTrackingIn, "physical tracking record", fields)


def validate_financial_record(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _validate(FinancialRecordIn, "financial record", fields)


def validate_exercise(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _validate(Exercise, "exercise", fields)


def validate_meal(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _validate(Meal, "meal", fields)


def validate_macros(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _validate(Macros, "macros", fields)
