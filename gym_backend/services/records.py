"""Nutrition plans, physical tracking and financial records.

These hang off a client and (except finance) a contract but never block the
contract lifecycle.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from gym_backend.db import Database
from gym_backend.errors import NotFoundError, PreconditionFailedError, ValidationError, failing_as, require
from gym_backend.gateway import Gateway, parse_id
from gym_backend.models import new_id, utcnow
from gym_backend.validators import (
    as_datetime,
    validate_financial_record,
    validate_macros,
    validate_meal,
    validate_nutrition_plan,
    validate_physical_tracking,
)

log = logging.getLogger(__name__)


def _meal_entry(meal: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **meal,
        "id": meal.get("id") or new_id(),
        "total_calories": sum(f.get("calories") or 0 for f in meal["foods"]),
    }


class _RecordService:
    collection = ""
    label = "record"

    def __init__(self, db: Database, gateway: Gateway):
        self.db = db
        self.gateway = gateway

    def _get(self, record_id: Any, session: Optional[Session] = None) -> Dict[str, Any]:
        record = self.gateway.find_by_id(self.collection, parse_id(record_id, f"{self.label} id"), session)
        if record is None:
            raise NotFoundError(f"{self.label} not found")
        return record

    def get(self, record_id: Any) -> Dict[str, Any]:
        with failing_as(f"Error fetching {self.label}"):
            return self._get(record_id)

    def _check_contract(self, doc: Dict[str, Any], session: Session) -> None:
        contract = self.gateway.find_by_id("contracts", doc["contract_id"], session)
        require(contract is not None, "contract not found", NotFoundError)
        require(contract["client_id"] == doc["client_id"], "contract does not belong to this client")

    def _create(self, doc: Dict[str, Any], check_contract: bool = True) -> Dict[str, Any]:
        with self.db.atomic() as s:
            if check_contract:
                self._check_contract(doc, s)
            record_id = self.gateway.create(self.collection, doc, s)
        log.info(f"{self.label.capitalize()} {record_id} created")
        return self._get(record_id)


class NutritionService(_RecordService):
    collection = "nutrition_plans"
    label = "nutrition plan"

    def create_plan(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error creating nutrition plan", log):
            doc = validate_nutrition_plan(data)
            doc["meals"] = [_meal_entry(m) for m in doc["meals"]]
            return self._create(doc)

    def list_by_client(self, client_id: Any, active_only: bool = False) -> List[Dict[str, Any]]:
        with failing_as("Error listing nutrition plans"):
            flt: Dict[str, Any] = {"client_id": parse_id(client_id, "client id")}
        if active_only:
            flt["is_active"] = True
        return self.gateway.find_by_filter(self.collection, flt, order_by=["-created_at"])

    def add_meal(self, plan_id: Any, meal: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error adding meal"):
            entry = _meal_entry(validate_meal(meal))
            with self.db.atomic() as s:
                plan = self._get(plan_id, s)
                self.gateway.update(self.collection, plan["id"], {"meals": list(plan["meals"] or []) + [entry]}, s)
            return self._get(plan_id)

    def set_macros(self, plan_id: Any, protein: float, carbs: float, fats: float) -> Dict[str, Any]:
        with failing_as("Error setting macros"):
            macros = validate_macros({"protein": protein, "carbs": carbs, "fats": fats})
            plan = self._get(plan_id)
            self.gateway.update(self.collection, plan["id"], {"macros": macros})
            return self._get(plan_id)


class TrackingService(_RecordService):
    collection = "physical_tracking"
    label = "tracking record"

    def create_record(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error creating tracking record", log):
            return self._create(validate_physical_tracking(data))

    def list_by_client(self, client_id: Any, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        with failing_as("Error listing tracking records"):
            cid = parse_id(client_id, "client id")
        return self.gateway.find_by_filter(self.collection, {"client_id": cid}, order_by=["-date"], limit=limit)

    def add_measurement(self, record_id: Any, body_part: str, value: float) -> Dict[str, Any]:
        with failing_as("Error adding measurement"):
            if not body_part or isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ValidationError([f"{body_part or 'body part'}: measurement must be a positive number"],
                                      entity="measurement")
            with self.db.atomic() as s:
                record = self._get(record_id, s)
                measurements = {**(record["measurements"] or {}), body_part: value}
                self.gateway.update(self.collection, record["id"], {"measurements": measurements}, s)
            return self._get(record_id)

    def add_photo(self, record_id: Any, path: str, description: str = "") -> Dict[str, Any]:
        with failing_as("Error adding photo"):
            if not path:
                raise ValidationError(["path: photo path is required"], entity="photo")
            photo = {"id": new_id(), "path": path, "description": description, "uploaded_at": utcnow().isoformat()}
            with self.db.atomic() as s:
                record = self._get(record_id, s)
                self.gateway.update(self.collection, record["id"], {"photos": list(record["photos"] or []) + [photo]}, s)
            return self._get(record_id)

    def remove_photo(self, record_id: Any, photo_id: str) -> Dict[str, Any]:
        with failing_as("Error removing photo"):
            with self.db.atomic() as s:
                record = self._get(record_id, s)
                kept = [p for p in record["photos"] or [] if p.get("id") != photo_id]
                require(len(kept) != len(record["photos"] or []), "photo not found", NotFoundError)
                self.gateway.update(self.collection, record["id"], {"photos": kept}, s)
            return self._get(record_id)


class FinanceService(_RecordService):
    collection = "financial_records"
    label = "financial record"

    def create_record(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error creating financial record", log):
            doc = validate_financial_record(data)
            if doc["contract_id"] and not doc["client_id"]:
                raise PreconditionFailedError("a contract reference needs its client")
            return self._create(doc, check_contract=bool(doc["contract_id"]))

    def list_records(
        self,
        type: Optional[str] = None,
        client_id: Any = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        flt: Dict[str, Any] = {}
        if type:
            flt["type"] = type
        if client_id:
            with failing_as("Error listing financial records"):
                flt["client_id"] = parse_id(client_id, "client id")
        if start:
            flt["date__gte"] = as_datetime(start)
        if end:
            flt["date__lte"] = as_datetime(end)
        return self.gateway.find_by_filter(self.collection, flt, order_by=["-date"])
