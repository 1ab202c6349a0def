import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from gym_backend.db import Database
from gym_backend.errors import NotFoundError, PersistenceError, failing_as, require
from gym_backend.gateway import Gateway, parse_id
from gym_backend.models import new_id, utcnow
from gym_backend.services import editable
from gym_backend.services.contracts import cancel_dependent_contracts
from gym_backend.validators import validate_exercise, validate_training_plan

log = logging.getLogger(__name__)

PLANS = "training_plans"
SEARCH_FIELDS = ("name", "description", "level")


def _with_exercise_ids(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["exercises"] = [{**ex, "id": ex.get("id") or new_id()} for ex in doc.get("exercises", [])]
    return doc


class PlanService:
    def __init__(self, db: Database, gateway: Gateway, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.gateway = gateway
        self.clock = clock

    def _get(self, plan_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
        plan = self.gateway.find_by_id(PLANS, plan_id, session)
        if plan is None:
            raise NotFoundError("plan not found")
        return plan

    def create_plan(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error creating plan", log):
            plan_id = self.gateway.create(PLANS, _with_exercise_ids(validate_training_plan(data)))
        log.info(f"Plan {plan_id} created")
        return self._get(plan_id)

    def get_plan(self, plan_id: Any) -> Dict[str, Any]:
        with failing_as("Error fetching plan"):
            return self._get(parse_id(plan_id, "plan id"))

    def list_plans(
        self,
        level: Optional[str] = None,
        active: Optional[bool] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Search, price range and level only ever return active plans."""
        if search:
            return self.gateway.search(PLANS, search, SEARCH_FIELDS, {"is_active": True}, limit=limit)
        flt: Dict[str, Any] = {}
        if min_price is not None or max_price is not None or level:
            flt["is_active"] = True
            if min_price is not None:
                flt["price__gte"] = min_price
            if max_price is not None:
                flt["price__lte"] = max_price
            if level:
                flt["level"] = level
        elif active is not None:
            flt["is_active"] = active
        return self.gateway.find_by_filter(PLANS, flt, order_by=["name"], limit=limit, skip=skip)

    def update_plan(self, plan_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error updating plan", log):
            pid = parse_id(plan_id, "plan id")
            with self.db.atomic() as s:
                existing = self._get(pid, s)
                doc = _with_exercise_ids(validate_training_plan({**editable(existing), **changes}))
                if existing["is_active"] and not doc["is_active"]:
                    cancel_dependent_contracts(
                        self.gateway, s, "plan_id", pid, "deactivate a plan", "plan deactivated", self.clock()
                    )
                require(self.gateway.update(PLANS, pid, doc, s), "plan could not be updated", PersistenceError)
        return self._get(pid)

    def delete_plan(self, plan_id: Any) -> bool:
        with failing_as("Error deleting plan", log):
            pid = parse_id(plan_id, "plan id")
            with self.db.atomic() as s:
                self._get(pid, s)
                swept = cancel_dependent_contracts(
                    self.gateway, s, "plan_id", pid, "delete a plan", "plan deleted", self.clock()
                )
                require(self.gateway.delete(PLANS, pid, s), "plan could not be deleted", PersistenceError)
        log.info(f"Plan {pid} deleted ({swept} contract(s) cancelled)")
        return True

    def deactivate_plan(self, plan_id: Any) -> Dict[str, Any]:
        with failing_as("Error deactivating plan", log):
            pid = parse_id(plan_id, "plan id")
            with self.db.atomic() as s:
                self._get(pid, s)
                swept = cancel_dependent_contracts(
                    self.gateway, s, "plan_id", pid, "deactivate a plan", "plan deactivated", self.clock()
                )
                require(
                    self.gateway.update(PLANS, pid, {"is_active": False}, s),
                    "plan could not be deactivated",
                    PersistenceError,
                )
        log.info(f"Plan {pid} deactivated ({swept} contract(s) cancelled)")
        return self._get(pid)

    def reactivate_plan(self, plan_id: Any) -> Dict[str, Any]:
        with failing_as("Error reactivating plan", log):
            pid = parse_id(plan_id, "plan id")
            require(self.gateway.update(PLANS, pid, {"is_active": True}), "plan not found", NotFoundError)
        log.info(f"Plan {pid} reactivated")
        return self._get(pid)

    def add_exercise(self, plan_id: Any, exercise: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error adding exercise"):
            pid = parse_id(plan_id, "plan id")
            entry = {**validate_exercise(exercise), "id": new_id()}
            with self.db.atomic() as s:
                plan = self._get(pid, s)
                self.gateway.update(PLANS, pid, {"exercises": list(plan["exercises"] or []) + [entry]}, s)
        return self._get(pid)

    def remove_exercise(self, plan_id: Any, exercise_id: str) -> Dict[str, Any]:
        with failing_as("Error removing exercise"):
            pid = parse_id(plan_id, "plan id")
            with self.db.atomic() as s:
                plan = self._get(pid, s)
                kept = [ex for ex in plan["exercises"] or [] if ex.get("id") != exercise_id]
                require(len(kept) != len(plan["exercises"] or []), "exercise not found", NotFoundError)
                self.gateway.update(PLANS, pid, {"exercises": kept}, s)
        return self._get(pid)

    def get_plan_with_clients(self, plan_id: Any) -> Dict[str, Any]:
        with failing_as("Error fetching plan clients"):
            pid = parse_id(plan_id, "plan id")
            with self.db.atomic() as s:
                plan = self._get(pid, s)
                contracts = self.gateway.find_by_filter("contracts", {"plan_id": pid}, s, order_by=["-start_date"])
                client_ids = sorted({c["client_id"] for c in contracts if c["client_id"]})
                clients = self.gateway.find_by_filter("clients", {"id__in": client_ids}, s) if client_ids else []
        plan["contracts"] = contracts
        plan["clients"] = clients
        return plan
