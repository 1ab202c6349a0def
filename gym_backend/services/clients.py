import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from gym_backend.db import Database
from gym_backend.errors import ConflictError, NotFoundError, PersistenceError, failing_as, require
from gym_backend.gateway import Gateway, parse_id
from gym_backend.models import utcnow
from gym_backend.services import editable
from gym_backend.services.contracts import cancel_dependent_contracts
from gym_backend.validators import validate_client

log = logging.getLogger(__name__)

CLIENTS = "clients"
SEARCH_FIELDS = ("first_name", "last_name", "email", "phone")


class ClientService:
    def __init__(self, db: Database, gateway: Gateway, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.gateway = gateway
        self.clock = clock

    def _get(self, client_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
        client = self.gateway.find_by_id(CLIENTS, client_id, session)
        if client is None:
            raise NotFoundError("client not found")
        return client

    def _ensure_unique(self, email: str, phone: str, exclude_id: Optional[str] = None) -> None:
        # Friendly message only; the unique indexes on email/phone decide races.
        for field, value in (("email", email), ("phone", phone)):
            clash = self.gateway.find_by_filter(CLIENTS, {field: value}, limit=1)
            if clash and clash[0]["id"] != exclude_id:
                raise ConflictError(f"a client with this {field} already exists")

    def create_client(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error creating client", log):
            doc = validate_client(data)
            self._ensure_unique(doc["email"], doc["phone"])
            client_id = self.gateway.create(CLIENTS, doc)
        log.info(f"Client {client_id} created")
        return self._get(client_id)

    def get_client(self, client_id: Any) -> Dict[str, Any]:
        with failing_as("Error fetching client"):
            return self._get(parse_id(client_id, "client id"))

    def list_clients(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        if search:
            return self.gateway.search(CLIENTS, search, SEARCH_FIELDS, limit=limit)
        flt = {"status": status} if status else {}
        return self.gateway.find_by_filter(CLIENTS, flt, order_by=["last_name", "first_name"], limit=limit, skip=skip)

    def update_client(self, client_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        with failing_as("Error updating client", log):
            cid = parse_id(client_id, "client id")
            existing = self._get(cid)
            doc = validate_client({**editable(existing), **changes}, check_age="birth_date" in changes)
            if doc["email"] != existing["email"] or doc["phone"] != existing["phone"]:
                self._ensure_unique(doc["email"], doc["phone"], exclude_id=cid)
            require(self.gateway.update(CLIENTS, cid, doc), "client could not be updated", PersistenceError)
        return self._get(cid)

    def delete_client(self, client_id: Any) -> bool:
        """Remove a client with no active contracts, cancelling the others first.

        All writes share one transaction.
        """
        with failing_as("Error deleting client", log):
            cid = parse_id(client_id, "client id")
            with self.db.atomic() as s:
                self._get(cid, s)
                swept = cancel_dependent_contracts(
                    self.gateway, s, "client_id", cid, "delete a client", "client deleted", self.clock()
                )
                require(self.gateway.delete(CLIENTS, cid, s), "client could not be deleted", PersistenceError)
        log.info(f"Client {cid} deleted ({swept} contract(s) cancelled)")
        return True

    def _set_status(self, client_id: Any, status: str, summary: str) -> Dict[str, Any]:
        with failing_as(summary, log):
            cid = parse_id(client_id, "client id")
            require(self.gateway.update(CLIENTS, cid, {"status": status}), "client not found", NotFoundError)
        log.info(f"Client {cid} is now {status}")
        return self._get(cid)

    def deactivate_client(self, client_id: Any) -> Dict[str, Any]:
        return self._set_status(client_id, "inactive", "Error deactivating client")

    def reactivate_client(self, client_id: Any) -> Dict[str, Any]:
        return self._set_status(client_id, "active", "Error reactivating client")

    def get_client_with_contracts(self, client_id: Any) -> Dict[str, Any]:
        with failing_as("Error fetching client contracts"):
            cid = parse_id(client_id, "client id")
            with self.db.atomic() as s:
                client = self._get(cid, s)
                contracts = self.gateway.find_by_filter("contracts", {"client_id": cid}, s, order_by=["-start_date"])
                plan_ids = sorted({c["plan_id"] for c in contracts if c["plan_id"]})
                plans = self.gateway.find_by_filter("training_plans", {"id__in": plan_ids}, s) if plan_ids else []
        client["contracts"] = contracts
        client["plans"] = plans
        return client
