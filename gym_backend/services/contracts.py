"""Contract lifecycle.

    (none) --assign--> active --renew--> active (end_date extended)
                         |--complete--> completed  (renew brings it back to active)
                         '--cancel----> cancelled  (terminal)

assign runs inside one transaction together with the client/plan checks.
renew, cancel and complete re-check what they read (status, and end_date for
renew) in the UPDATE itself, so of two racing transitions the later one fails
instead of overwriting the first.

Known gap: two concurrent assigns for the same (client, plan) can both pass the
"no active contract" check unless the database isolation level serializes
them. There is no storage constraint for it.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from gym_backend.db import Database
from gym_backend.errors import NotFoundError, ValidationError, failing_as, require
from gym_backend.gateway import Gateway, parse_id
from gym_backend.models import utcnow
from gym_backend.validators import as_datetime, validate_contract

log = logging.getLogger(__name__)

ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"

CONTRACTS = "contracts"
MAX_RENEWAL_WEEKS = 520


def add_weeks(moment: datetime, weeks: int) -> datetime:
    # calendar days, not business days
    try:
        return moment + timedelta(days=7 * int(weeks))
    except OverflowError:
        raise ValidationError([f"end_date: {weeks} week(s) after {moment:%Y-%m-%d} is out of range"], entity="contract")


def days_remaining(contract: Dict[str, Any], now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    return math.ceil((contract["end_date"] - now).total_seconds() / 86400)


def is_current(contract: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return contract["status"] == ACTIVE and contract["start_date"] <= now <= contract["end_date"]


def cancel_dependent_contracts(
    gateway: Gateway, session: Session, field: str, owner_id: str, what: str, reason: str, now: datetime
) -> int:
    """Refuse while any contract on `field` is active, else cancel the rest.

    Runs in the caller's transaction so it rolls back with it.
    """
    active = gateway.count(CONTRACTS, {field: owner_id, "status": ACTIVE}, session)
    require(active == 0, f"cannot {what} with {active} active contract(s)")
    return gateway.update_many(
        CONTRACTS,
        {field: owner_id, "status__nin": [ACTIVE, CANCELLED]},
        {"status": CANCELLED, "cancellation_reason": reason, "cancellation_date": now},
        session,
    )


def _when(value: Any, field: str) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            raise ValidationError([f"{field}: invalid date {value!r}"], entity="contract")
    value = as_datetime(value)
    if not isinstance(value, datetime):
        raise ValidationError([f"{field}: invalid date {value!r}"], entity="contract")
    return value


class ContractService:
    def __init__(self, db: Database, gateway: Gateway, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.gateway = gateway
        self.clock = clock

    def _get(self, contract_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
        contract = self.gateway.find_by_id(CONTRACTS, contract_id, session)
        if contract is None:
            raise NotFoundError("contract not found")
        return contract

    # ---------------- transitions ----------------
    def assign_plan(
        self, client_id: Any, plan_id: Any, start_date: Any = None, payment_schedule: str = "monthly"
    ) -> Dict[str, Any]:
        with failing_as("Error assigning plan", log):
            cid = parse_id(client_id, "client id")
            pid = parse_id(plan_id, "plan id")
            start = _when(start_date, "start_date") or self.clock()

            with self.db.atomic() as s:
                client = self.gateway.find_by_id("clients", cid, s)
                require(client is not None, "client not found", NotFoundError)
                require(client["status"] == "active", "client must be active to be assigned a plan")

                plan = self.gateway.find_by_id("training_plans", pid, s)
                require(plan is not None, "plan not found", NotFoundError)
                require(plan["is_active"], "plan must be active to be assigned")

                existing = self.gateway.count(CONTRACTS, {"client_id": cid, "plan_id": pid, "status": ACTIVE}, s)
                require(existing == 0, "client already has an active contract for this plan")

                doc = validate_contract({
                    "client_id": cid,
                    "plan_id": pid,
                    "start_date": start,
                    "end_date": add_weeks(start, plan["duration"]),
                    "price": plan["price"],  # frozen at assignment time
                    "status": ACTIVE,
                    "payment_schedule": payment_schedule,
                })
                contract_id = self.gateway.create(CONTRACTS, doc, s)
                contract = self.gateway.find_by_id(CONTRACTS, contract_id, s)

        log.info(f"Contract {contract_id} assigned: client={cid} plan={pid} until {contract['end_date']:%Y-%m-%d}")
        return contract

    def renew(self, contract_id: Any, additional_weeks: int) -> Dict[str, Any]:
        """Extend the end date. Completed contracts come back to active on purpose."""
        with failing_as("Error renewing contract", log):
            cid = parse_id(contract_id, "contract id")
            if isinstance(additional_weeks, bool) or not isinstance(additional_weeks, int) \
                    or not 1 <= additional_weeks <= MAX_RENEWAL_WEEKS:
                raise ValidationError(
                    [f"additional_weeks: must be a whole number of weeks between 1 and {MAX_RENEWAL_WEEKS}"],
                    entity="renewal",
                )
            with self.db.atomic() as s:
                contract = self._get(cid, s)
                require(contract["status"] != CANCELLED, "a cancelled contract cannot be renewed")
                changed = self.gateway.update(
                    CONTRACTS,
                    cid,
                    {"end_date": add_weeks(contract["end_date"], additional_weeks), "status": ACTIVE},
                    s,
                    where={"status__ne": CANCELLED, "end_date": contract["end_date"]},
                )
                require(changed, "contract changed concurrently, renewal rejected")
                renewed = self._get(cid, s)

        log.info(f"Contract {cid} renewed by {additional_weeks} week(s) until {renewed['end_date']:%Y-%m-%d}")
        return renewed

    def cancel(self, contract_id: Any, reason: str = "") -> Dict[str, Any]:
        # TODO: roll back the client's physical-tracking records taken under this contract
        with failing_as("Error cancelling contract", log):
            cid = parse_id(contract_id, "contract id")
            with self.db.atomic() as s:
                contract = self._get(cid, s)
                require(contract["status"] != CANCELLED, "contract is already cancelled")
                require(contract["status"] != COMPLETED, "a completed contract cannot be cancelled")
                changed = self.gateway.update(
                    CONTRACTS,
                    cid,
                    {"status": CANCELLED, "cancellation_reason": reason or "", "cancellation_date": self.clock()},
                    s,
                    where={"status": ACTIVE},
                )
                require(changed, "contract changed concurrently, cancellation rejected")
                cancelled = self._get(cid, s)

        log.info(f"Contract {cid} cancelled ({reason or 'no reason given'})")
        return cancelled

    def complete(self, contract_id: Any) -> Dict[str, Any]:
        with failing_as("Error completing contract", log):
            cid = parse_id(contract_id, "contract id")
            with self.db.atomic() as s:
                contract = self._get(cid, s)
                require(contract["status"] == ACTIVE, "only active contracts can be completed")
                changed = self.gateway.update(
                    CONTRACTS, cid, {"status": COMPLETED, "completion_date": self.clock()}, s, where={"status": ACTIVE}
                )
                require(changed, "contract changed concurrently, completion rejected")
                completed = self._get(cid, s)

        log.info(f"Contract {cid} completed")
        return completed

    def complete_expired(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Complete every active contract whose end date has passed."""
        now = now or self.clock()
        done = []
        with failing_as("Error completing expired contracts", log):
            with self.db.atomic() as s:
                for contract in self.gateway.find_by_filter(CONTRACTS, {"status": ACTIVE, "end_date__lt": now}, s):
                    if self.gateway.update(
                        CONTRACTS, contract["id"], {"status": COMPLETED, "completion_date": now}, s,
                        where={"status": ACTIVE},
                    ):
                        done.append(self._get(contract["id"], s))
        log.info(f"Completed {len(done)} expired contract(s)")
        return done

    # ---------------- queries ----------------
    def get_contract(self, contract_id: Any) -> Dict[str, Any]:
        with failing_as("Error fetching contract"):
            return self._get(parse_id(contract_id, "contract id"))

    def get_contract_with_details(self, contract_id: Any) -> Dict[str, Any]:
        with failing_as("Error fetching contract details"):
            with self.db.atomic() as s:
                contract = self._get(parse_id(contract_id, "contract id"), s)
                contract["client"] = self.gateway.find_by_id("clients", contract["client_id"], s)
                contract["plan"] = self.gateway.find_by_id("training_plans", contract["plan_id"], s)
        contract["days_remaining"] = days_remaining(contract, self.clock())
        return contract

    def list_active(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or self.clock()
        return self.gateway.find_by_filter(
            CONTRACTS, {"status": ACTIVE, "start_date__lte": now, "end_date__gte": now}, order_by=["end_date"]
        )

    def list_expiring(self, days: int = 7, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or self.clock()
        return self.gateway.find_by_filter(
            CONTRACTS,
            {"status": ACTIVE, "end_date__gte": now, "end_date__lte": now + timedelta(days=days)},
            order_by=["end_date"],
        )

    def list_expired(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or self.clock()
        return self.gateway.find_by_filter(CONTRACTS, {"status": ACTIVE, "end_date__lt": now}, order_by=["end_date"])

    def contracts_by_client(self, client_id: Any) -> List[Dict[str, Any]]:
        with failing_as("Error fetching client contracts"):
            cid = parse_id(client_id, "client id")
        return self.gateway.find_by_filter(CONTRACTS, {"client_id": cid}, order_by=["-start_date"])

    def contracts_by_plan(self, plan_id: Any) -> List[Dict[str, Any]]:
        with failing_as("Error fetching plan contracts"):
            pid = parse_id(plan_id, "plan id")
        return self.gateway.find_by_filter(CONTRACTS, {"plan_id": pid}, order_by=["-start_date"])
