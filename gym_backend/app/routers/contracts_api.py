from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from gym_backend.app.deps import get_services, require_api_key
from gym_backend.services import Services

router = APIRouter(prefix="/contracts", tags=["contracts"])


class AssignIn(BaseModel):
    client_id: str
    plan_id: str
    start_date: Optional[str] = None  # ISO date or datetime
    payment_schedule: str = "monthly"


class RenewIn(BaseModel):
    additional_weeks: int = Field(..., ge=1, le=520)


class CancelIn(BaseModel):
    reason: str = ""


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def assign_plan(body: AssignIn, svc: Services = Depends(get_services)):
    return svc.contracts.assign_plan(body.client_id, body.plan_id, body.start_date, body.payment_schedule)


# listings before /{contract_id} so they are not captured as ids
@router.get("/active")
def active_contracts(svc: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.contracts.list_active()


@router.get("/expiring")
def expiring_contracts(
    request: Request,
    days: Optional[int] = Query(None, ge=1, le=365),
    svc: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return svc.contracts.list_expiring(days or request.app.state.settings.expiring_days)


@router.get("/expired")
def expired_contracts(svc: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.contracts.list_expired()


@router.get("/by-client/{client_id}")
def contracts_by_client(client_id: str, svc: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.contracts.contracts_by_client(client_id)


@router.get("/by-plan/{plan_id}")
def contracts_by_plan(plan_id: str, svc: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.contracts.contracts_by_plan(plan_id)


@router.get("/{contract_id}")
def get_contract(contract_id: str, svc: Services = Depends(get_services)):
    return svc.contracts.get_contract_with_details(contract_id)


@router.post("/{contract_id}/renew", dependencies=[Depends(require_api_key)])
def renew_contract(contract_id: str, body: RenewIn, svc: Services = Depends(get_services)):
    return svc.contracts.renew(contract_id, body.additional_weeks)


@router.post("/{contract_id}/cancel", dependencies=[Depends(require_api_key)])
def cancel_contract(contract_id: str, body: Optional[CancelIn] = None, svc: Services = Depends(get_services)):
    return svc.contracts.cancel(contract_id, body.reason if body else "")


@router.post("/{contract_id}/complete", dependencies=[Depends(require_api_key)])
def complete_contract(contract_id: str, svc: Services = Depends(get_services)):
    return svc.contracts.complete(contract_id)
