from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from gym_backend.app.deps import get_services, require_api_key
from gym_backend.services import Services

router = APIRouter(prefix="/finance", tags=["finance"])


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_financial_record(payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.finance.create_record(payload)


@router.get("")
def list_financial_records(
    type: Optional[str] = Query(None, pattern="^(income|expense)$"),
    client_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    svc: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return svc.finance.list_records(type=type, client_id=client_id, start=start, end=end)


@router.get("/{record_id}")
def get_financial_record(record_id: str, svc: Services = Depends(get_services)):
    return svc.finance.get(record_id)
