from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from gym_backend.app.deps import get_services
from gym_backend.services import Services

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/clients")
def clients_report(svc: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.reports.clients()


@router.get("/plans")
def plans_report(svc: Services = Depends(get_services)) -> List[Dict[str, Any]]:
    return svc.reports.plans()


@router.get("/finance")
def finance_report(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    svc: Services = Depends(get_services),
) -> Dict[str, Any]:
    return svc.reports.finance(start, end)
