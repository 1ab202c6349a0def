from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from gym_backend.app.deps import get_services, require_api_key
from gym_backend.services import Services

router = APIRouter(prefix="/plans", tags=["plans"])


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_plan(payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.plans.create_plan(payload)


@router.get("")
def list_plans(
    level: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, min_length=1),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=500),
    skip: Optional[int] = Query(None, ge=0),
    svc: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return svc.plans.list_plans(
        level=level, active=active, search=search, min_price=min_price, max_price=max_price, limit=limit, skip=skip
    )


@router.get("/{plan_id}")
def get_plan(plan_id: str, svc: Services = Depends(get_services)):
    return svc.plans.get_plan(plan_id)


@router.patch("/{plan_id}", dependencies=[Depends(require_api_key)])
def update_plan(plan_id: str, payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.plans.update_plan(plan_id, payload)


@router.delete("/{plan_id}", dependencies=[Depends(require_api_key)])
def delete_plan(plan_id: str, svc: Services = Depends(get_services)) -> Dict[str, Any]:
    return {"deleted": svc.plans.delete_plan(plan_id), "id": plan_id}


@router.get("/{plan_id}/clients")
def plan_clients(plan_id: str, svc: Services = Depends(get_services)):
    return svc.plans.get_plan_with_clients(plan_id)


@router.post("/{plan_id}/deactivate", dependencies=[Depends(require_api_key)])
def deactivate_plan(plan_id: str, svc: Services = Depends(get_services)):
    return svc.plans.deactivate_plan(plan_id)


@router.post("/{plan_id}/reactivate", dependencies=[Depends(require_api_key)])
def reactivate_plan(plan_id: str, svc: Services = Depends(get_services)):
    return svc.plans.reactivate_plan(plan_id)


# ---------------- Exercises ----------------
@router.post("/{plan_id}/exercises", status_code=201, dependencies=[Depends(require_api_key)])
def add_exercise(plan_id: str, payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.plans.add_exercise(plan_id, payload)


@router.delete("/{plan_id}/exercises/{exercise_id}", dependencies=[Depends(require_api_key)])
def remove_exercise(plan_id: str, exercise_id: str, svc: Services = Depends(get_services)):
    return svc.plans.remove_exercise(plan_id, exercise_id)
