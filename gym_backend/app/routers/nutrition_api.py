from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel

from gym_backend.app.deps import get_services, require_api_key
from gym_backend.services import Services

router = APIRouter(prefix="/nutrition", tags=["nutrition"])


class MacrosIn(BaseModel):
    protein: float
    carbs: float
    fats: float


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_nutrition_plan(payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.nutrition.create_plan(payload)


@router.get("")
def list_nutrition_plans(
    client_id: str = Query(...),
    active_only: bool = Query(False),
    svc: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return svc.nutrition.list_by_client(client_id, active_only=active_only)


@router.get("/{plan_id}")
def get_nutrition_plan(plan_id: str, svc: Services = Depends(get_services)):
    return svc.nutrition.get(plan_id)


@router.post("/{plan_id}/meals", status_code=201, dependencies=[Depends(require_api_key)])
def add_meal(plan_id: str, payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.nutrition.add_meal(plan_id, payload)


@router.put("/{plan_id}/macros", dependencies=[Depends(require_api_key)])
def set_macros(plan_id: str, body: MacrosIn, svc: Services = Depends(get_services)):
    return svc.nutrition.set_macros(plan_id, body.protein, body.carbs, body.fats)
