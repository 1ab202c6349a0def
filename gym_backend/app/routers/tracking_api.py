from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel

from gym_backend.app.deps import get_services, require_api_key
from gym_backend.services import Services

router = APIRouter(prefix="/tracking", tags=["tracking"])


class MeasurementIn(BaseModel):
    body_part: str
    value: float


class PhotoIn(BaseModel):
    path: str
    description: str = ""


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_tracking_record(payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.tracking.create_record(payload)


@router.get("")
def list_tracking_records(
    client_id: str = Query(...),
    limit: Optional[int] = Query(None, ge=1, le=500),
    svc: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return svc.tracking.list_by_client(client_id, limit=limit)


@router.get("/{record_id}")
def get_tracking_record(record_id: str, svc: Services = Depends(get_services)):
    return svc.tracking.get(record_id)


@router.post("/{record_id}/measurements", dependencies=[Depends(require_api_key)])
def add_measurement(record_id: str, body: MeasurementIn, svc: Services = Depends(get_services)):
    return svc.tracking.add_measurement(record_id, body.body_part, body.value)


@router.post("/{record_id}/photos", status_code=201, dependencies=[Depends(require_api_key)])
def add_photo(record_id: str, body: PhotoIn, svc: Services = Depends(get_services)):
    return svc.tracking.add_photo(record_id, body.path, body.description)


@router.delete("/{record_id}/photos/{photo_id}", dependencies=[Depends(require_api_key)])
def remove_photo(record_id: str, photo_id: str, svc: Services = Depends(get_services)):
    return svc.tracking.remove_photo(record_id, photo_id)
