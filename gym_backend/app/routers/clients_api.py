from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from gym_backend.app.deps import get_services, require_api_key
from gym_backend.services import Services

router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
def create_client(payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.clients.create_client(payload)


@router.get("")
def list_clients(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, min_length=1),
    limit: Optional[int] = Query(None, ge=1, le=500),
    skip: Optional[int] = Query(None, ge=0),
    svc: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    return svc.clients.list_clients(status=status, search=search, limit=limit, skip=skip)


@router.get("/{client_id}")
def get_client(client_id: str, svc: Services = Depends(get_services)):
    return svc.clients.get_client(client_id)


@router.patch("/{client_id}", dependencies=[Depends(require_api_key)])
def update_client(client_id: str, payload: Dict[str, Any] = Body(...), svc: Services = Depends(get_services)):
    return svc.clients.update_client(client_id, payload)


@router.delete("/{client_id}", dependencies=[Depends(require_api_key)])
def delete_client(client_id: str, svc: Services = Depends(get_services)) -> Dict[str, Any]:
    return {"deleted": svc.clients.delete_client(client_id), "id": client_id}


@router.get("/{client_id}/contracts")
def client_contracts(client_id: str, svc: Services = Depends(get_services)):
    return svc.clients.get_client_with_contracts(client_id)


@router.post("/{client_id}/deactivate", dependencies=[Depends(require_api_key)])
def deactivate_client(client_id: str, svc: Services = Depends(get_services)):
    return svc.clients.deactivate_client(client_id)


@router.post("/{client_id}/reactivate", dependencies=[Depends(require_api_key)])
def reactivate_client(client_id: str, svc: Services = Depends(get_services)):
    return svc.clients.reactivate_client(client_id)
