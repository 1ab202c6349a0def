from typing import Optional

from fastapi import Header, HTTPException, Request

from gym_backend.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_api_key(request: Request, x_api_key: Optional[str] = Header(None)):
    api_key = request.app.state.settings.api_key
    # no key configured: open (dev)
    if api_key and x_api_key != api_key:
        raise HTTPException(status_code=401, detail="unauthorized")
    return True
