from typing import Any, Dict, List, Optional

import httpx


class StudioAPIError(Exception):
    def __init__(self, status_code: int, detail: str, code: str = ""):
        super().__init__(f"{status_code} {detail}")
        self.status_code = status_code
        self.detail = detail
        self.code = code


class StudioAPI:
    """Thin wrapper the dashboard pages use to talk to the gym API.

    Pass an existing httpx.Client (or FastAPI's TestClient) to reuse it.
    """

    def __init__(self, base_url: str = "http://127.0.0.1:8000", api_key: str = "",
                 client: Optional[httpx.Client] = None, timeout: float = 15.0):
        headers = {"x-api-key": api_key} if api_key else {}
        self.client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
        self.headers = headers

    def _call(self, method: str, path: str, **kwargs) -> Any:
        r = self.client.request(method, path, headers=self.headers, **kwargs)
        if r.status_code >= 400:
            try:
                body = r.json()
            except ValueError:
                body = {"detail": r.text}
            detail = body.get("detail")
            raise StudioAPIError(r.status_code, detail if isinstance(detail, str) else str(detail),
                                 body.get("code", ""))
        return r.json()

    # ---------------- reads ----------------
    def health(self) -> Dict[str, str]:
        return self._call("GET", "/health")

    def clients(self, status: Optional[str] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {k: v for k, v in {"status": status, "search": search}.items() if v}
        return self._call("GET", "/clients", params=params)

    def plans(self, active: Optional[bool] = None) -> List[Dict[str, Any]]:
        params = {} if active is None else {"active": str(active).lower()}
        return self._call("GET", "/plans", params=params)

    def contract(self, contract_id: str) -> Dict[str, Any]:
        return self._call("GET", f"/contracts/{contract_id}")

    def client_contracts(self, client_id: str) -> Dict[str, Any]:
        return self._call("GET", f"/clients/{client_id}/contracts")

    def expiring(self, days: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._call("GET", "/contracts/expiring", params={"days": days} if days else {})

    def expired(self) -> List[Dict[str, Any]]:
        return self._call("GET", "/contracts/expired")

    def report(self, name: str) -> Any:
        return self._call("GET", f"/reports/{name}")

    # ---------------- contract actions ----------------
    def assign(self, client_id: str, plan_id: str, start_date: Optional[str] = None,
               payment_schedule: str = "monthly") -> Dict[str, Any]:
        body = {"client_id": client_id, "plan_id": plan_id, "payment_schedule": payment_schedule}
        if start_date:
            body["start_date"] = start_date
        return self._call("POST", "/contracts", json=body)

    def renew(self, contract_id: str, additional_weeks: int) -> Dict[str, Any]:
        return self._call("POST", f"/contracts/{contract_id}/renew", json={"additional_weeks": additional_weeks})

    def cancel(self, contract_id: str, reason: str = "") -> Dict[str, Any]:
        return self._call("POST", f"/contracts/{contract_id}/cancel", json={"reason": reason})

    def complete(self, contract_id: str) -> Dict[str, Any]:
        return self._call("POST", f"/contracts/{contract_id}/complete")
