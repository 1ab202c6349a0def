from typing import Any, Dict

META_FIELDS = ("id", "created_at", "updated_at")


def editable(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Stored document minus the fields the gateway owns."""
    return {k: v for k, v in doc.items() if k not in META_FIELDS}


class Services:
    """Everything the application root wires together around one Database."""

    def __init__(self, db, clock=None):
        from gym_backend.gateway import Gateway
        from gym_backend.models import utcnow
        from gym_backend.services.clients import ClientService
        from gym_backend.services.contracts import ContractService
        from gym_backend.services.plans import PlanService
        from gym_backend.services.records import FinanceService, NutritionService, TrackingService
        from gym_backend.services.reports import ReportService

        self.db = db
        self.clock = clock or utcnow
        self.gateway = Gateway(db)
        self.clients = ClientService(db, self.gateway, self.clock)
        self.plans = PlanService(db, self.gateway, self.clock)
        self.contracts = ContractService(db, self.gateway, self.clock)
        self.nutrition = NutritionService(db, self.gateway)
        self.tracking = TrackingService(db, self.gateway)
        self.finance = FinanceService(db, self.gateway)
        self.reports = ReportService(self.gateway)
