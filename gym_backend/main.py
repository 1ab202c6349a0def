# run: uvicorn --factory gym_backend.main:create_app --reload
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gym_backend.app.config import Settings
from gym_backend.app.routers import (
    clients_api,
    contracts_api,
    finance_api,
    nutrition_api,
    plans_api,
    reports_api,
    tracking_api,
)
from gym_backend.db import Database
from gym_backend.errors import (
    ConflictError,
    GymError,
    InvalidIdentifierError,
    NotFoundError,
    PersistenceError,
    PreconditionFailedError,
    ValidationError,
)
from gym_backend.services import Services

log = logging.getLogger("uvicorn.error")

STATUS_BY_ERROR = {
    InvalidIdentifierError: 400,
    NotFoundError: 404,
    PreconditionFailedError: 409,
    ConflictError: 409,
    ValidationError: 422,
    PersistenceError: 500,
}


def error_status(exc: GymError) -> int:
    for kind in type(exc).__mro__:
        if kind in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[kind]
    return 400


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the API around one Database.

    A database passed in by the caller is left open at shutdown.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("gym_backend").setLevel(settings.log_level)
    db = database or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Dev bootstrap (optional): create tables without running migrations
        if settings.dev_bootstrap:
            db.create_all()
        yield
        if database is None:
            db.dispose()

    app = FastAPI(title="Gym Studio API", version="0.1", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.services = Services(db)

    # ---------------- Errors ----------------
    @app.exception_handler(GymError)
    async def gym_error(request: Request, exc: GymError) -> JSONResponse:
        status = error_status(exc)
        if status >= 500:
            log.error(f"{request.method} {request.url.path} failed: {exc.message}")
        body: Dict[str, Any] = {"detail": exc.message, "code": exc.code}
        if isinstance(exc, ValidationError):
            body["errors"] = exc.errors
        return JSONResponse(status_code=status, content=body)

    # ---------------- Health ----------------
    @app.get("/health")
    def health() -> Dict[str, str]:
        db.ping()
        return {"status": "ok"}

    for module in (clients_api, plans_api, contracts_api, nutrition_api, tracking_api, finance_api, reports_api):
        app.include_router(module.router)

    return app
