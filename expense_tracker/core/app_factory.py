from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .clock import Clock, utc_now
from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.credential_service import CredentialService
from ..application.services.ledger_service import TransactionLedger
from ..application.services.report_service import ReportService
from ..application.services.token_service import TokenService
from ..domain.errors import TransientStoreFailure
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import categories as categories_router
from ..presentation.api.routers import transactions as transactions_router

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None, clock: Clock = utc_now) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Expense Tracker API", lifespan=_create_lifespan(settings, clock))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router.router)
    app.include_router(transactions_router.router)
    app.include_router(categories_router.router)

    @app.exception_handler(TransientStoreFailure)
    async def store_failure_handler(request: Request, exc: TransientStoreFailure) -> JSONResponse:
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    @app.get("/api/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True, "message": "Expense Tracker API is running"}

    return app


def _create_lifespan(settings: Settings, clock: Clock):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        persistence = SQLitePersistence(settings.database_path, clock=clock)
        token_service = TokenService(
            settings.session_token_secret,
            algorithm=settings.session_token_algorithm,
            lifetime=timedelta(days=settings.session_token_exp_days),
            clock=clock,
        )
        credential_service = CredentialService(
            persistence,
            bcrypt_rounds=settings.bcrypt_rounds,
            reset_token_ttl=timedelta(minutes=settings.reset_token_exp_minutes),
            verify_token_ttl=timedelta(hours=settings.verify_token_exp_hours),
            clock=clock,
        )
        ledger = TransactionLedger(
            persistence,
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
            clock=clock,
        )
        report_service = ReportService(ledger, clock=clock)

        app.state.container = ApplicationContainer(  # type: ignore[attr-defined]
            settings=settings,
            persistence=persistence,
            token_service=token_service,
            credential_service=credential_service,
            ledger=ledger,
            report_service=report_service,
        )
        logger.info("Expense tracker started with database %s", settings.database_path)

        try:
            yield
        finally:
            persistence.close()

    return lifespan
