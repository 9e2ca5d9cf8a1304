# herbal_ledger/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from herbal_ledger.api.exception_handlers import register_exception_handlers
from herbal_ledger.api.router import api_router
from herbal_ledger.core.config import settings
from herbal_ledger.db.ledger_store import LedgerStore
from herbal_ledger.services.container import build_services

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(store: Optional[LedgerStore] = None) -> FastAPI:
    """
    Build the API. With no store, one is opened from DATABASE_URL on
    startup and closed on shutdown; a store passed in stays owned by
    the caller.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "services", None) is None:
            owned = LedgerStore.from_url(settings.DATABASE_URL, echo=settings.DB_ECHO)
            owned.create_schema()
            app.state.services = build_services(owned)
            logger.info("Ledger store opened at %s", settings.DATABASE_URL)
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()
                app.state.services = None

    app = FastAPI(
        title=settings.PROJECT_NAME,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = build_services(store) if store is not None else None

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    # Health
    @app.get("/")
    def root():
        return {"message": "Herbal Ledger API running", "version": "v1"}

    return app


app = create_app()
