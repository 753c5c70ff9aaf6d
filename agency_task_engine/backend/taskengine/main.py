# backend/taskengine/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import init_db
from .logging_config import configure_logging

from .middleware.request_id import RequestIdMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.cadence import router as cadence_router
from .routers.renewal import router as renewal_router
from .routers.clients import router as clients_router

API_PREFIX = "/api"

log = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


@asynccontextmanager
async def _lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        init_db()
    log.info("taskengine started", extra={"event": "startup"})
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Agency Task Engine",
        version=getattr(settings, "engine_version", "dev"),
        lifespan=_lifespan,
    )

    # last added runs first: request id wraps the access log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Core
    app.include_router(health_router, prefix=API_PREFIX)

    # Cadence calculator
    app.include_router(cadence_router, prefix=API_PREFIX)

    # Task generation
    app.include_router(renewal_router, prefix=API_PREFIX)
    app.include_router(clients_router, prefix=API_PREFIX)

    return app


configure_logging()
app = create_app()
