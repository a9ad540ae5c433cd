# kosan/main.py
from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import settings
from .logging_config import configure_logging

from .middleware.request_context import RequestContextMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.dashboard import router as dashboard_router

from .routers.rooms import router as rooms_router
from .routers.residents import router as residents_router
from .routers.payments import router as payments_router
from .routers.expenses import router as expenses_router
from .routers.reports import router as reports_router

API_PREFIX = "/api"
STORAGE_MOUNT = "/storage"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Kosan Admin", version="1.0.0")

    # Middleware added later wraps earlier ones; the request context encloses the access log line.
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(dashboard_router, prefix=API_PREFIX)

    # Rooms + residents
    app.include_router(rooms_router, prefix=API_PREFIX)
    app.include_router(residents_router, prefix=API_PREFIX)

    # Money in / money out
    app.include_router(payments_router, prefix=API_PREFIX)
    app.include_router(expenses_router, prefix=API_PREFIX)
    app.include_router(reports_router, prefix=API_PREFIX)

    # Public-read buckets (receipts, identity documents)
    storage_root = Path(settings.storage_dir)
    storage_root.mkdir(parents=True, exist_ok=True)
    app.mount(STORAGE_MOUNT, StaticFiles(directory=str(storage_root)), name="storage")

    return app


app = create_app()
