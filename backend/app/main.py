"""
HR Operations KPI API
FastAPI service for HR tickets, stop-clock SLAs and KPI reporting, with WeCom
OAuth login and JSON-file persistence under DATA_DIR.
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import APP_VERSION, Settings
from app.db import JsonStore
from app.services.logging_config import setup_logging
from app.services.middleware import (
    RateLimitMiddleware,
    RequestTimingMiddleware,
    SecurityHeadersMiddleware,
)
from app.services.perf_monitor import tracker as perf_tracker

logger = logging.getLogger("hcm-api")

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    for var, value in [("WECOM_CORP_ID", settings.wecom_corp_id), ("WECOM_CORP_SECRET", settings.wecom_corp_secret)]:
        if not value:
            logger.warning(f"MISSING env var: {var}; WeCom login unavailable")
    if settings.wecom_dev_allow_fallback:
        logger.warning("WECOM_DEV_ALLOW_FALLBACK is on; developer logins are accepted")

    store = JsonStore(settings.data_dir)
    await store.load(seed_demo=settings.seed_demo_data)
    app.state.store = store
    logger.info(f"HR ops service ready at {settings.base_url}")
    yield


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(level=settings.log_level, json_output=settings.json_logs)

    app = FastAPI(
        title="HR Operations KPI API",
        version=APP_VERSION,
        description="HR tickets, stop-clock SLAs and KPI reporting",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Requested-With"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RateLimitMiddleware)
    # Request timing + X-Request-ID must be outermost so it wraps all other middleware
    app.add_middleware(RequestTimingMiddleware)

    # Routers
    from app.api.auth_routes import router as auth_router
    from app.api.kpi_routes import router as kpi_router
    from app.api.ticket_routes import router as ticket_router
    from app.api.view_routes import router as view_router

    app.include_router(view_router)
    app.include_router(auth_router)
    app.include_router(kpi_router)
    app.include_router(ticket_router)
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/health")
    async def health_check():
        return {
            "status": "active",
            "version": APP_VERSION,
            "data_dir": settings.data_dir,
            "wecom_configured": settings.wecom_configured,
            "dev_fallback": settings.wecom_dev_allow_fallback,
        }

    @app.get("/metrics")
    async def metrics():
        """
        Report metrics sourced from the in-process PerformanceTracker
        singleton.
        """
        snapshot = perf_tracker.get_metrics()
        return {
            "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
            **snapshot,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=app.state.settings.port)
