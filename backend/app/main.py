# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_V1_PREFIX, API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import (
    admin_diagnostics as admin_diagnostics_v1,
    admin_schedule as admin_schedule_v1,
    admin_sessions as admin_sessions_v1,
    availability as availability_v1,
    health as health_v1,
    internal as internal_v1,
    prometheus as prometheus_v1,
    reservations as reservations_v1,
)
from .schemas.main_responses import RootResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(
        f"Environment: {settings.environment}; schedule timezone {settings.schedule_timezone}; "
        f"hold TTL {settings.hold_ttl_minutes}min; lead time {settings.lead_time_minutes}min"
    )
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    prometheus_metrics.prewarm()

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
    generate_unique_id_function=_unique_operation_id,
)

# Register unified error envelope handlers
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Admin-Token"],
)

# API v1
api_v1 = APIRouter(prefix=API_V1_PREFIX)
api_v1.include_router(availability_v1.router, prefix="/availability")
api_v1.include_router(reservations_v1.router, prefix="/reservations")
api_v1.include_router(admin_schedule_v1.router, prefix="/admin/schedule")
api_v1.include_router(admin_sessions_v1.router, prefix="/admin/sessions")
api_v1.include_router(admin_diagnostics_v1.router, prefix="/admin/diagnostics")
api_v1.include_router(internal_v1.router, prefix="/internal")
api_v1.include_router(health_v1.router, prefix="/health")
api_v1.include_router(prometheus_v1.router)

app.include_router(api_v1)

# -----------------------------------------------------------------------------
# INFRASTRUCTURE ROUTES - fixed unversioned paths for load balancers and
# Prometheus scrapers.
# -----------------------------------------------------------------------------
app.include_router(health_v1.router, prefix="/health", include_in_schema=False)
app.include_router(prometheus_v1.router)


@app.get("/", response_model=RootResponse)
def read_root() -> RootResponse:
    """Root endpoint - API information"""
    return RootResponse(
        message=f"Welcome to the {BRAND_NAME} API!",
        version=API_VERSION,
        docs="/docs",
        environment=settings.environment,
    )


# Keep the original FastAPI app for tools/tests that need access to routes
fastapi_app = app

__all__ = ["app", "fastapi_app"]
