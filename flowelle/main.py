"""Flowelle API application entry point.

Run locally:
    uvicorn flowelle.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flowelle.config import Settings, get_settings
from flowelle.errors import register_exception_handlers
from flowelle.middleware.rate_limit import AuthRateLimitMiddleware
from flowelle.middleware.security import SecurityHeadersMiddleware
from flowelle.models.base import ErrorDetail
from flowelle.routers import auth, cycle_symptoms, health, period_cycles, symptoms, users
from flowelle.services.database import apply_schema, close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("flowelle")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting Flowelle API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    await init_pool(settings)
    if settings.apply_schema_on_startup:
        await apply_schema()
    yield
    await close_pool()
    logger.info("Flowelle API shut down")


# ---------- App factory ----------

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description=(
            "Personal menstrual cycle tracking: cycles, symptoms, "
            "statistics and fertile window estimates."
        ),
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        responses={
            status: {"model": ErrorDetail} for status in (400, 401, 403, 404, 409)
        },
    )

    register_exception_handlers(app)

    # ---------- Middleware (last added runs outermost) ----------

    app.add_middleware(SecurityHeadersMiddleware)

    # Brute-force protection on login/register
    app.add_middleware(AuthRateLimitMiddleware, settings=settings)

    # CORS outermost so preflight requests are answered before anything else
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Authorization", "X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
    )

    # ---------- Health check (outside the /api prefix) ----------
    app.include_router(health.router)

    # ---------- API routes ----------
    api_prefix = "/api"

    app.include_router(auth.router, prefix=api_prefix)
    app.include_router(users.router, prefix=api_prefix)
    app.include_router(period_cycles.router, prefix=api_prefix)
    app.include_router(symptoms.router, prefix=api_prefix)
    app.include_router(cycle_symptoms.router, prefix=api_prefix)

    return app


app = create_app()
