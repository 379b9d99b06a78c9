"""Public health check."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from flowelle.config import get_settings
from flowelle.menstrual.config_loader import get_cycle_config
from flowelle.services.database import fetchval

router = APIRouter(tags=["system"])
logger = logging.getLogger("flowelle.health")


async def _database_reachable() -> bool:
    try:
        return await fetchval("SELECT 1") == 1
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        return False


@router.get("/health")
async def health_check() -> dict:
    """200 whenever the process is up; ``status`` degrades if the database
    cannot be reached."""
    settings = get_settings()
    db_ok = await _database_reachable()
    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "unreachable",
        "version": settings.app_version,
        "environment": settings.environment,
        "cycle_config_version": get_cycle_config().version,
        "checked_at": datetime.now(timezone.utc).isoformat(),
    }
