"""PostgreSQL access through an asyncpg connection pool.

Every request borrows one connection from the pool and runs all of its
statements inside a single transaction, so multi-row writes (a cycle plus
its symptoms, an account plus its cycles) commit or roll back together.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

import asyncpg

from flowelle.config import Settings, get_settings
from flowelle.menstrual.config_loader import CycleConfig, get_cycle_config

logger = logging.getLogger("flowelle.db")

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "db" / "schema.sql"

# Module-level connection pool, initialized once at app startup
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size,
        s.db_pool_max_size,
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized; call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a pooled connection with an open transaction.

    Usage::

        async with get_connection() as conn:
            rows = await conn.fetch("SELECT * FROM period_cycles WHERE user_id = $1", uid)

    The transaction commits when the block exits normally and rolls back
    if it raises.
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            yield conn


async def fetchval(query: str, *args: Any) -> Any:
    """Fetch a single value in its own transaction."""
    async with get_connection() as conn:
        return await conn.fetchval(query, *args)


async def apply_schema(config: CycleConfig | None = None) -> None:
    """Create missing tables and seed the symptom catalog.

    Safe to run on every startup: DDL uses ``IF NOT EXISTS`` and catalog
    rows are inserted with ``ON CONFLICT DO NOTHING``.
    """
    cfg = config or get_cycle_config()
    ddl = _SCHEMA_PATH.read_text(encoding="utf-8")
    async with get_connection() as conn:
        await conn.execute(ddl)
        await conn.executemany(
            "INSERT INTO symptoms (name, icon) VALUES ($1, $2) ON CONFLICT (name) DO NOTHING",
            [(s.name, s.icon) for s in cfg.symptom_catalog],
        )
    logger.info(
        "Schema applied from %s (%d catalog symptoms)",
        _SCHEMA_PATH.name,
        len(cfg.symptom_catalog),
    )
