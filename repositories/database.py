# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3 async
# CREATED: 18 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
The pool is opened once per run and handed explicitly to every
repository; nothing here keeps module-level state.

Usage:
    from repositories.database import DatabasePool

    async with DatabasePool(config.database) as pool:
        async with pool.connection() as conn:
            await conn.execute("SELECT 1")
"""

import logging
from typing import Optional

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from core.config import DatabaseConfig

logger = logging.getLogger(__name__)


def mask_conninfo(conninfo: str) -> str:
    """Strip credentials from a connection string for logging."""
    if "@" in conninfo:
        # URL format
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        # Key-value format
        head, _, tail = conninfo.partition("password=")
        rest = tail.split(" ", 1)
        return head + "password=***" + (" " + rest[1] if len(rest) > 1 else "")
    return conninfo


async def open_pool(config: DatabaseConfig) -> AsyncConnectionPool:
    """
    Open a connection pool.

    Args:
        config: Database settings

    Returns:
        Opened AsyncConnectionPool
    """
    logger.info(f"Initializing connection pool: {mask_conninfo(config.connection_string)}")

    pool = AsyncConnectionPool(
        conninfo=config.connection_string,
        min_size=config.min_pool_size,
        max_size=config.max_pool_size,
        timeout=config.acquire_timeout,
        open=False,  # opened explicitly below
    )
    await pool.open(wait=True)
    logger.info(
        f"Connection pool opened (min={config.min_pool_size}, max={config.max_pool_size})"
    )
    return pool


class DatabasePool:
    """
    Context manager for pool lifecycle.

    Usage:
        async with DatabasePool(config) as pool:
            async with pool.connection() as conn:
                ...
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[AsyncConnectionPool] = None

    async def __aenter__(self) -> AsyncConnectionPool:
        self._pool = await open_pool(self.config)
        return self._pool

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Connection pool closed")


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = "cargo"

# Table identifiers, use with psycopg sql.SQL().format() for injection-safe queries
TABLE_DAGS = sql.Identifier(SCHEMA, "dags")
TABLE_REFS = sql.Identifier(SCHEMA, "refs")
TABLE_DAG_SOURCES = sql.Identifier(SCHEMA, "dag_sources")
TABLE_SOURCES = sql.Identifier(SCHEMA, "sources")
TABLE_AGGREGATES = sql.Identifier(SCHEMA, "aggregates")
TABLE_AGGREGATE_ENTRIES = sql.Identifier(SCHEMA, "aggregate_entries")
TABLE_DEALS = sql.Identifier(SCHEMA, "deals")
VIEW_EXPORT_ROLLUP = sql.Identifier(SCHEMA, "legacy_nft_storage_export_rollup")


__all__ = [
    "mask_conninfo",
    "open_pool",
    "DatabasePool",
    "SCHEMA",
    "TABLE_DAGS",
    "TABLE_REFS",
    "TABLE_DAG_SOURCES",
    "TABLE_SOURCES",
    "TABLE_AGGREGATES",
    "TABLE_AGGREGATE_ENTRIES",
    "TABLE_DEALS",
    "VIEW_EXPORT_ROLLUP",
]
