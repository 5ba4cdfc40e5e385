# ============================================================================
# EXPORT REPOSITORY
# ============================================================================
# STATUS: Core - Rollup scan and export bookkeeping for export-status
# PURPOSE: Refresh/scan the export rollup, stamp exported DAG sources
# CREATED: 18 OCT 2026
# ============================================================================
"""
Export Repository

The rollup view holds every DAG source whose deal state changed since
its last export. A run refreshes it, streams it ordered by source_key,
and stamps entry_last_exported on rows once their KV write succeeded,
which drops them from the next refresh.
"""

import logging
from datetime import datetime
from typing import AsyncIterator, Sequence

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.models import ExportRow
from .database import (
    TABLE_AGGREGATES,
    TABLE_AGGREGATE_ENTRIES,
    TABLE_DAG_SOURCES,
    TABLE_DEALS,
    TABLE_SOURCES,
    VIEW_EXPORT_ROLLUP,
)

logger = logging.getLogger(__name__)

SCAN_CURSOR_NAME = "export_rollup_scan"
SCAN_FETCH_SIZE = 5000


class ExportRepository:
    """Repository for the export rollup and cargo.dag_sources export stamps."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def refresh_rollup(self) -> None:
        async with self.pool.connection() as conn:
            await conn.execute(
                sql.SQL("REFRESH MATERIALIZED VIEW {}").format(VIEW_EXPORT_ROLLUP)
            )
        logger.debug("Export rollup refreshed")

    async def count_pending(self) -> int:
        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL("SELECT COUNT(*) FROM {}").format(VIEW_EXPORT_ROLLUP)
            )
            row = await result.fetchone()
            return row[0] if row else 0

    async def stream_rollup(self, statement_timeout_ms: int) -> AsyncIterator[ExportRow]:
        """
        Stream rollup rows strictly ordered by source_key.

        Runs inside one read-only, repeatable-read transaction through a
        server-side cursor, so the full result is never held in memory.
        Callers must close the generator (contextlib.aclosing) so the
        cursor and transaction are released when they stop early.

        Args:
            statement_timeout_ms: Statement timeout for the scan, scans of
                the full rollup can take hours

        Yields:
            ExportRow per rollup x deal combination
        """
        async with self.pool.connection() as conn:
            async with conn.transaction():
                await conn.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ, READ ONLY")
                await conn.execute(
                    "SELECT set_config('statement_timeout', %s, true)",
                    (str(int(statement_timeout_ms)),),
                )

                async with conn.cursor(name=SCAN_CURSOR_NAME, row_factory=dict_row) as cur:
                    cur.itersize = SCAN_FETCH_SIZE
                    await cur.execute(
                        sql.SQL("""
                        SELECT
                                ru.source_key,
                                ru.cid_v1,
                                ru.queued,
                                ru.published,
                                ru.active,
                                ru.terminated,
                                de.status,
                                COALESCE( de.entry_last_updated, ru.entry_last_updated ) AS last_changed,
                                ae.aggregate_cid,
                                a.piece_cid,
                                de.provider,
                                de.deal_id,
                                ae.datamodel_selector,
                                de.start_time,
                                de.end_time
                            FROM {rollup} ru
                            LEFT JOIN {aggregate_entries} ae USING ( cid_v1 )
                            LEFT JOIN {aggregates} a USING ( aggregate_cid )
                            LEFT JOIN {deals} de USING ( aggregate_cid )
                        ORDER BY ru.source_key
                        """).format(
                            rollup=VIEW_EXPORT_ROLLUP,
                            aggregate_entries=TABLE_AGGREGATE_ENTRIES,
                            aggregates=TABLE_AGGREGATES,
                            deals=TABLE_DEALS,
                        )
                    )
                    async for row in cur:
                        yield ExportRow(**row)

    async def mark_exported(
        self,
        cids: Sequence[str],
        exported_at: datetime,
        project_id: int,
    ) -> int:
        """
        Stamp entry_last_exported on the project's sources of the given DAGs.

        Args:
            cids: cid_v1 values whose status was written to KV
            exported_at: Run start time
            project_id: Only sources of this project are stamped

        Returns:
            Number of dag_sources rows updated
        """
        if not cids:
            return 0

        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL("""
                UPDATE {dag_sources} ds
                    SET entry_last_exported = %s
                FROM {sources} s
                WHERE
                    s.project = %s
                        AND
                    ds.srcid = s.srcid
                        AND
                    ds.cid_v1 = ANY ( %s )
                """).format(dag_sources=TABLE_DAG_SOURCES, sources=TABLE_SOURCES),
                (exported_at, project_id, list(cids)),
            )
            return result.rowcount


__all__ = ["ExportRepository", "SCAN_CURSOR_NAME"]
