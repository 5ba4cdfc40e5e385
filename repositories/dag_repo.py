# ============================================================================
# DAG REPOSITORY
# ============================================================================
# STATUS: Core - cargo.dags / cargo.refs access for pin-dags
# PURPOSE: Select the pin working set, persist sizes and reference graphs
# CREATED: 18 OCT 2026
# ============================================================================
"""
DAG Repository

Reads DAGs that still need measuring and writes back their size and
reachable-block refs. A size and its refs are only ever written
together inside one transaction (see DagRepository.transaction).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Tuple

from psycopg import AsyncConnection, sql
from psycopg_pool import AsyncConnectionPool

from core.models import PinJob, parse_cid
from .database import TABLE_DAGS, TABLE_DAG_SOURCES, TABLE_REFS

logger = logging.getLogger(__name__)


_UPDATE_SIZE = sql.SQL("UPDATE {} SET size_actual = %s WHERE cid_v1 = %s").format(TABLE_DAGS)


class DagWriter:
    """Writes bound to one open transaction."""

    def __init__(self, conn: AsyncConnection):
        self.conn = conn

    async def copy_refs(self, refs: Iterable[Tuple[str, str]]) -> int:
        """
        Bulk-load (cid_v1, ref_v1) edges via COPY.

        Returns:
            Number of rows written
        """
        count = 0
        async with self.conn.cursor() as cur:
            async with cur.copy(
                sql.SQL("COPY {} (cid_v1, ref_v1) FROM STDIN").format(TABLE_REFS)
            ) as copy:
                for row in refs:
                    await copy.write_row(row)
                    count += 1
        return count

    async def update_size(self, cid_v1: str, size: int) -> None:
        await self.conn.execute(_UPDATE_SIZE, (size, cid_v1))


class DagRepository:
    """Repository for cargo.dags and cargo.refs."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def list_unsized(self, max_age_days: int) -> List[PinJob]:
        """
        Get DAGs without a measured size, newest arrivals first.

        Only DAGs updated within the last `max_age_days` days and still
        referenced by at least one non-removed source qualify. A root
        that fails to parse as a CID aborts the whole listing.

        Args:
            max_age_days: Ignore DAGs last updated longer ago than this

        Returns:
            De-duplicated list of PinJob
        """
        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL("""
                SELECT d.cid_v1 FROM {dags} d
                WHERE
                    d.size_actual IS NULL
                        AND
                    d.entry_last_updated > ( NOW() - make_interval(days => %s) )
                        AND
                    EXISTS (
                        SELECT 42 FROM {dag_sources} ds
                        WHERE ds.cid_v1 = d.cid_v1 AND ds.entry_removed IS NULL
                    )
                ORDER BY d.entry_created DESC
                """).format(dags=TABLE_DAGS, dag_sources=TABLE_DAG_SOURCES),
                (max_age_days,),
            )
            rows = await result.fetchall()

        jobs = {}
        for (cid_str,) in rows:
            job = PinJob(root=parse_cid(cid_str))
            jobs.setdefault(job.cid_v1, job)

        logger.debug(f"Selected {len(jobs)} unsized DAGs (max age {max_age_days} days)")
        return list(jobs.values())

    async def update_size(self, cid_v1: str, size: int) -> None:
        """Record a DAG's size outside of any explicit transaction."""
        async with self.pool.connection() as conn:
            await conn.execute(_UPDATE_SIZE, (size, cid_v1))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[DagWriter]:
        """
        Open a transaction on a dedicated pooled connection.

        Commits when the block exits normally, rolls back when it raises.

        Usage:
            async with repo.transaction() as tx:
                await tx.copy_refs(refs)
                await tx.update_size(cid_v1, size)
        """
        async with self.pool.connection() as conn:
            async with conn.transaction():
                yield DagWriter(conn)


__all__ = ["DagRepository", "DagWriter"]
