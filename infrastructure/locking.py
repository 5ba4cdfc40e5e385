# ============================================================================
# RUN EXCLUSIVITY LOCK
# ============================================================================
# STATUS: Infrastructure - Concurrency control
# PURPOSE: PostgreSQL advisory lock ensuring one instance per cron command
# CREATED: 18 OCT 2026
# ============================================================================
"""
Run Exclusivity Lock

Each cron command (pin-dags, export-status) may only run once at a time.
Neither pipeline does any mutual exclusion of its own, so the run
wrapper takes a session-level advisory lock keyed by the command name
before starting and holds it until exit.

Advisory locks are:
- Auto-released on disconnect (crash-safe)
- Non-blocking with pg_try_advisory_lock
- Keyed by a 64-bit integer, derived here from the run name

Usage:
    lock = RunLock(pool, "pin-dags")
    await lock.acquire()        # raises LockNotAcquired on contention
    try:
        ...
    finally:
        await lock.release()
"""

import hashlib
import logging
from typing import Optional

from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)


class LockNotAcquired(Exception):
    """Raised when another instance already holds the run lock."""

    def __init__(self, lock_type: str, key: str):
        self.lock_type = lock_type
        self.key = key
        super().__init__(f"Failed to acquire {lock_type} lock for {key}")


class RunLock:
    """
    Session-level advisory lock held on a dedicated pooled connection.

    The connection stays checked out for the lifetime of the lock; closing
    it (or the process dying) releases the lock.
    """

    KEY_PREFIX = "cargocron-"

    def __init__(self, pool: AsyncConnectionPool, run_name: str):
        self.pool = pool
        self.run_name = run_name
        self._conn: Optional[AsyncConnection] = None

    @staticmethod
    def _hash_to_lock_id(key: str) -> int:
        """
        Convert string key to int64 for PostgreSQL advisory lock.

        Uses the first 8 bytes of SHA256, interpreted as signed int64.
        """
        h = hashlib.sha256(key.encode()).digest()[:8]
        return int.from_bytes(h, byteorder="big", signed=True)

    @property
    def lock_id(self) -> int:
        return self._hash_to_lock_id(self.KEY_PREFIX + self.run_name)

    @property
    def held(self) -> bool:
        return self._conn is not None

    async def acquire(self) -> None:
        """
        Take the lock without waiting.

        Raises:
            LockNotAcquired: Another process holds it
        """
        if self._conn is not None:
            return

        conn = await self.pool.getconn()
        try:
            result = await conn.execute("SELECT pg_try_advisory_lock(%s)", (self.lock_id,))
            row = await result.fetchone()
            # session lock outlives the transaction, do not idle inside it
            await conn.commit()
            acquired = bool(row and row[0])
        except BaseException:
            await self.pool.putconn(conn)
            raise

        if not acquired:
            await self.pool.putconn(conn)
            raise LockNotAcquired("run", self.run_name)

        self._conn = conn
        logger.info(f"Acquired run lock for '{self.run_name}' (lock_id={self.lock_id})")

    async def release(self) -> None:
        """Release the lock and return its connection to the pool."""
        if self._conn is None:
            return

        conn, self._conn = self._conn, None
        try:
            await conn.execute("SELECT pg_advisory_unlock(%s)", (self.lock_id,))
            await conn.commit()
            logger.info(f"Released run lock for '{self.run_name}'")
        except Exception as e:
            logger.warning(f"Error releasing run lock for '{self.run_name}': {e}")
        finally:
            await self.pool.putconn(conn)


__all__ = ["RunLock", "LockNotAcquired"]
