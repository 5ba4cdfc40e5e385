# ============================================================================
# CONTENT ANALYZER
# ============================================================================
# STATUS: Core - Per-DAG pin job
# PURPOSE: Pin a DAG, measure it, record its reachable blocks
# CREATED: 18 OCT 2026
# ============================================================================
"""
Content Analyzer

Processes one PinJob:
1. pin/add the root. Failure here is only a warning: nothing has been
   written yet, so the job is counted as failed and the run moves on.
2. dag/stat with the extended timeout.
3. For multi-block DAGs, stream the recursive unique refs.
4. Persist: refs + size in one transaction, or size alone.

After a successful pin, network timeouts are downgraded the same way
as pin failures. Any other error is counted and propagates to the
worker pool, rolling back an open transaction.
"""

import asyncio
from contextlib import aclosing
from typing import List, Optional, Tuple

import httpx

from core.logging import get_logger, log_context
from core.models import PinJob, cidv1, parse_cid
from infrastructure.ipfs import IpfsApiError, IpfsClient
from repositories.dag_repo import DagRepository
from worker.pool import RunCancelled
from worker.progress import PinStats

logger = get_logger(__name__)


class ContentAnalyzer:
    """Pins, measures and persists one DAG at a time; safe to share across workers."""

    def __init__(
        self,
        ipfs: IpfsClient,
        repo: DagRepository,
        stats: PinStats,
        extended_timeout: float,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.ipfs = ipfs
        self.repo = repo
        self.stats = stats
        self.extended_timeout = extended_timeout
        self.cancel_event = cancel_event or asyncio.Event()

    async def process(self, job: PinJob) -> None:
        with log_context(cid=job.cid_v1):
            try:
                await self.ipfs.pin_add(job.cid)
            except (httpx.HTTPError, IpfsApiError) as e:
                logger.warning(f"failure to pin {job.cid}: {e}")
                self.stats.failed += 1
                return

            try:
                await self._analyze(job)
            except httpx.TimeoutException as e:
                self.stats.failed += 1
                logger.error(f"aborting analysis of {job.cid} due to timeout: {e!r}")
            except Exception:
                self.stats.failed += 1
                raise

    async def _analyze(self, job: PinJob) -> None:
        stat = await self.ipfs.dag_stat(job.cid, timeout=self.extended_timeout)

        refs: List[Tuple[str, str]] = []
        if stat.num_blocks > 1:
            async with aclosing(self.ipfs.refs(job.cid, timeout=self.extended_timeout)) as stream:
                async for ref in stream:
                    refs.append((job.cid_v1, cidv1(parse_cid(ref))))

        if refs:
            async with self.repo.transaction() as tx:
                await tx.copy_refs(refs)
                await tx.update_size(job.cid_v1, stat.size)
                self._check_cancelled()
            self.stats.refs += len(refs)
        else:
            self._check_cancelled()
            await self.repo.update_size(job.cid_v1, stat.size)

        self.stats.pinned += 1
        self.stats.bytes += stat.size
        logger.debug(f"Analyzed {job.cid}: {stat.size} bytes, {stat.num_blocks} blocks")

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise RunCancelled("run cancelled before commit")


__all__ = ["ContentAnalyzer"]
