# ============================================================================
# PIN SERVICE
# ============================================================================
# STATUS: Service - pin-dags pipeline
# PURPOSE: Select unsized DAGs and run them through the worker pool
# CREATED: 18 OCT 2026
# ============================================================================
"""
Pin Service

Loads the working set (DAGs with no size, recently updated, still
referenced), then pins and analyzes them with bounded concurrency.
Jobs are dispatched newest-first.
"""

import asyncio
from typing import Optional

from core.config import CargoConfig
from core.logging import get_logger, log_context
from infrastructure.ipfs import IpfsClient
from repositories.dag_repo import DagRepository
from worker.analyzer import ContentAnalyzer
from worker.pool import WorkerPool
from worker.progress import PinStats, ProgressReporter

logger = get_logger(__name__)

DEFAULT_SKIP_DAGS_AGED = 5  # days


class PinService:
    """Runs one pin-dags pass."""

    def __init__(self, repo: DagRepository, ipfs: IpfsClient, config: CargoConfig):
        self.repo = repo
        self.ipfs = ipfs
        self.config = config
        # totals of the most recent run, kept when it raises
        self.last_stats: Optional[PinStats] = None

    async def run(
        self,
        skip_dags_aged: int = DEFAULT_SKIP_DAGS_AGED,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PinStats:
        """
        Pin and analyze every eligible DAG.

        Args:
            skip_dags_aged: Ignore DAGs last updated more than this many days ago
            cancel_event: Stops dispatching when set

        Returns:
            Run totals

        Raises:
            The first job error that was not downgraded to a counted failure
        """
        cancel_event = cancel_event or asyncio.Event()
        stats = self.last_stats = PinStats()

        with log_context(operation="pin-dags"):
            jobs = await self.repo.list_unsized(skip_dags_aged)
            if not jobs:
                logger.info("No DAGs awaiting analysis")
                return stats

            analyzer = ContentAnalyzer(
                ipfs=self.ipfs,
                repo=self.repo,
                stats=stats,
                extended_timeout=self.config.ipfs.extended_timeout_seconds,
                cancel_event=cancel_event,
            )
            pool = WorkerPool(
                analyzer.process,
                max_workers=self.config.ipfs.max_workers,
                cancel_event=cancel_event,
            )
            progress = ProgressReporter(total=len(jobs), enabled=self.config.show_progress)

            logger.info(
                f"about to pin and analyze {len(jobs)} dags "
                f"with {pool.worker_count(len(jobs))} workers"
            )
            try:
                async with progress.watch(lambda: stats.pinned):
                    await pool.run(jobs)
            finally:
                logger.info("summary", extra=stats.summary())

        return stats


__all__ = ["PinService", "DEFAULT_SKIP_DAGS_AGED"]
