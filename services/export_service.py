# ============================================================================
# EXPORT SERVICE
# ============================================================================
# STATUS: Service - export-status pipeline
# PURPOSE: Group rollup rows by export key and bulk-write them to Workers KV
# CREATED: 18 OCT 2026
# ============================================================================
"""
Export Service

Single-task, strictly sequential pipeline:

    ExportRepository.stream_rollup()   rows ordered by source_key
        -> BatchAggregator             streaming group-by, flush policy
        -> BulkSink                    KV bulk write, then DB export stamp

The group-by keeps only the group being built plus the pending batch in
memory. Its correctness depends on the scan delivering every row of a key
contiguously; a key that reappears after it was closed within the same
batch aborts the run with OrderingViolation.

Nothing is retried. A failure after some flushes leaves those rows
stamped; everything not yet stamped is picked up again by the next
run's rollup refresh.
"""

import asyncio
from contextlib import aclosing
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from core.config import CargoConfig
from core.logging import get_logger, log_context
from core.models import DealEntry, ExportGroup, ExportMetadata, ExportRow
from infrastructure.kv_store import KVPair, WorkersKVClient
from repositories.export_repo import ExportRepository
from worker.pool import RunCancelled
from worker.progress import ExportStats, ProgressReporter

logger = get_logger(__name__)


class OrderingViolation(Exception):
    """The scan delivered a key again after its group had been closed."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"export key {key!r} reappeared after its group was closed")


class PendingBatch:
    """Groups awaiting the next flush plus their accumulated encoded size."""

    def __init__(self):
        self.groups: Dict[str, ExportGroup] = {}
        self.encoded_bytes = 0

    def __len__(self) -> int:
        return len(self.groups)

    def __contains__(self, key: str) -> bool:
        return key in self.groups

    def add(self, group: ExportGroup) -> None:
        self.groups[group.key] = group

    def record_encoded(self, group: ExportGroup) -> None:
        self.encoded_bytes += group.encoded_size


class BulkSink:
    """Writes a batch of groups to KV, then stamps their DAG sources as exported."""

    def __init__(
        self,
        kv: WorkersKVClient,
        repo: ExportRepository,
        namespace_id: str,
        project_id: int,
        run_started_at: datetime,
        stats: ExportStats,
        progress: Optional[ProgressReporter] = None,
    ):
        self.kv = kv
        self.repo = repo
        self.namespace_id = namespace_id
        self.project_id = project_id
        self.run_started_at = run_started_at
        self.stats = stats
        self.progress = progress

    async def flush(self, groups: Sequence[ExportGroup]) -> None:
        if not groups:
            return

        pairs = [
            KVPair(key=g.key, value=g.encode(), metadata=g.metadata.model_dump())
            for g in groups
        ]
        await self.kv.bulk_write(self.namespace_id, pairs)

        # only after the KV write: a failed write leaves rows for the next run
        cids = list(dict.fromkeys(c for g in groups for c in g.cids))
        marked = await self.repo.mark_exported(cids, self.run_started_at, self.project_id)

        self.stats.updated += len(cids)
        self.stats.batches += 1
        logger.info(
            f"Exported batch {self.stats.batches}: {len(pairs)} keys, "
            f"{len(cids)} dags, {marked} sources marked"
        )
        if self.progress is not None:
            self.progress.report(self.stats.updated)


class BatchAggregator:
    """
    Streaming group-by over rows ordered by export key.

    Two states: idle (no current group) and in-group. A key change closes
    the current group (encoding it and adding its size to the batch) and,
    before the next group opens, flushes the batch when it already holds
    `max_batch_keys` groups or `max_batch_bytes` encoded bytes.
    """

    def __init__(
        self,
        sink: BulkSink,
        network: str,
        max_batch_keys: int,
        max_batch_bytes: int,
    ):
        self.sink = sink
        self.network = network
        self.max_batch_keys = max_batch_keys
        self.max_batch_bytes = max_batch_bytes
        self._batch = PendingBatch()
        self._current: Optional[ExportGroup] = None

    @property
    def pending(self) -> PendingBatch:
        return self._batch

    async def add(self, row: ExportRow) -> None:
        if self._current is None or row.source_key != self._current.key:
            await self._open_group(row)

        group = self._current
        group.cids[row.cid_v1] = None

        # neither a deal nor queued (failed pin or similar): no entry, but the
        # group stays open so the key is still written and its CIDs get stamped
        if not row.has_deal and row.queued == 0:
            return

        group.entries.append(DealEntry.from_row(row, self.network))

    async def finish(self) -> None:
        """Close the last group and flush whatever is pending."""
        self._close_current()
        await self._flush()

    async def _open_group(self, row: ExportRow) -> None:
        if row.source_key in self._batch:
            raise OrderingViolation(row.source_key)

        self._close_current()

        if (
            len(self._batch) >= self.max_batch_keys
            or self._batch.encoded_bytes >= self.max_batch_bytes
        ):
            await self._flush()

        self._current = ExportGroup(
            key=row.source_key,
            metadata=ExportMetadata.from_row(row),
        )
        self._batch.add(self._current)

    def _close_current(self) -> None:
        if self._current is not None:
            self._batch.record_encoded(self._current)
            self._current = None

    async def _flush(self) -> None:
        if not self._batch.groups:
            return
        groups: List[ExportGroup] = list(self._batch.groups.values())
        self._batch = PendingBatch()
        await self.sink.flush(groups)


class ExportService:
    """
    Runs one export-status pass.

    Usage:
        service = ExportService(ExportRepository(pool), kv, config)
        stats = await service.run(stop_event)
    """

    def __init__(
        self,
        repo: ExportRepository,
        kv: WorkersKVClient,
        config: CargoConfig,
    ):
        if not config.kv.deals_namespace_id:
            raise ValueError("CF_KVNAMESPACE_DEALS is not set")
        self.repo = repo
        self.kv = kv
        self.config = config

    async def run(self, cancel_event: Optional[asyncio.Event] = None) -> ExportStats:
        cancel_event = cancel_event or asyncio.Event()
        started_at = datetime.now(timezone.utc)
        stats = ExportStats()

        with log_context(operation="export-status"):
            try:
                await self.repo.refresh_rollup()
                stats.pending = await self.repo.count_pending()
                if stats.pending == 0:
                    logger.info("No entries pending export")
                    return stats

                logger.info(f"updating status of {stats.pending} entries")

                progress = ProgressReporter(total=stats.pending, enabled=self.config.show_progress)
                sink = BulkSink(
                    kv=self.kv,
                    repo=self.repo,
                    namespace_id=self.config.kv.deals_namespace_id,
                    project_id=self.config.export.project_id,
                    run_started_at=started_at,
                    stats=stats,
                    progress=progress,
                )
                aggregator = BatchAggregator(
                    sink=sink,
                    network=self.config.export.deal_network,
                    max_batch_keys=self.config.export.max_batch_keys,
                    max_batch_bytes=self.config.export.max_batch_bytes,
                )

                rows = self.repo.stream_rollup(self.config.export.statement_timeout_ms)
                async with aclosing(rows) as scan:
                    async for row in scan:
                        if cancel_event.is_set():
                            raise RunCancelled("export cancelled during rollup scan")
                        await aggregator.add(row)

                await aggregator.finish()
                progress.finish()
            finally:
                logger.info("summary", extra=stats.summary())

        return stats


__all__ = [
    "OrderingViolation",
    "PendingBatch",
    "BulkSink",
    "BatchAggregator",
    "ExportService",
]
