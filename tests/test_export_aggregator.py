# ============================================================================
# EXPORT AGGREGATOR TESTS
# ============================================================================
# STATUS: Tests - Streaming group-by and flush policy
# PURPOSE: Verify BatchAggregator grouping, entry shaping and thresholds
# CREATED: 18 OCT 2026
# ============================================================================
"""
BatchAggregator Tests

Covers:
1. One KV entry per key, entries in scan order
2. Queued default for rows without a deal, skipped rows without either
3. Flush at the key-count and byte thresholds, before the next group opens
4. Keys reappearing within a batch abort the run

Run with:
    pytest tests/test_export_aggregator.py -v
"""

import asyncio
import json
import pytest
from datetime import datetime, timezone

from core.contracts import DealStatus
from core.models import ExportRow
from services.export_service import BatchAggregator, OrderingViolation


# ============================================================================
# HELPERS
# ============================================================================

class RecordingSink:
    """Captures every flushed batch as (key, entries, cids) tuples."""

    def __init__(self):
        self.batches = []

    async def flush(self, groups):
        self.batches.append([
            (g.key, json.loads(g.encode()), list(g.cids), g.metadata)
            for g in groups
        ])


def _row(key, cid, status=None, queued=1, **kwargs):
    return ExportRow(source_key=key, cid_v1=cid, queued=queued, status=status, **kwargs)


def _aggregate(rows, max_batch_keys=10000, max_batch_bytes=85 << 20):
    sink = RecordingSink()
    aggregator = BatchAggregator(
        sink=sink,
        network="mainnet",
        max_batch_keys=max_batch_keys,
        max_batch_bytes=max_batch_bytes,
    )

    async def scenario():
        for row in rows:
            await aggregator.add(row)
        await aggregator.finish()

    asyncio.run(scenario())
    return sink


# ============================================================================
# GROUPING
# ============================================================================

class TestGrouping:
    """Rows collapse into one value per export key."""

    def test_entry_counts_follow_group_sizes(self):
        rows = (
            [_row("a", "c-a")]
            + [_row("b", "c-b")]
            + [_row("c", f"c-{i}") for i in range(5000)]
        )

        sink = _aggregate(rows)

        assert len(sink.batches) == 1
        assert [(key, len(entries)) for key, entries, _, _ in sink.batches[0]] == [
            ("a", 1),
            ("b", 1),
            ("c", 5000),
        ]

    def test_no_rows_no_flush(self):
        sink = _aggregate([])
        assert sink.batches == []

    def test_cids_recorded_per_group(self):
        rows = [_row("k", "c1"), _row("k", "c2"), _row("k", "c1")]

        sink = _aggregate(rows)

        _, entries, cids, _ = sink.batches[0][0]
        assert cids == ["c1", "c2"]
        assert len(entries) == 3

    def test_metadata_taken_from_first_row(self):
        rows = [
            _row("k", "c1", queued=3, published=1, active=2, terminated=0),
            _row("k", "c2", queued=9, published=9, active=9, terminated=9),
        ]

        sink = _aggregate(rows)

        metadata = sink.batches[0][0][3]
        assert metadata.queued == 3
        assert metadata.published == 1
        assert metadata.active == 2
        assert metadata.proposing == 0


# ============================================================================
# ENTRY SHAPES
# ============================================================================

class TestEntries:
    """Entry fields for queued, skipped and dealt rows."""

    def test_queued_default_without_deal(self):
        changed = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        sink = _aggregate([_row("k", "c1", last_changed=changed)])

        entry = sink.batches[0][0][1][0]
        assert entry["status"] == "queued"
        assert entry["lastChangedUnix"] == int(changed.timestamp())
        assert "network" not in entry
        assert "miner" not in entry

    def test_row_without_deal_or_queue_is_skipped(self):
        sink = _aggregate([_row("k", "c1", queued=0)])

        key, entries, cids, _ = sink.batches[0][0]
        assert key == "k"
        assert entries == []
        assert cids == ["c1"]

    def test_deal_fields_and_network(self):
        start = datetime(2026, 2, 1, tzinfo=timezone.utc)
        end = datetime(2027, 2, 1, tzinfo=timezone.utc)
        row = _row(
            "k", "c1",
            status=DealStatus.ACTIVE,
            queued=0,
            aggregate_cid="bafyagg",
            piece_cid="baga6ea",
            provider="f01234",
            deal_id=777,
            datamodel_selector="Links/0/Hash",
            start_time=start,
            end_time=end,
        )

        sink = _aggregate([row])

        entry = sink.batches[0][0][1][0]
        assert entry["status"] == "active"
        assert entry["network"] == "mainnet"
        assert entry["miner"] == "f01234"
        assert entry["chainDealID"] == 777
        assert entry["batchRootCid"] == "bafyagg"
        assert entry["pieceCid"] == "baga6ea"
        assert entry["datamodelSelector"] == "Links/0/Hash"
        assert entry["dealActivationUnix"] == int(start.timestamp())
        assert entry["dealExpirationUnix"] == int(end.timestamp())


# ============================================================================
# FLUSH POLICY
# ============================================================================

class TestFlushPolicy:
    """Batches close at the key and byte thresholds."""

    def test_key_threshold_splits_batches(self):
        rows = [_row(f"key-{i:05d}", f"c{i}") for i in range(10001)]

        sink = _aggregate(rows)

        assert [len(batch) for batch in sink.batches] == [10000, 1]
        assert sink.batches[1][0][0] == "key-10000"

    def test_custom_key_threshold(self):
        rows = [_row(k, f"c-{k}") for k in "abcde"]

        sink = _aggregate(rows, max_batch_keys=2)

        assert [[g[0] for g in batch] for batch in sink.batches] == [
            ["a", "b"],
            ["c", "d"],
            ["e"],
        ]

    def test_byte_threshold_flushes_before_next_group(self):
        rows = [_row(k, f"c-{k}") for k in "abc"]

        sink = _aggregate(rows, max_batch_bytes=1)

        assert [[g[0] for g in batch] for batch in sink.batches] == [["a"], ["b"], ["c"]]

    def test_group_never_split_across_batches(self):
        rows = [_row("a", "c1"), _row("b", "c2")] + [_row("b", f"c{i}") for i in range(3, 50)]

        sink = _aggregate(rows, max_batch_keys=1)

        assert len(sink.batches) == 2
        assert len(sink.batches[1][0][1]) == 48


# ============================================================================
# ORDERING
# ============================================================================

class TestOrdering:
    """Non-contiguous keys within a batch are detected."""

    def test_reappearing_key_raises(self):
        rows = [_row("a", "c1"), _row("b", "c2"), _row("a", "c3")]

        with pytest.raises(OrderingViolation) as exc_info:
            _aggregate(rows)

        assert exc_info.value.key == "a"
