# ============================================================================
# PIN SERVICE TESTS
# ============================================================================
# STATUS: Tests - pin-dags run
# PURPOSE: Verify working-set selection and pool wiring
# CREATED: 18 OCT 2026
# ============================================================================
"""
PinService Tests

Run with:
    pytest tests/test_pin_service.py -v
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from core.config import CargoConfig, IpfsConfig
from core.models import DagStat, PinJob, parse_cid
from services.pin_service import PinService


ROOTS = [
    "QmUNLLsPACCz1vLxQVkXqqLX5R1X345qqfHbsf67hvA3Nn",
    "QmT78zSuBmuS4z925WZfrqQ1qHaJ56DQaTfyMUF7F8ff5o",
]


def _build(jobs):
    repo = MagicMock()
    repo.list_unsized = AsyncMock(return_value=jobs)
    repo.update_size = AsyncMock()
    ipfs = MagicMock()
    ipfs.pin_add = AsyncMock()
    ipfs.dag_stat = AsyncMock(return_value=DagStat(size=7, num_blocks=1))
    config = CargoConfig(ipfs=IpfsConfig(max_workers=4), show_progress=False)
    return PinService(repo, ipfs, config), repo, ipfs


class TestPinService:
    """Working set flows through the analyzer pool."""

    def test_empty_working_set(self):
        service, repo, ipfs = _build([])

        stats = asyncio.run(service.run(skip_dags_aged=3))

        repo.list_unsized.assert_awaited_once_with(3)
        ipfs.pin_add.assert_not_awaited()
        assert stats.pinned == 0

    def test_every_job_pinned_and_sized(self):
        jobs = [PinJob(root=parse_cid(c)) for c in ROOTS]
        service, repo, ipfs = _build(jobs)

        stats = asyncio.run(service.run())

        repo.list_unsized.assert_awaited_once_with(5)
        assert ipfs.pin_add.await_count == 2
        assert repo.update_size.await_count == 2
        assert stats.pinned == 2
        assert stats.bytes == 14
        assert stats.failed == 0

    def test_stat_called_with_extended_timeout(self):
        jobs = [PinJob(root=parse_cid(ROOTS[0]))]
        service, _, ipfs = _build(jobs)

        asyncio.run(service.run())

        assert ipfs.dag_stat.await_args.kwargs["timeout"] == 240 * 15

    def test_failed_job_does_not_block_dispatched_jobs(self):
        jobs = [PinJob(root=parse_cid(c)) for c in ROOTS]
        service, repo, ipfs = _build(jobs)

        async def stat(cid, timeout=None):
            if cid == ROOTS[0]:
                raise RuntimeError("store unreachable")
            return DagStat(size=7, num_blocks=1)

        ipfs.dag_stat = AsyncMock(side_effect=stat)

        with pytest.raises(RuntimeError):
            asyncio.run(service.run())

        stats = service.last_stats
        assert stats.failed >= 1
        assert stats.pinned >= 1
        repo.update_size.assert_awaited_once_with(jobs[1].cid_v1, 7)
