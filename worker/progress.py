# ============================================================================
# RUN STATS & PROGRESS
# ============================================================================
# STATUS: Core - Counters and progress display for both pipelines
# PURPOSE: Track run totals and print a best-effort percentage indicator
# CREATED: 18 OCT 2026
# ============================================================================
"""
Run Stats & Progress

Counters are plain integers: all pipeline work runs on one event loop
and every increment happens between awaits, so no locking is needed.

The progress indicator writes `NN%\\r` to stderr. It is purely
observational: sampling failures never reach the pipelines.

Usage:
    stats = PinStats()
    progress = ProgressReporter(total=len(jobs), enabled=config.show_progress)

    async with progress.watch(lambda: stats.pinned):
        await pool.run(jobs)
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, TextIO

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_INTERVAL = 0.25  # seconds


@dataclass
class PinStats:
    """Totals of one pin-dags run."""
    pinned: int = 0
    failed: int = 0
    refs: int = 0
    bytes: int = 0

    def summary(self) -> Dict[str, Any]:
        return {
            "pinned": self.pinned,
            "failed": self.failed,
            "referencedBlocks": self.refs,
            "bytes": self.bytes,
        }


@dataclass
class ExportStats:
    """Totals of one export-status run."""
    pending: int = 0
    updated: int = 0
    batches: int = 0

    def summary(self) -> Dict[str, Any]:
        return asdict(self)


class ProgressReporter:
    """
    Percentage indicator for a run with a known total.

    Only prints when the integer percentage changes.
    """

    def __init__(
        self,
        total: int,
        enabled: bool = True,
        stream: Optional[TextIO] = None,
        interval: float = DEFAULT_SAMPLE_INTERVAL,
    ):
        self.total = total
        self.enabled = enabled
        self.stream = stream if stream is not None else sys.stderr
        self.interval = interval
        self._last_pct: Optional[int] = None

    def percent(self, current: int) -> int:
        if self.total <= 0:
            return 100
        return min(100, 100 * current // self.total)

    def report(self, current: int) -> None:
        """Print the percentage for `current` if it changed."""
        if not self.enabled:
            return
        pct = self.percent(current)
        if pct != self._last_pct:
            self._last_pct = pct
            try:
                self.stream.write(f"{pct}%\r")
                self.stream.flush()
            except (OSError, ValueError) as e:
                logger.debug(f"Progress output failed: {e}")

    def finish(self) -> None:
        if not self.enabled:
            return
        try:
            self.stream.write("100%\n")
            self.stream.flush()
        except (OSError, ValueError) as e:
            logger.debug(f"Progress output failed: {e}")

    async def _sample(self, read: Callable[[], int]) -> None:
        while True:
            self.report(read())
            await asyncio.sleep(self.interval)

    @asynccontextmanager
    async def watch(self, read: Callable[[], int]):
        """
        Sample `read()` on a fixed interval for the duration of the block.

        Prints 100% when the block completes normally.
        """
        if not self.enabled:
            yield self
            return

        task = asyncio.create_task(self._sample(read))
        completed = False
        try:
            yield self
            completed = True
        finally:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            if completed:
                self.finish()


__all__ = [
    "PinStats",
    "ExportStats",
    "ProgressReporter",
]
