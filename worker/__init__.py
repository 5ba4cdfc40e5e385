# ============================================================================
# WORKER MODULE
# ============================================================================
# STATUS: Core - Pin pipeline execution components
# PURPOSE: Worker pool, per-DAG analyzer, run stats and progress
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Module

Components of the pin-dags pipeline:
- pool: Feeder + bounded worker pool with first-error semantics
- analyzer: Per-DAG pin, stat, refs and persist
- progress: Run counters and the progress indicator (also used by export)
"""

from worker.pool import WorkerPool, FirstError, RunCancelled
from worker.progress import PinStats, ExportStats, ProgressReporter
from worker.analyzer import ContentAnalyzer

__all__ = [
    "WorkerPool",
    "FirstError",
    "RunCancelled",
    "PinStats",
    "ExportStats",
    "ProgressReporter",
    "ContentAnalyzer",
]
