# ============================================================================
# SERVICES MODULE
# ============================================================================
# STATUS: Core - Business logic layer
# PURPOSE: The pin-dags and export-status pipelines
# CREATED: 18 OCT 2026
# ============================================================================
"""
Services Module

One service per cron command. Services coordinate repositories,
infrastructure clients and the worker pool.

Usage:
    from services import PinService, ExportService

    stats = await PinService(DagRepository(pool), ipfs, config).run(skip_dags_aged=5)
"""

from .pin_service import PinService, DEFAULT_SKIP_DAGS_AGED
from .export_service import (
    ExportService,
    BatchAggregator,
    BulkSink,
    PendingBatch,
    OrderingViolation,
)

__all__ = [
    "PinService",
    "DEFAULT_SKIP_DAGS_AGED",
    "ExportService",
    "BatchAggregator",
    "BulkSink",
    "PendingBatch",
    "OrderingViolation",
]
