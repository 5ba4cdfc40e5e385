# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# STATUS: Core - Database access layer
# PURPOSE: Export repository classes and pool helpers
# CREATED: 18 OCT 2026
# ============================================================================
"""
Repositories Module

Database access for both pipelines. Every repository takes the run's
AsyncConnectionPool in its constructor.
"""

from .database import DatabasePool, open_pool
from .dag_repo import DagRepository, DagWriter
from .export_repo import ExportRepository

__all__ = [
    "DatabasePool",
    "open_pool",
    "DagRepository",
    "DagWriter",
    "ExportRepository",
]
