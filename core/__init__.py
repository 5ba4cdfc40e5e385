# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export core contracts and models
# CREATED: 18 OCT 2026
# ============================================================================

from core.contracts import DealStatus
from core.models import (
    PinJob,
    DagStat,
    RefEntry,
    ExportRow,
    DealEntry,
    ExportMetadata,
    ExportGroup,
)

__all__ = [
    # Enums
    "DealStatus",
    # Models
    "PinJob",
    "DagStat",
    "RefEntry",
    "ExportRow",
    "DealEntry",
    "ExportMetadata",
    "ExportGroup",
]
