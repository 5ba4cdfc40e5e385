# ============================================================================
# MODELS MODULE
# ============================================================================
# STATUS: Model exports
# PURPOSE: Central export point for pipeline models
# CREATED: 18 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

Pin pipeline jobs and IPFS payloads, plus the export rows, deal
entries and KV groups of the status export.
"""

from core.models.dag import PinJob, DagStat, RefEntry, parse_cid, cidv1
from core.models.deal import (
    ExportRow,
    DealEntry,
    ExportMetadata,
    ExportGroup,
    encode_entries,
)

__all__ = [
    # Pin pipeline
    "PinJob",
    "DagStat",
    "RefEntry",
    "parse_cid",
    "cidv1",
    # Export pipeline
    "ExportRow",
    "DealEntry",
    "ExportMetadata",
    "ExportGroup",
    "encode_entries",
]
