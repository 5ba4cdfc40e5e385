# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Core enums
# PURPOSE: Define the deal status enumeration shared by store and KV export
# CREATED: 18 OCT 2026
# EXPORTS: DealStatus
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the cron pipelines.

Deal status values cross two boundaries:
- SQL (cargo.deals.status)
- KV (the exported DealEntry list and its counter metadata)
"""

from enum import Enum


class DealStatus(str, Enum):
    """
    Deal lifecycle states as exported.

    QUEUED is synthesized for DAGs without any deal yet; every other
    value is read verbatim from cargo.deals.
    """
    QUEUED = "queued"
    PROPOSING = "proposing"
    ACCEPTED = "accepted"
    FAILED = "failed"
    PUBLISHED = "published"
    ACTIVE = "active"
    TERMINATED = "terminated"


__all__ = ["DealStatus"]
