# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# STATUS: Infrastructure - External services and run locking
# PURPOSE: IPFS HTTP API, Workers KV and advisory-lock clients
# CREATED: 18 OCT 2026
# ============================================================================
"""
Infrastructure module for the cron pipelines.

Provides:
- IpfsClient: pin/add, dag/stat and streamed refs
- WorkersKVClient: bulk writes to the deals KV namespace
- RunLock: one instance per cron command

Usage:
    from infrastructure import IpfsClient, WorkersKVClient, RunLock

    async with IpfsClient(config.ipfs) as ipfs:
        await ipfs.pin_add(cid)
"""

from infrastructure.ipfs import (
    IpfsClient,
    IpfsApiError,
    RefStreamError,
)
from infrastructure.kv_store import (
    WorkersKVClient,
    KVPair,
    KVBulkResponse,
    KVApiError,
    ProtocolViolation,
)
from infrastructure.locking import (
    RunLock,
    LockNotAcquired,
)

__all__ = [
    # IPFS
    'IpfsClient',
    'IpfsApiError',
    'RefStreamError',
    # Workers KV
    'WorkersKVClient',
    'KVPair',
    'KVBulkResponse',
    'KVApiError',
    'ProtocolViolation',
    # Locking
    'RunLock',
    'LockNotAcquired',
]
