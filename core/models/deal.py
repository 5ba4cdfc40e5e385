# ============================================================================
# DEAL EXPORT MODELS
# ============================================================================
# STATUS: Core model - Rollup rows, exported deal entries and KV groups
# PURPOSE: Shape of what export-status reads from the store and writes to KV
# CREATED: 18 OCT 2026
# EXPORTS: ExportRow, DealEntry, ExportMetadata, ExportGroup
# DEPENDENCIES: pydantic
# ============================================================================
"""
Deal Export Models

ExportRow is one row of the rollup scan (one DAG x deal combination).
Rows sharing a source_key collapse into one ExportGroup, which becomes
one KV entry: the JSON-encoded DealEntry list as the value and the
ExportMetadata counters as metadata.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from core.contracts import DealStatus


def _unix(ts: Optional[datetime]) -> Optional[int]:
    return int(ts.timestamp()) if ts is not None else None


class ExportRow(BaseModel):
    """
    One row of the rollup joined with aggregate and deal metadata.

    Deal-side columns are all NULL when the DAG has no deal yet.
    """
    source_key: str
    cid_v1: str
    queued: int = 0
    published: int = 0
    active: int = 0
    terminated: int = 0
    status: Optional[DealStatus] = None
    last_changed: Optional[datetime] = None
    aggregate_cid: Optional[str] = None
    piece_cid: Optional[str] = None
    provider: Optional[str] = None
    deal_id: Optional[int] = None
    datamodel_selector: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def has_deal(self) -> bool:
        return self.status is not None


class DealEntry(BaseModel):
    """Status of one deal (or of the queue) as seen by KV readers."""
    model_config = ConfigDict(populate_by_name=True)

    status: DealStatus
    last_changed: Optional[datetime] = Field(default=None, alias="lastChanged")
    last_changed_unix: Optional[int] = Field(default=None, alias="lastChangedUnix")
    aggregate_root_cid: Optional[str] = Field(default=None, alias="batchRootCid")
    piece_cid: Optional[str] = Field(default=None, alias="pieceCid")
    network: Optional[str] = None
    provider: Optional[str] = Field(default=None, alias="miner")
    chain_deal_id: Optional[int] = Field(default=None, alias="chainDealID")
    datamodel_selector: Optional[str] = Field(default=None, alias="datamodelSelector")
    deal_activation: Optional[datetime] = Field(default=None, alias="dealActivation")
    deal_activation_unix: Optional[int] = Field(default=None, alias="dealActivationUnix")
    deal_expiration: Optional[datetime] = Field(default=None, alias="dealExpiration")
    deal_expiration_unix: Optional[int] = Field(default=None, alias="dealExpirationUnix")

    @classmethod
    def from_row(cls, row: ExportRow, network: str) -> "DealEntry":
        """
        Build the entry for a row.

        Without a deal only the queued status and its timestamp are set.
        With one, the network label is attached and activation/expiration
        are copied through along with their epoch-second forms.
        """
        if not row.has_deal:
            return cls(
                status=DealStatus.QUEUED,
                last_changed=row.last_changed,
                last_changed_unix=_unix(row.last_changed),
            )
        return cls(
            status=row.status,
            last_changed=row.last_changed,
            last_changed_unix=_unix(row.last_changed),
            aggregate_root_cid=row.aggregate_cid,
            piece_cid=row.piece_cid,
            network=network,
            provider=row.provider,
            chain_deal_id=row.deal_id,
            datamodel_selector=row.datamodel_selector,
            deal_activation=row.start_time,
            deal_activation_unix=_unix(row.start_time),
            deal_expiration=row.end_time,
            deal_expiration_unix=_unix(row.end_time),
        )


_entries_adapter = TypeAdapter(List[DealEntry])


def encode_entries(entries: List[DealEntry]) -> str:
    """JSON-encode a DealEntry list, omitting unset optional fields."""
    return _entries_adapter.dump_json(entries, by_alias=True, exclude_none=True).decode()


class ExportMetadata(BaseModel):
    """Per-key counters stored as KV metadata."""
    queued: int = 0
    proposing: int = 0
    accepted: int = 0
    failed: int = 0
    published: int = 0
    active: int = 0
    terminated: int = 0

    @classmethod
    def from_row(cls, row: ExportRow) -> "ExportMetadata":
        return cls(
            queued=row.queued,
            published=row.published,
            active=row.active,
            terminated=row.terminated,
        )


@dataclass
class ExportGroup:
    """All deal entries accumulated for one export key."""
    key: str
    metadata: ExportMetadata
    entries: List[DealEntry] = field(default_factory=list)
    # insertion-ordered set of contributing DAGs
    cids: Dict[str, None] = field(default_factory=dict)
    encoded: Optional[str] = None

    def encode(self) -> str:
        if self.encoded is None:
            self.encoded = encode_entries(self.entries)
        return self.encoded

    @property
    def encoded_size(self) -> int:
        return len(self.encode().encode("utf-8"))


__all__ = [
    "ExportRow",
    "DealEntry",
    "ExportMetadata",
    "ExportGroup",
    "encode_entries",
]
