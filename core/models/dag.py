# ============================================================================
# DAG MODELS
# ============================================================================
# STATUS: Core model - Pin pipeline jobs and IPFS API payloads
# PURPOSE: Wrap a root CID for one pin job, decode dag/stat and refs records
# CREATED: 18 OCT 2026
# EXPORTS: PinJob, DagStat, RefEntry, parse_cid, cidv1
# DEPENDENCIES: pydantic, multiformats
# ============================================================================
"""
DAG Models

A PinJob wraps one DAG root for the duration of a pin-dags run. The
store keys everything by the canonical CIDv1 (base32) string.
"""

from dataclasses import dataclass

from multiformats import CID
from pydantic import BaseModel, ConfigDict, Field


def parse_cid(value: str) -> CID:
    """Parse a CID string, raising ValueError when it does not decode."""
    try:
        return CID.decode(value)
    except Exception as e:
        raise ValueError(f"invalid CID {value!r}: {e}") from e


def cidv1(cid: CID) -> str:
    """Canonical CIDv1 base32 string form used as the store key."""
    return str(cid.set(base="base32", version=1))


@dataclass(frozen=True)
class PinJob:
    """One DAG root to pin and analyze."""
    root: CID

    @property
    def cid(self) -> str:
        """Root as originally encoded, sent to the IPFS API."""
        return str(self.root)

    @property
    def cid_v1(self) -> str:
        return cidv1(self.root)


class DagStat(BaseModel):
    """Response of `dag/stat` with progress disabled."""
    model_config = ConfigDict(populate_by_name=True)

    size: int = Field(alias="Size", ge=0)
    num_blocks: int = Field(alias="NumBlocks", ge=0)


class RefEntry(BaseModel):
    """One record of the streamed `refs` response."""
    model_config = ConfigDict(populate_by_name=True)

    ref: str = Field(default="", alias="Ref")
    err: str = Field(default="", alias="Err")


__all__ = ["PinJob", "DagStat", "RefEntry", "parse_cid", "cidv1"]
