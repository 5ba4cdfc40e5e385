# ============================================================================
# WORKERS KV CLIENT
# ============================================================================
# STATUS: Infrastructure - External key-value cache access
# PURPOSE: Bulk-write deal status entries to Cloudflare Workers KV
# CREATED: 18 OCT 2026
# ============================================================================
"""
Workers KV Client

One call: the namespace bulk write, accepting at most 10,000
key/value/metadata triples per request.

Failures are never retried here. A transport error or HTTP error status
raises KVApiError / httpx.HTTPError; a well-formed response that does not
report success raises ProtocolViolation carrying the raw body, since
nothing about such a response says which keys were written.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from core.config import KVConfig, KV_BULK_MAX_ENTRIES

logger = logging.getLogger(__name__)


class KVPair(BaseModel):
    """One entry of a bulk write."""
    key: str
    value: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class KVBulkResponse(BaseModel):
    """Envelope returned by the Cloudflare v4 API."""
    success: bool = False
    errors: List[Any] = Field(default_factory=list)
    messages: List[Any] = Field(default_factory=list)
    result: Optional[Any] = None


class KVApiError(Exception):
    """The API answered with an HTTP error status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"KV bulk write failed with HTTP {status_code}: {body[:2000]}")


class ProtocolViolation(Exception):
    """
    The bulk write did not report success.

    Not retryable: an operator inspects `raw_response` and reruns.
    """

    def __init__(self, message: str, raw_response: str):
        self.raw_response = raw_response
        super().__init__(f"{message}: {raw_response[:2000]}")


class WorkersKVClient:
    """
    Async client for the Workers KV bulk API.

    Usage:
        async with WorkersKVClient(config) as kv:
            await kv.bulk_write(config.deals_namespace_id, pairs)
    """

    def __init__(
        self,
        config: KVConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not config.account_id:
            raise ValueError("CF_ACCOUNT_ID is not set")
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.api_url.rstrip("/"),
            headers={"Authorization": f"Bearer {config.api_token}"},
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )

    async def __aenter__(self) -> "WorkersKVClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def bulk_write(self, namespace_id: str, pairs: Sequence[KVPair]) -> KVBulkResponse:
        """
        Write up to 10,000 entries in one request.

        Args:
            namespace_id: Target KV namespace
            pairs: Entries to write

        Returns:
            The successful response envelope

        Raises:
            ValueError: More entries than the endpoint accepts
            KVApiError: HTTP error status
            ProtocolViolation: Response without a success flag
        """
        if not namespace_id:
            raise ValueError("KV namespace id is not set")
        if len(pairs) > KV_BULK_MAX_ENTRIES:
            raise ValueError(
                f"bulk write of {len(pairs)} entries exceeds the {KV_BULK_MAX_ENTRIES} entry limit"
            )

        resp = await self._client.put(
            f"/accounts/{self.config.account_id}/storage/kv/namespaces/{namespace_id}/bulk",
            json=[p.model_dump() for p in pairs],
        )
        if resp.status_code >= 400:
            raise KVApiError(resp.status_code, resp.text)

        try:
            body = KVBulkResponse.model_validate_json(resp.content)
        except ValidationError as e:
            raise ProtocolViolation("undecodable bulk write response", resp.text) from e

        if not body.success:
            raise ProtocolViolation("unexpected bulk write response", resp.text)

        logger.debug(f"Bulk-wrote {len(pairs)} entries to namespace {namespace_id}")
        return body


__all__ = [
    "KVPair",
    "KVBulkResponse",
    "KVApiError",
    "ProtocolViolation",
    "WorkersKVClient",
]
