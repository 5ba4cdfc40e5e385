# ============================================================================
# IPFS HTTP API CLIENT
# ============================================================================
# STATUS: Infrastructure - Content-store node access
# PURPOSE: pin/add, dag/stat and streamed refs against a kubo HTTP API
# CREATED: 18 OCT 2026
# ============================================================================
"""
IPFS HTTP API Client

Thin async httpx client for the three calls pin-dags needs. Every call
takes the client's base timeout unless an explicit one is passed; stat
and refs callers pass the extended timeout.

Network timeouts surface as httpx.TimeoutException, non-2xx responses
as IpfsApiError, and broken refs streams as RefStreamError.
"""

import logging
from typing import AsyncIterator, Dict, Optional

import httpx
from pydantic import ValidationError

from core.config import IpfsConfig
from core.models import DagStat, RefEntry

logger = logging.getLogger(__name__)


class IpfsApiError(Exception):
    """The API answered with a non-success status."""

    def __init__(self, command: str, status_code: int, message: str):
        self.command = command
        self.status_code = status_code
        self.message = message
        super().__init__(f"ipfs {command} failed with HTTP {status_code}: {message}")


class RefStreamError(Exception):
    """A refs record carried an inline error or could not be decoded."""


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and body.get("Message"):
        return body["Message"]
    return resp.text


class IpfsClient:
    """
    Async client for the IPFS (kubo) HTTP API.

    Usage:
        async with IpfsClient(config) as ipfs:
            await ipfs.pin_add(cid)
            stat = await ipfs.dag_stat(cid, timeout=config.extended_timeout_seconds)
    """

    def __init__(
        self,
        config: IpfsConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._base_url = config.api_url.rstrip("/") + "/api/v0"
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(float(config.timeout_seconds)),
            transport=transport,
        )

    async def __aenter__(self) -> "IpfsClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def _timeout(self, timeout: Optional[float]):
        return httpx.Timeout(float(timeout)) if timeout is not None else httpx.USE_CLIENT_DEFAULT

    async def _call(
        self,
        command: str,
        params: Dict[str, str],
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        resp = await self._client.post(
            f"{self._base_url}/{command}",
            params=params,
            timeout=self._timeout(timeout),
        )
        if resp.status_code >= 400:
            raise IpfsApiError(command, resp.status_code, _error_message(resp))
        return resp

    async def pin_add(self, cid: str, timeout: Optional[float] = None) -> None:
        """Recursively pin a DAG root."""
        await self._call("pin/add", {"arg": cid}, timeout)
        logger.debug(f"Pinned {cid}")

    async def dag_stat(self, cid: str, timeout: Optional[float] = None) -> DagStat:
        """Get total size and block count of a DAG."""
        resp = await self._call("dag/stat", {"arg": cid, "progress": "false"}, timeout)
        return DagStat.model_validate_json(resp.content)

    async def refs(self, cid: str, timeout: Optional[float] = None) -> AsyncIterator[str]:
        """
        Stream the recursive, de-duplicated references of a DAG.

        Records are decoded one line at a time as they arrive. Close the
        generator (contextlib.aclosing) when abandoning it early.

        Yields:
            Referenced CID strings as returned by the node

        Raises:
            RefStreamError: On an inline error or an undecodable record
        """
        async with self._client.stream(
            "POST",
            f"{self._base_url}/refs",
            params={"arg": cid, "unique": "true", "recursive": "true"},
            timeout=self._timeout(timeout),
        ) as resp:
            if resp.status_code >= 400:
                await resp.aread()
                raise IpfsApiError("refs", resp.status_code, _error_message(resp))

            async for line in resp.aiter_lines():
                if not line.strip():
                    continue
                try:
                    entry = RefEntry.model_validate_json(line)
                except ValidationError as e:
                    raise RefStreamError(f"undecodable refs record {line[:200]!r}") from e
                if entry.err:
                    raise RefStreamError(entry.err)
                yield entry.ref


__all__ = ["IpfsClient", "IpfsApiError", "RefStreamError"]
