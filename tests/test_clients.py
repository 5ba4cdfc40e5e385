# ============================================================================
# HTTP CLIENT TESTS
# ============================================================================
# STATUS: Tests - IPFS and Workers KV clients
# PURPOSE: Verify request shapes and response handling over MockTransport
# CREATED: 18 OCT 2026
# ============================================================================
"""
HTTP Client Tests

Both clients accept an httpx transport; tests route every request
through httpx.MockTransport and inspect what was sent.

Run with:
    pytest tests/test_clients.py -v
"""

import asyncio
import json
import pytest

import httpx

from core.config import IpfsConfig, KVConfig
from infrastructure.ipfs import IpfsApiError, IpfsClient, RefStreamError
from infrastructure.kv_store import (
    KVApiError,
    KVPair,
    ProtocolViolation,
    WorkersKVClient,
)


ROOT = "QmUNLLsPACCz1vLxQVkXqqLX5R1X345qqfHbsf67hvA3Nn"
CHILD = "QmT78zSuBmuS4z925WZfrqQ1qHaJ56DQaTfyMUF7F8ff5o"


def _ipfs(handler):
    return IpfsClient(IpfsConfig(api_url="http://ipfs:5001"), transport=httpx.MockTransport(handler))


def _kv(handler, account_id="acct-1"):
    config = KVConfig(
        api_url="https://kv.example/client/v4",
        account_id=account_id,
        api_token="secret",
        deals_namespace_id="ns-deals",
    )
    return WorkersKVClient(config, transport=httpx.MockTransport(handler))


async def _collect(agen):
    return [item async for item in agen]


# ============================================================================
# IPFS
# ============================================================================

class TestIpfsClient:
    """IPFS HTTP API calls."""

    def test_pin_add_request(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"Pins": [ROOT]})

        async def scenario():
            async with _ipfs(handler) as ipfs:
                await ipfs.pin_add(ROOT)

        asyncio.run(scenario())

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/v0/pin/add"
        assert request.url.params["arg"] == ROOT

    def test_pin_add_error_status(self):
        def handler(request):
            return httpx.Response(500, json={"Message": "merkledag: not found", "Code": 0})

        async def scenario():
            async with _ipfs(handler) as ipfs:
                await ipfs.pin_add(ROOT)

        with pytest.raises(IpfsApiError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "merkledag: not found"

    def test_dag_stat_parsed(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"Size": 1234, "NumBlocks": 7})

        async def scenario():
            async with _ipfs(handler) as ipfs:
                return await ipfs.dag_stat(ROOT, timeout=3600)

        stat = asyncio.run(scenario())

        assert stat.size == 1234
        assert stat.num_blocks == 7
        assert seen[0].url.params["progress"] == "false"

    def test_refs_streamed(self):
        seen = []
        body = (
            json.dumps({"Ref": ROOT, "Err": ""}) + "\n"
            + json.dumps({"Ref": CHILD, "Err": ""}) + "\n"
        )

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=body.encode())

        async def scenario():
            async with _ipfs(handler) as ipfs:
                return await _collect(ipfs.refs(ROOT))

        refs = asyncio.run(scenario())

        assert refs == [ROOT, CHILD]
        assert seen[0].url.path == "/api/v0/refs"
        assert seen[0].url.params["unique"] == "true"
        assert seen[0].url.params["recursive"] == "true"

    def test_refs_inline_error(self):
        body = (
            json.dumps({"Ref": CHILD, "Err": ""}) + "\n"
            + json.dumps({"Ref": "", "Err": "block was not found locally"}) + "\n"
        )

        def handler(request):
            return httpx.Response(200, content=body.encode())

        async def scenario():
            async with _ipfs(handler) as ipfs:
                return await _collect(ipfs.refs(ROOT))

        with pytest.raises(RefStreamError, match="not found locally"):
            asyncio.run(scenario())

    def test_refs_undecodable_record(self):
        def handler(request):
            return httpx.Response(200, content=b'{"Ref": "' + CHILD.encode() + b'"}\n{garbage\n')

        async def scenario():
            async with _ipfs(handler) as ipfs:
                return await _collect(ipfs.refs(ROOT))

        with pytest.raises(RefStreamError):
            asyncio.run(scenario())


# ============================================================================
# WORKERS KV
# ============================================================================

class TestWorkersKVClient:
    """Bulk write endpoint."""

    def test_bulk_write_request(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True, "errors": [], "messages": [], "result": None})

        async def scenario():
            async with _kv(handler) as kv:
                return await kv.bulk_write("ns-deals", [
                    KVPair(key="k1", value="[]", metadata={"queued": 1}),
                ])

        response = asyncio.run(scenario())

        assert response.success
        request = seen[0]
        assert request.method == "PUT"
        assert request.url.path == "/client/v4/accounts/acct-1/storage/kv/namespaces/ns-deals/bulk"
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content) == [{"key": "k1", "value": "[]", "metadata": {"queued": 1}}]

    def test_unsuccessful_response_is_protocol_violation(self):
        raw = '{"success": false, "errors": [{"code": 10001, "message": "bad"}]}'

        def handler(request):
            return httpx.Response(200, content=raw.encode())

        async def scenario():
            async with _kv(handler) as kv:
                await kv.bulk_write("ns-deals", [KVPair(key="k", value="[]")])

        with pytest.raises(ProtocolViolation) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.raw_response == raw

    def test_undecodable_response_is_protocol_violation(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>gateway</html>")

        async def scenario():
            async with _kv(handler) as kv:
                await kv.bulk_write("ns-deals", [KVPair(key="k", value="[]")])

        with pytest.raises(ProtocolViolation):
            asyncio.run(scenario())

    def test_http_error_status(self):
        def handler(request):
            return httpx.Response(403, content=b"forbidden")

        async def scenario():
            async with _kv(handler) as kv:
                await kv.bulk_write("ns-deals", [KVPair(key="k", value="[]")])

        with pytest.raises(KVApiError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.status_code == 403

    def test_oversized_batch_rejected_before_request(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        pairs = [KVPair(key=f"k{i}", value="[]") for i in range(10001)]

        async def scenario():
            async with _kv(handler) as kv:
                await kv.bulk_write("ns-deals", pairs)

        with pytest.raises(ValueError):
            asyncio.run(scenario())
        assert seen == []

    def test_missing_account_rejected(self):
        with pytest.raises(ValueError):
            _kv(lambda request: httpx.Response(200), account_id="")
