"""
Test RPC and Index Clients

Request/response handling of RpcClient and RaydiumApi against
httpx.MockTransport, so no sockets are opened.
"""

import json
import sys
from pathlib import Path

import httpx
import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from cpmm_adapter.cpmm.api import RaydiumApi, api_base_url
from cpmm_adapter.errors import ConfigurationError, ErrorCode, RpcError
from cpmm_adapter.infra.rpc import RpcClient, RpcClientConfig
from cpmm_adapter.types import Cluster


def rpc_with(handler, endpoints=("https://primary.example.com", "https://backup.example.com")):
    rpc = RpcClient(list(endpoints), config=RpcClientConfig(timeout_seconds=5, poll_interval=0))
    rpc._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return rpc


def test_rpc_config_defaults():
    """Test RpcClientConfig default values from global config"""
    config = RpcClientConfig()

    assert config.timeout_seconds > 0, "Should have positive timeout"
    assert config.commitment in ("processed", "confirmed", "finalized"), "Invalid commitment"


def test_rpc_client_init():
    client = RpcClient("https://api.mainnet-beta.solana.com")
    assert client.endpoint == "https://api.mainnet-beta.solana.com"

    client = RpcClient(["https://primary.example.com", "https://backup.example.com"])
    assert client.endpoint == "https://primary.example.com"

    with pytest.raises(ConfigurationError):
        RpcClient([])


class TestRpcCall:

    async def test_returns_result(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": {"blockhash": "abc"}}})

        rpc = rpc_with(handler)
        info = await rpc.get_latest_blockhash()

        assert info == {"blockhash": "abc"}
        assert seen[0]["method"] == "getLatestBlockhash"
        await rpc.close()

    async def test_json_rpc_error(self):
        def handler(request):
            return httpx.Response(200, json={"error": {"code": -32602, "message": "Invalid param"}})

        rpc = rpc_with(handler)
        with pytest.raises(RpcError) as exc_info:
            await rpc.call("getAccountInfo", ["bad"])

        assert exc_info.value.code == ErrorCode.RPC_INVALID_RESPONSE
        assert exc_info.value.details["rpc_error_code"] == -32602
        await rpc.close()

    async def test_fails_over_to_backup(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            if request.url.host == "primary.example.com":
                return httpx.Response(503)
            return httpx.Response(200, json={"result": 42})

        rpc = rpc_with(handler)
        assert await rpc.call("getSlot", []) == 42
        assert hosts == ["primary.example.com", "backup.example.com"]
        assert rpc.endpoint == "https://backup.example.com"
        await rpc.close()

    async def test_each_endpoint_tried_once(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(429)

        rpc = rpc_with(handler)
        with pytest.raises(RpcError) as exc_info:
            await rpc.call("getSlot", [])

        assert exc_info.value.code == ErrorCode.RPC_RATE_LIMITED
        assert exc_info.value.recoverable
        assert len(hosts) == 2
        await rpc.close()

    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        rpc = rpc_with(handler, endpoints=("https://only.example.com",))
        with pytest.raises(RpcError) as exc_info:
            await rpc.call("getSlot", [])
        assert exc_info.value.code == ErrorCode.RPC_CONNECTION_FAILED
        await rpc.close()

    async def test_account_not_found(self):
        def handler(request):
            return httpx.Response(200, json={"result": {"context": {"slot": 1}, "value": None}})

        rpc = rpc_with(handler)
        assert await rpc.get_account_info("11111111111111111111111111111111") is None
        await rpc.close()


class TestConfirmTransaction:

    async def test_confirmed(self):
        def handler(request):
            return httpx.Response(200, json={"result": {"value": [{"confirmationStatus": "confirmed", "err": None}]}})

        rpc = rpc_with(handler)
        assert await rpc.confirm_transaction("sig", commitment="confirmed", timeout_seconds=5) is True
        await rpc.close()

    async def test_failed_on_chain(self):
        def handler(request):
            return httpx.Response(200, json={"result": {"value": [{"confirmationStatus": "processed", "err": {"InstructionError": [2, {"Custom": 6005}]}}]}})

        rpc = rpc_with(handler)
        assert await rpc.confirm_transaction("sig", timeout_seconds=5) is False
        await rpc.close()

    async def test_timeout_is_unknown(self):
        def handler(request):
            return httpx.Response(200, json={"result": {"value": [None]}})

        rpc = rpc_with(handler)
        assert await rpc.confirm_transaction("sig", timeout_seconds=0.05) is None
        await rpc.close()


class TestRaydiumApi:

    def test_every_cluster_has_a_base_url(self):
        for cluster in Cluster:
            assert api_base_url(cluster).startswith("https://")

    async def test_fetch_pools_by_ids(self):
        def handler(request):
            assert request.url.path == "/pools/info/ids"
            assert request.url.params["ids"] == "poolA,poolB"
            return httpx.Response(200, json={"success": True, "data": [{"id": "poolA"}, None]})

        api = RaydiumApi(Cluster.MAINNET, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        assert await api.fetch_pools_by_ids(["poolA", "poolB"]) == [{"id": "poolA"}]
        await api.close()

    async def test_fetch_pools_by_mints(self):
        def handler(request):
            params = request.url.params
            assert request.url.path == "/pools/info/mint"
            assert params["poolType"] == "standard"
            assert params["poolSortField"] == "volume24h"
            return httpx.Response(200, json={"success": True, "data": {"count": 1, "data": [{"id": "p"}]}})

        api = RaydiumApi(Cluster.MAINNET, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        assert await api.fetch_pools_by_mints("mintA", "mintB", sort_field="volume24h") == [{"id": "p"}]
        await api.close()

    async def test_unsuccessful_payload(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "msg": "bad ids"})

        api = RaydiumApi(Cluster.MAINNET, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(RpcError) as exc_info:
            await api.fetch_cpmm_configs()
        assert exc_info.value.code == ErrorCode.API_REQUEST_FAILED
        assert "bad ids" in exc_info.value.message
        await api.close()

    async def test_http_error(self):
        def handler(request):
            return httpx.Response(500)

        api = RaydiumApi(Cluster.DEVNET, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(RpcError) as exc_info:
            await api.fetch_cpmm_configs()
        assert exc_info.value.code == ErrorCode.API_REQUEST_FAILED
        await api.close()
