"""
Test CpmmClient

Construction, lazy modules and fee-tier fetching per cluster.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from solders.keypair import Keypair

from cpmm_adapter import CpmmClient
from cpmm_adapter.errors import ConfigurationError, ErrorCode, OperationError
from cpmm_adapter.modules import LiquidityModule, PoolLocator, SwapModule, WalletModule
from cpmm_adapter.types import Cluster


def test_client_init():
    keypair = Keypair()
    client = CpmmClient(rpc_url="http://localhost:8899", cluster="devnet", keypair=keypair)

    assert client.cluster == Cluster.DEVNET
    assert client.pubkey == str(keypair.pubkey())
    assert client.rpc.endpoint == "http://localhost:8899"
    assert client.api.cluster == Cluster.DEVNET
    assert "devnet" in repr(client)


def test_cluster_enum_accepted():
    client = CpmmClient(rpc_url="http://localhost:8899", cluster=Cluster.MAINNET, keypair=Keypair())
    assert client.cluster == Cluster.MAINNET


def test_unknown_cluster():
    with pytest.raises(ConfigurationError):
        CpmmClient(rpc_url="http://localhost:8899", cluster="testnet")


def test_init_failure_wrapped():
    boom = RuntimeError("no event loop policy")

    with patch("cpmm_adapter.client.RaydiumApi", side_effect=boom):
        with pytest.raises(OperationError) as exc_info:
            CpmmClient(rpc_url="http://localhost:8899", cluster="devnet", keypair=Keypair())

    assert exc_info.value.code == ErrorCode.SDK_INIT_FAILED
    assert exc_info.value.cause is boom
    assert exc_info.value.details["cluster"] == "devnet"


def test_read_only(read_only_client):
    assert read_only_client.signer is None
    assert read_only_client.pubkey is None
    assert "read-only" in repr(read_only_client)


def test_lazy_modules_are_cached(client):
    assert isinstance(client.pools, PoolLocator)
    assert isinstance(client.wallet, WalletModule)
    assert isinstance(client.lp, LiquidityModule)
    assert isinstance(client.swap, SwapModule)
    assert client.pools is client.pools
    assert client.swap is client.swap


class TestFeeConfigFetch:

    async def test_own_cluster_uses_client_api(self, client):
        client.api.fetch_cpmm_configs = AsyncMock(return_value=[{"id": "x", "index": 0, "tradeFeeRate": 2500}])

        configs = await client.fee_configs.get_fee_configs(Cluster.DEVNET)

        assert configs[0].trade_fee_rate == 2500
        client.api.fetch_cpmm_configs.assert_awaited_once()

    async def test_other_cluster_uses_temporary_api(self, client):
        raw = [{"id": "D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2", "index": 0, "tradeFeeRate": 2500}]

        with patch("cpmm_adapter.client.RaydiumApi") as api_cls:
            api_cls.return_value.fetch_cpmm_configs = AsyncMock(return_value=raw)
            api_cls.return_value.close = AsyncMock()

            configs = await client.fee_configs.get_fee_configs(Cluster.MAINNET)

        api_cls.assert_called_once_with(Cluster.MAINNET)
        api_cls.return_value.close.assert_awaited_once()
        assert configs[0].id == raw[0]["id"]


async def test_context_manager_closes():
    async with CpmmClient(rpc_url="http://localhost:8899", cluster="devnet", keypair=Keypair()) as client:
        client.api.close = AsyncMock()
        client.rpc.close = AsyncMock()

    client.api.close.assert_awaited_once()
    client.rpc.close.assert_awaited_once()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
