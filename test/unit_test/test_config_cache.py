"""
Test Fee Config Cache

TTL behaviour, error mapping and devnet id derivation.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from cpmm_adapter.cpmm.constants import programs_for
from cpmm_adapter.cpmm.pda import derive_amm_config
from cpmm_adapter.errors import ErrorCode, OperationError, RpcError
from cpmm_adapter.modules.config_cache import FeeConfigCache, parse_fee_config
from cpmm_adapter.types import Cluster


RAW_CONFIGS = [
    {
        "id": "G95xxie3XbkCqtE39GgQ9Ggc7xBC8Uceve7HFDEFApkc",
        "index": 1,
        "protocolFeeRate": 120000,
        "tradeFeeRate": 10000,
        "fundFeeRate": 40000,
        "createPoolFee": "150000000",
    },
    {
        "id": "D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2",
        "index": 0,
        "protocolFeeRate": 120000,
        "tradeFeeRate": 2500,
        "fundFeeRate": 40000,
        "createPoolFee": "150000000",
    },
]


class FakeClock:
    def __init__(self):
        self.now = 1_000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher():
    return AsyncMock(return_value=RAW_CONFIGS)


def test_parse_fee_config():
    config = parse_fee_config(RAW_CONFIGS[1])

    assert config.id == "D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2"
    assert config.index == 0
    assert config.trade_fee_rate == 2500
    assert config.fee_rate_bps == 25
    assert config.create_pool_fee == 150_000_000


class TestFeeConfigCache:

    async def test_configs_sorted_by_index(self, fetcher, clock):
        cache = FeeConfigCache(fetcher, ttl_seconds=300, clock=clock)
        configs = await cache.get_fee_configs(Cluster.MAINNET)

        assert [c.index for c in configs] == [0, 1]
        assert configs[0].id == "D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2"

    async def test_single_refetch_after_expiry(self, fetcher, clock):
        cache = FeeConfigCache(fetcher, ttl_seconds=300, clock=clock)

        await cache.get_fee_configs(Cluster.MAINNET)
        clock.now += 100
        await cache.get_fee_configs(Cluster.MAINNET)
        clock.now += 199
        await cache.get_fee_configs(Cluster.MAINNET)
        assert fetcher.await_count == 1, "Should serve from cache inside the TTL"

        clock.now += 1
        await cache.get_fee_configs(Cluster.MAINNET)
        await cache.get_fee_configs(Cluster.MAINNET)
        assert fetcher.await_count == 2, "Should refetch exactly once after expiry"

    async def test_clusters_cached_separately(self, fetcher, clock):
        cache = FeeConfigCache(fetcher, ttl_seconds=300, clock=clock)

        await cache.get_fee_configs(Cluster.MAINNET)
        await cache.get_fee_configs(Cluster.DEVNET)
        await cache.get_fee_configs(Cluster.DEVNET)

        assert fetcher.await_count == 2
        assert [call.args[0] for call in fetcher.await_args_list] == [Cluster.MAINNET, Cluster.DEVNET]

    async def test_devnet_ids_rederived(self, fetcher, clock):
        cache = FeeConfigCache(fetcher, ttl_seconds=300, clock=clock)
        configs = await cache.get_fee_configs(Cluster.DEVNET)

        program = programs_for(Cluster.DEVNET).cpmm_program
        for config in configs:
            assert config.id == str(derive_amm_config(program, config.index))
        assert configs[0].trade_fee_rate == 2500

    async def test_concurrent_misses_share_one_fetch(self, clock):
        async def slow_fetch(cluster):
            await asyncio.sleep(0.01)
            return RAW_CONFIGS

        fetcher = AsyncMock(side_effect=slow_fetch)
        cache = FeeConfigCache(fetcher, ttl_seconds=300, clock=clock)

        results = await asyncio.gather(*(cache.get_fee_configs(Cluster.MAINNET) for _ in range(5)))

        assert fetcher.await_count == 1
        assert all(r == results[0] for r in results)

    async def test_empty_result(self, clock):
        cache = FeeConfigCache(AsyncMock(return_value=[]), ttl_seconds=300, clock=clock)

        with pytest.raises(OperationError) as exc_info:
            await cache.get_fee_configs(Cluster.MAINNET)
        assert exc_info.value.code == ErrorCode.NO_FEE_CONFIGS

    async def test_fetch_failure_wrapped(self, clock):
        cause = RpcError.api_failed("https://api-v3.raydium.io/main/cpmm-config", "HTTP 503")
        cache = FeeConfigCache(AsyncMock(side_effect=cause), ttl_seconds=300, clock=clock)

        with pytest.raises(OperationError) as exc_info:
            await cache.get_fee_configs(Cluster.MAINNET)
        assert exc_info.value.code == ErrorCode.FEE_CONFIG_FETCH_ERROR
        assert exc_info.value.cause is cause

    async def test_malformed_entry(self, clock):
        cache = FeeConfigCache(AsyncMock(return_value=[{"index": 0}]), ttl_seconds=300, clock=clock)

        with pytest.raises(OperationError) as exc_info:
            await cache.get_fee_configs(Cluster.MAINNET)
        assert exc_info.value.code == ErrorCode.FEE_CONFIG_FETCH_ERROR

    async def test_failed_fetch_not_cached(self, clock):
        fetcher = AsyncMock(side_effect=[RpcError.api_failed("url", "down"), RAW_CONFIGS])
        cache = FeeConfigCache(fetcher, ttl_seconds=300, clock=clock)

        with pytest.raises(OperationError):
            await cache.get_fee_configs(Cluster.MAINNET)
        configs = await cache.get_fee_configs(Cluster.MAINNET)
        assert len(configs) == 2

    async def test_clear(self, fetcher, clock):
        cache = FeeConfigCache(fetcher, ttl_seconds=300, clock=clock)

        await cache.get_fee_configs(Cluster.MAINNET)
        cache.clear(Cluster.MAINNET)
        await cache.get_fee_configs(Cluster.MAINNET)

        assert fetcher.await_count == 2
