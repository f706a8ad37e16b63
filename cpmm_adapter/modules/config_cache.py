"""
Fee Config Cache

Caches CPMM fee tiers per cluster with a TTL. Entries are replaced as a
whole, so readers only ever see a complete list.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..cpmm.constants import programs_for
from ..cpmm.pda import derive_amm_config
from ..config import config as global_config
from ..errors import ErrorCode, OperationError
from ..types import Cluster, FeeConfig

logger = logging.getLogger(__name__)

ConfigFetcher = Callable[[Cluster], Awaitable[List[Dict[str, Any]]]]


@dataclass(frozen=True)
class _CacheEntry:
    configs: Tuple[FeeConfig, ...]
    fetched_at: float


def parse_fee_config(raw: Dict[str, Any]) -> FeeConfig:
    """Build a FeeConfig from an index API entry"""
    return FeeConfig(
        id=str(raw["id"]),
        index=int(raw["index"]),
        trade_fee_rate=int(raw.get("tradeFeeRate", 0)),
        protocol_fee_rate=int(raw.get("protocolFeeRate", 0)),
        fund_fee_rate=int(raw.get("fundFeeRate", 0)),
        create_pool_fee=int(raw.get("createPoolFee", 0)),
    )


class FeeConfigCache:
    """
    TTL cache of fee tiers keyed by cluster.

    On DEVNET the index reports mainnet addresses, so each config id is
    re-derived from its index under the devnet program. Concurrent misses
    for the same cluster share one fetch.

    Usage:
        cache = FeeConfigCache(fetcher)
        configs = await cache.get_fee_configs(Cluster.MAINNET)
    """

    def __init__(
        self,
        fetcher: ConfigFetcher,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self._ttl = ttl_seconds if ttl_seconds is not None else global_config.cache.fee_config_ttl_seconds
        self._clock = clock
        self._entries: Dict[Cluster, _CacheEntry] = {}
        self._locks: Dict[Cluster, asyncio.Lock] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _fresh(self, cluster: Cluster) -> Optional[Tuple[FeeConfig, ...]]:
        entry = self._entries.get(cluster)
        if entry is not None and self._clock() - entry.fetched_at < self._ttl:
            return entry.configs
        return None

    async def get_fee_configs(self, cluster: Cluster) -> Tuple[FeeConfig, ...]:
        """
        Fee tiers for a cluster, fetching when missing or expired

        Raises:
            OperationError: NO_FEE_CONFIGS if the source returns none,
                FEE_CONFIG_FETCH_ERROR for any other fetch failure
        """
        cached = self._fresh(cluster)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(cluster, asyncio.Lock())
        async with lock:
            # Another waiter may have refreshed while we queued
            cached = self._fresh(cluster)
            if cached is not None:
                return cached

            configs = await self._load(cluster)
            self._entries[cluster] = _CacheEntry(configs=configs, fetched_at=self._clock())
            logger.info(f"Cached {len(configs)} fee configs for {cluster}")
            return configs

    async def _load(self, cluster: Cluster) -> Tuple[FeeConfig, ...]:
        try:
            raw_configs = await self._fetcher(cluster)
            configs = [parse_fee_config(raw) for raw in raw_configs]
        except OperationError as e:
            raise OperationError(
                f"Failed to fetch fee configs for {cluster}: {e.message}",
                ErrorCode.FEE_CONFIG_FETCH_ERROR,
                cause=e,
                recoverable=e.recoverable,
            ) from e
        except (KeyError, TypeError, ValueError) as e:
            raise OperationError(
                f"Malformed fee config data for {cluster}: {e}",
                ErrorCode.FEE_CONFIG_FETCH_ERROR,
                cause=e,
            ) from e

        if not configs:
            raise OperationError(f"No fee configs available for {cluster}", ErrorCode.NO_FEE_CONFIGS)

        if not cluster.has_pool_index:
            program_id = programs_for(cluster).cpmm_program
            configs = [
                FeeConfig(
                    id=str(derive_amm_config(program_id, c.index)),
                    index=c.index,
                    trade_fee_rate=c.trade_fee_rate,
                    protocol_fee_rate=c.protocol_fee_rate,
                    fund_fee_rate=c.fund_fee_rate,
                    create_pool_fee=c.create_pool_fee,
                )
                for c in configs
            ]

        return tuple(sorted(configs, key=lambda c: c.index))

    def clear(self, cluster: Optional[Cluster] = None):
        """Drop cached entries for one cluster, or all of them"""
        if cluster is None:
            self._entries.clear()
        else:
            self._entries.pop(cluster, None)
