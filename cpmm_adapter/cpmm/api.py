"""
Raydium Index API Client

Async REST client for the Raydium v3 index: pool metadata by id, pool
search by mint pair and CPMM fee tiers.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import config as global_config
from ..errors import ConfigurationError, RpcError
from ..types import Cluster

logger = logging.getLogger(__name__)

POOL_TYPE_STANDARD = "standard"
SORT_FIELDS = {
    "liquidity": "liquidity",
    "volume24h": "volume24h",
}


def api_base_url(cluster: Cluster) -> str:
    """Index base URL for a cluster"""
    urls = {
        Cluster.MAINNET: global_config.api.mainnet_url,
        Cluster.DEVNET: global_config.api.devnet_url,
    }
    if cluster not in urls:
        raise ConfigurationError.unsupported_cluster(cluster, "index api")
    return urls[cluster]


class RaydiumApi:
    """
    Raydium v3 REST API client

    Usage:
        api = RaydiumApi(Cluster.MAINNET)
        pools = await api.fetch_pools_by_ids([pool_id])
        configs = await api.fetch_cpmm_configs()
        await api.close()
    """

    def __init__(
        self,
        cluster: Cluster,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._cluster = cluster
        self._base_url = (base_url or api_base_url(cluster)).rstrip("/")
        self._timeout = timeout if timeout is not None else global_config.api.timeout
        self._client = client

    @property
    def cluster(self) -> Cluster:
        return self._cluster

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._get_client().get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise RpcError.api_failed(url, f"timeout after {self._timeout}s", e) from e
        except httpx.HTTPStatusError as e:
            raise RpcError.api_failed(url, f"HTTP {e.response.status_code}", e) from e
        except httpx.RequestError as e:
            raise RpcError.api_failed(url, str(e), e) from e
        except ValueError as e:
            raise RpcError.api_failed(url, "malformed JSON", e) from e

        if not payload.get("success", False):
            raise RpcError.api_failed(url, payload.get("msg") or "request unsuccessful")
        return payload.get("data")

    async def fetch_pools_by_ids(self, pool_ids: List[str]) -> List[Dict[str, Any]]:
        """
        Pool metadata for each id

        Returns:
            Pool info dicts; unknown ids are omitted
        """
        data = await self._get("/pools/info/ids", {"ids": ",".join(pool_ids)})
        return [p for p in (data or []) if p]

    async def fetch_pools_by_mints(
        self,
        mint_a: str,
        mint_b: str,
        sort_field: str = "liquidity",
        page_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Standard (constant-product) pools trading a mint pair, sorted descending

        Returns:
            Pool info dicts of every program type in the standard family
        """
        params = {
            "mint1": mint_a,
            "mint2": mint_b,
            "poolType": POOL_TYPE_STANDARD,
            "poolSortField": SORT_FIELDS.get(sort_field, "default"),
            "sortType": "desc",
            "pageSize": page_size or global_config.api.page_size,
            "page": 1,
        }
        data = await self._get("/pools/info/mint", params)
        if isinstance(data, dict):
            return data.get("data") or []
        return data or []

    async def fetch_cpmm_configs(self) -> List[Dict[str, Any]]:
        """
        CPMM fee tiers

        Returns:
            Dicts with id, index, tradeFeeRate, protocolFeeRate, fundFeeRate, createPoolFee
        """
        data = await self._get("/main/cpmm-config")
        return data or []

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
