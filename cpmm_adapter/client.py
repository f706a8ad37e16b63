"""
CpmmClient - Unified entry point for Raydium CPMM operations

Holds the shared context (RPC client, signer, cluster, caches, connection
state) and exposes the functional modules (pools, wallet, lp, swap).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from solders.keypair import Keypair

from .config import config as global_config
from .cpmm.api import RaydiumApi
from .errors import ErrorCode, OperationError
from .infra import (
    ConnectionManager,
    PriorityFeeEstimator,
    RpcClient,
    RpcClientConfig,
    Signer,
    TaskBatch,
    TxBuilder,
    TxBuilderConfig,
    create_signer,
)
from .modules.config_cache import FeeConfigCache
from .types import Cluster


class CpmmClient:
    """
    Raydium CPMM client

    Provides access to CPMM operations through functional modules:
    - pools: Pool resolution, search and state loading
    - wallet: Token and LP balances
    - lp: Pool creation, deposits, withdrawals, locking, fee harvesting
    - swap: Exact-in and exact-out swaps

    Usage:
        from solders.keypair import Keypair

        async with CpmmClient(
            rpc_url="https://api.devnet.solana.com",
            cluster="devnet",
            keypair=Keypair(),
        ) as client:
            pool = await client.pools.fetch_pool_state(pool_id)
            result = await client.swap.swap_exact_in(pool_id, Decimal("0.1"), WSOL_MINT, slippage_bps=50)
            print(result.explorer_url)

        # Read-only (no signer)
        client = CpmmClient("https://api.mainnet-beta.solana.com")
    """

    def __init__(
        self,
        rpc_url: Optional[Union[str, List[str]]] = None,
        cluster: Optional[Union[Cluster, str]] = None,
        keypair: Optional["Keypair"] = None,
        keypair_path: Optional[str] = None,
        signer: Optional[Signer] = None,
        rpc_config: Optional[RpcClientConfig] = None,
        tx_config: Optional[TxBuilderConfig] = None,
    ):
        """
        Initialize CpmmClient

        Args:
            rpc_url: RPC endpoint URL or list of URLs for fallback (default from config)
            cluster: Cluster or its name (default from config)
            keypair: Optional Keypair for local signing
            keypair_path: Optional path to keypair file
            signer: Optional pre-built signer (takes precedence over keypair)
            rpc_config: Optional RPC configuration
            tx_config: Optional transaction configuration
        """
        if cluster is None:
            cluster = global_config.rpc.cluster
        self._cluster = cluster if isinstance(cluster, Cluster) else Cluster.from_string(cluster)

        try:
            self._rpc = RpcClient(rpc_url or global_config.rpc.url, config=rpc_config)

            if signer is None:
                signer = create_signer(keypair=keypair, keypair_path=keypair_path)
            self._signer = signer

            self._priority_fees = PriorityFeeEstimator(self._rpc)
            self._tx_builder = TxBuilder(self._rpc, self._signer, config=tx_config, fee_estimator=self._priority_fees)
            self._api = RaydiumApi(self._cluster)
        except OperationError:
            raise
        except Exception as e:
            raise OperationError(
                f"Failed to initialize CPMM client: {e}",
                ErrorCode.SDK_INIT_FAILED,
                cause=e,
                details={"cluster": self._cluster.value},
            ) from e

        self._fee_configs = FeeConfigCache(self._fetch_fee_configs)
        self._connection = ConnectionManager(self._rpc)
        self._batch = TaskBatch()

        # Lazy-loaded modules
        self._pools: Optional["PoolLocator"] = None
        self._executor: Optional["TransactionExecutor"] = None
        self._wallet: Optional["WalletModule"] = None
        self._lp: Optional["LiquidityModule"] = None
        self._swap: Optional["SwapModule"] = None

    async def _fetch_fee_configs(self, cluster: Cluster) -> List[Dict[str, Any]]:
        if cluster == self._cluster:
            return await self._api.fetch_cpmm_configs()
        api = RaydiumApi(cluster)
        try:
            return await api.fetch_cpmm_configs()
        finally:
            await api.close()

    @property
    def rpc(self) -> RpcClient:
        """Access to RPC client"""
        return self._rpc

    @property
    def signer(self) -> Optional[Signer]:
        """Active signer, None for a read-only client"""
        return self._signer

    @property
    def pubkey(self) -> Optional[str]:
        """Signer's public key"""
        return self._signer.pubkey if self._signer is not None else None

    @property
    def cluster(self) -> Cluster:
        return self._cluster

    @property
    def explorer_base_url(self) -> str:
        return global_config.explorer.base_url

    @property
    def api(self) -> RaydiumApi:
        """Off-chain pool index for the cluster"""
        return self._api

    @property
    def tx_builder(self) -> TxBuilder:
        """Access to transaction builder"""
        return self._tx_builder

    @property
    def fee_configs(self) -> FeeConfigCache:
        """Fee tier cache shared by every operation of this client"""
        return self._fee_configs

    @property
    def connection(self) -> ConnectionManager:
        """RPC health and reconnect state"""
        return self._connection

    @property
    def priority_fees(self) -> PriorityFeeEstimator:
        return self._priority_fees

    @property
    def batch(self) -> TaskBatch:
        return self._batch

    @property
    def pools(self) -> "PoolLocator":
        """
        Pool locator

        Provides:
        - resolve_pool_id(pool_id, mint_a, mint_b): Pick the target pool
        - fetch_pool_state(pool_id, include_live_reserves): Pool snapshot
        - find_pools(mint_a, mint_b): Pools for a pair
        - find_best_pool(mint_a, mint_b, sort_by): Best pool for a pair
        - pool_details(mint_a, mint_b): Live snapshots of every pool for a pair
        """
        if self._pools is None:
            from .modules.pool_locator import PoolLocator
            self._pools = PoolLocator(self)
        return self._pools

    @property
    def executor(self) -> "TransactionExecutor":
        if self._executor is None:
            from .modules.executor import TransactionExecutor
            self._executor = TransactionExecutor(self)
        return self._executor

    @property
    def wallet(self) -> "WalletModule":
        """
        Wallet module for balance queries

        Provides:
        - token_balances(owner): All non-empty token accounts
        - token_balance(mint, owner): Raw balance of one mint
        - lp_balance(lp_mint, owner): Raw LP balance
        """
        if self._wallet is None:
            from .modules.wallet import WalletModule
            self._wallet = WalletModule(self)
        return self._wallet

    @property
    def lp(self) -> "LiquidityModule":
        """
        Liquidity module

        Provides:
        - create_pool(mint_a, mint_b, amount_a, amount_b, ...): New pool
        - add_liquidity(amount, pool_id | mint_a/mint_b, ...): Deposit
        - remove_liquidity(pool_id, lp_amount, ...): Withdraw
        - lock_liquidity(pool_id, lp_amount, ...): Lock LP for a fee NFT
        - harvest_lock(pool_id, lock_receipt_id, ...): Collect locked fees
        """
        if self._lp is None:
            from .modules.liquidity import LiquidityModule
            self._lp = LiquidityModule(self)
        return self._lp

    @property
    def swap(self) -> "SwapModule":
        """
        Swap module

        Provides:
        - swap_exact_in(pool_id, amount_in, input_mint, ...): Sell exact amount
        - swap_exact_out(pool_id, amount_out, output_mint, ...): Buy exact amount
        """
        if self._swap is None:
            from .modules.swap import SwapModule
            self._swap = SwapModule(self)
        return self._swap

    async def close(self):
        """Close client connections and release resources"""
        await self._api.close()
        await self._rpc.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        owner = f"{self.pubkey[:8]}..." if self.pubkey else "read-only"
        return f"CpmmClient(cluster={self._cluster}, endpoint={self._rpc.endpoint}, pubkey={owner})"


# Type hints for modules (resolved at runtime)
if TYPE_CHECKING:
    from .modules.pool_locator import PoolLocator
    from .modules.executor import TransactionExecutor
    from .modules.wallet import WalletModule
    from .modules.liquidity import LiquidityModule
    from .modules.swap import SwapModule
