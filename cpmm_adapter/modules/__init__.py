"""
Functional modules for CpmmClient

Provides high-level operations:
- PoolLocator: Pool resolution, search and state loading
- FeeConfigCache: Per-cluster fee tier cache
- TransactionExecutor: Submits operation transactions
- WalletModule: Token and LP balances
- LiquidityModule: Create, deposit, withdraw, lock, harvest
- SwapModule: Exact-in and exact-out swaps
"""

from .config_cache import FeeConfigCache
from .pool_locator import PoolLocator
from .executor import TransactionExecutor
from .wallet import WalletModule, TokenBalance
from .liquidity import LiquidityModule, compute_liquidity_amounts
from .swap import SwapModule

__all__ = [
    "FeeConfigCache",
    "PoolLocator",
    "TransactionExecutor",
    "WalletModule",
    "TokenBalance",
    "LiquidityModule",
    "compute_liquidity_amounts",
    "SwapModule",
]
