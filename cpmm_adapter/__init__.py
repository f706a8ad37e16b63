"""
CPMM Adapter - Client engine for Raydium constant-product pools on Solana

Provides:
- Pool resolution through the Raydium index (mainnet) or on-chain scans (devnet)
- Integer constant-product curve math with slippage bounds
- Pool creation, deposits, withdrawals, LP locking and fee harvesting
- Exact-in and exact-out swaps
- RPC health checks with exponential-backoff reconnects
"""

from .client import CpmmClient
from .types import (
    Cluster,
    TokenInfo,
    PoolState,
    FeeConfig,
    PoolSortBy,
    SwapComputation,
    LiquidityAmounts,
    TxResult,
    TxStatus,
    OperationResult,
    CreatePoolResult,
    AddLiquidityResult,
    RemoveLiquidityResult,
    SwapResult,
    LockLiquidityResult,
    HarvestLockResult,
    NATIVE_SOL_MINT,
    WSOL_MINT,
)
from .errors import (
    ErrorCode,
    OperationError,
    RpcError,
    CurveError,
    ConfigurationError,
)
from .cpmm import (
    SlippageDirection,
    apply_slippage,
    compute_pair_amount,
    swap_exact_in,
    swap_exact_out,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "CpmmClient",
    # Types
    "Cluster",
    "TokenInfo",
    "PoolState",
    "FeeConfig",
    "PoolSortBy",
    "SwapComputation",
    "LiquidityAmounts",
    "TxResult",
    "TxStatus",
    "OperationResult",
    "CreatePoolResult",
    "AddLiquidityResult",
    "RemoveLiquidityResult",
    "SwapResult",
    "LockLiquidityResult",
    "HarvestLockResult",
    "NATIVE_SOL_MINT",
    "WSOL_MINT",
    # Errors
    "ErrorCode",
    "OperationError",
    "RpcError",
    "CurveError",
    "ConfigurationError",
    # Curve
    "SlippageDirection",
    "apply_slippage",
    "compute_pair_amount",
    "swap_exact_in",
    "swap_exact_out",
]
