"""
Type definitions for CPMM Adapter
"""

from .common import (
    Cluster,
    TokenInfo,
    NATIVE_SOL_MINT,
    WSOL_MINT,
    TOKEN_PROGRAM,
    TOKEN_2022_PROGRAM,
    to_decimal,
)
from .pool import PoolState, FeeConfig, PoolSortBy, SwapComputation, LiquidityAmounts
from .result import (
    TxResult,
    TxStatus,
    OperationResult,
    CreatePoolResult,
    AddLiquidityResult,
    RemoveLiquidityResult,
    SwapResult,
    LockLiquidityResult,
    HarvestLockResult,
    explorer_url,
)

__all__ = [
    "Cluster",
    "TokenInfo",
    "NATIVE_SOL_MINT",
    "WSOL_MINT",
    "TOKEN_PROGRAM",
    "TOKEN_2022_PROGRAM",
    "to_decimal",
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
    "explorer_url",
]
