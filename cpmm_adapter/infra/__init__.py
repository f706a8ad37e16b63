"""
Infrastructure layer for CPMM Adapter

Provides:
- RpcClient: async JSON-RPC wrapper with endpoint fallback
- Signer: Transaction signing abstraction (local keypair)
- TxBuilder: Transaction assembly, signing and sending
- PriorityFeeEstimator: compute-unit price from recent fees
- ConnectionManager: health checks and reconnect with backoff
- TaskBatch: bounded-concurrency batch execution
- CorrelationContext: correlation IDs for log tracing
"""

from .rpc import RpcClient, RpcClientConfig
from .signer import (
    Signer,
    LocalSigner,
    create_signer,
)
from .priority_fee import PriorityFeeEstimator, writable_accounts
from .tx_builder import TxBuilder, TxBuilderConfig
from .connection import ConnectionManager, ConnectionState, ConnectionStatus
from .batch import TaskBatch, BatchResult
from .correlation import CorrelationContext, get_correlation_id, log_operation

__all__ = [
    "RpcClient",
    "RpcClientConfig",
    "Signer",
    "LocalSigner",
    "create_signer",
    "PriorityFeeEstimator",
    "writable_accounts",
    "TxBuilder",
    "TxBuilderConfig",
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "TaskBatch",
    "BatchResult",
    "CorrelationContext",
    "get_correlation_id",
    "log_operation",
]
