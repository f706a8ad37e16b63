"""
Result type definitions for transactions and operations
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from ..errors import ConfigurationError
from .common import Cluster


class TxStatus(Enum):
    """Transaction status"""
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    PENDING = "pending"


@dataclass
class TxResult:
    """
    Transaction execution result

    Attributes:
        status: Transaction status
        signature: Transaction signature (base58)
        error: Error message if failed
        recoverable: Whether the outcome can still be checked on-chain
        fee_lamports: Transaction fee in lamports
        slot: Slot number when confirmed
        logs: Transaction logs
    """
    status: TxStatus
    signature: Optional[str] = None
    error: Optional[str] = None
    recoverable: bool = False
    fee_lamports: Optional[int] = None
    slot: Optional[int] = None
    logs: List[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status == TxStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status == TxStatus.FAILED

    @property
    def is_timeout(self) -> bool:
        return self.status == TxStatus.TIMEOUT

    @classmethod
    def success(cls, signature: str, fee_lamports: int = 0, **kwargs) -> "TxResult":
        return cls(status=TxStatus.SUCCESS, signature=signature, fee_lamports=fee_lamports, **kwargs)

    @classmethod
    def failed(cls, error: str, signature: str = None, **kwargs) -> "TxResult":
        return cls(status=TxStatus.FAILED, signature=signature, error=error, **kwargs)

    @classmethod
    def timeout(cls, signature: str = None, **kwargs) -> "TxResult":
        """Create timeout result (outcome unknown, can check on-chain status)"""
        return cls(
            status=TxStatus.TIMEOUT,
            signature=signature,
            error="Transaction confirmation timeout",
            recoverable=True,
            **kwargs
        )

    def __str__(self) -> str:
        if self.is_success:
            sig_display = f"{self.signature[:16]}..." if self.signature else "no signature"
            return f"TxResult(SUCCESS, {sig_display})"
        return f"TxResult({self.status.value}, error={self.error})"


# Query suffix appended to explorer links, per cluster
_EXPLORER_CLUSTER_PARAM: Dict[Cluster, Optional[str]] = {
    Cluster.MAINNET: None,
    Cluster.DEVNET: "devnet",
}


def explorer_url(tx_id: str, cluster: Cluster, base_url: str = "https://explorer.solana.com") -> str:
    """Build the block-explorer link for a transaction"""
    if cluster not in _EXPLORER_CLUSTER_PARAM:
        raise ConfigurationError.unsupported_cluster(cluster, "explorer")
    url = f"{base_url.rstrip('/')}/tx/{tx_id}"
    param = _EXPLORER_CLUSTER_PARAM[cluster]
    if param:
        url += f"?cluster={param}"
    return url


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a confirmed pool operation

    Attributes:
        tx_id: Transaction signature
        pool_id: Pool the operation acted on
        timestamp: UTC time the confirmation was observed
        cluster: Cluster the transaction landed on
        explorer_url: Link to the transaction in the block explorer
    """
    tx_id: str
    pool_id: str
    timestamp: datetime
    cluster: Cluster
    explorer_url: str

    @classmethod
    def confirmed(cls, tx_id: str, pool_id: str, cluster: Cluster, explorer_base_url: str) -> "OperationResult":
        return cls(
            tx_id=tx_id,
            pool_id=pool_id,
            timestamp=datetime.now(timezone.utc),
            cluster=cluster,
            explorer_url=explorer_url(tx_id, cluster, explorer_base_url),
        )

    @classmethod
    def from_result(cls, result: "OperationResult", **fields) -> "OperationResult":
        """Extend a base result with operation-specific fields"""
        return cls(
            tx_id=result.tx_id,
            pool_id=result.pool_id,
            timestamp=result.timestamp,
            cluster=result.cluster,
            explorer_url=result.explorer_url,
            **fields
        )


@dataclass(frozen=True)
class CreatePoolResult(OperationResult):
    mint_a: str
    mint_b: str
    amount_a: int
    amount_b: int
    fee_config_id: str
    lp_mint: str
    pool_keys: Dict[str, str]


@dataclass(frozen=True)
class AddLiquidityResult(OperationResult):
    base_in: bool
    input_amount: int
    pair_amount: int
    min_pair_amount: int
    max_pair_amount: int
    lp_amount: int
    slippage_bps: int


@dataclass(frozen=True)
class RemoveLiquidityResult(OperationResult):
    lp_amount: int
    expected_amount_a: int
    expected_amount_b: int
    min_amount_a: int
    min_amount_b: int
    slippage_bps: int


@dataclass(frozen=True)
class SwapResult(OperationResult):
    input_mint: str
    output_mint: str
    input_amount: int
    output_amount: int
    trade_fee: int
    # min output for exact-in, max input for exact-out
    amount_limit: int
    slippage_bps: int


@dataclass(frozen=True)
class LockLiquidityResult(OperationResult):
    lp_amount: int
    lock_receipt_id: str
    with_metadata: bool


@dataclass(frozen=True)
class HarvestLockResult(OperationResult):
    lock_receipt_id: str
    lp_fee_amount: int
