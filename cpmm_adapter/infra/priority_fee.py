"""
Priority fee estimation from recent prioritization fees
"""

import logging
from typing import Iterable, List

from solders.instruction import Instruction

from .rpc import RpcClient

logger = logging.getLogger(__name__)

# Number of highest recent fees averaged into the estimate
FEE_SAMPLE_SIZE = 100


def writable_accounts(instructions: Iterable[Instruction]) -> List[str]:
    """Distinct writable account keys referenced by instructions, in first-seen order"""
    seen = []
    for ix in instructions:
        for meta in ix.accounts:
            key = str(meta.pubkey)
            if meta.is_writable and key not in seen:
                seen.append(key)
    return seen


class PriorityFeeEstimator:
    """
    Estimates a compute-unit price from fees recently paid to lock the same
    writable accounts.

    Usage:
        estimator = PriorityFeeEstimator(rpc)
        price = await estimator.estimate_fee(writable_accounts(instructions))
    """

    def __init__(self, rpc: RpcClient, sample_size: int = FEE_SAMPLE_SIZE):
        self._rpc = rpc
        self._sample_size = sample_size

    async def estimate_fee(self, accounts: List[str]) -> int:
        """
        Ceiling mean of the highest recent prioritization fees

        Args:
            accounts: Writable accounts the transaction will lock

        Returns:
            Microlamports per compute unit, 0 when there are no samples
        """
        unique = list(dict.fromkeys(accounts))
        samples = await self._rpc.get_recent_prioritization_fees(unique)
        fees = sorted(
            (int(s.get("prioritizationFee", 0)) for s in samples),
            reverse=True,
        )[:self._sample_size]

        if not fees:
            return 0

        estimate = -(-sum(fees) // len(fees))
        logger.debug(f"Priority fee estimate {estimate} from {len(fees)} samples over {len(unique)} accounts")
        return estimate
