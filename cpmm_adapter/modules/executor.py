"""
Transaction Executor

Submits an operation's instructions through the TxBuilder and turns the
outcome into an OperationResult or an OperationError.
"""

import logging
from typing import List, Optional, TYPE_CHECKING

from solders.instruction import Instruction
from solders.keypair import Keypair

from ..errors import ErrorCode, OperationError
from ..types import OperationResult

if TYPE_CHECKING:
    from ..client import CpmmClient

logger = logging.getLogger(__name__)


class TransactionExecutor:
    """
    Runs prepared instructions as one signed transaction

    Usage:
        result = await client.executor.execute(ixs, "swap_exact_in", pool.id)
        print(result.explorer_url)
    """

    def __init__(self, client: "CpmmClient"):
        self._client = client

    async def execute(
        self,
        instructions: List[Instruction],
        operation: str,
        pool_id: str,
        additional_signers: Optional[List[Keypair]] = None,
    ) -> OperationResult:
        """
        Build, sign, send and confirm

        Args:
            instructions: Operation instructions (compute budget is added here)
            operation: Operation name for errors and logs
            pool_id: Pool the operation targets
            additional_signers: Keypairs that must co-sign (e.g. a fresh NFT mint)

        Returns:
            OperationResult for the confirmed transaction

        Raises:
            OperationError: TRANSACTION_EXECUTION_FAILED if the transaction
                could not be submitted or failed on-chain,
                TRANSACTION_CONFIRMATION_TIMEOUT if confirmation never arrived
        """
        try:
            tx_result = await self._client.tx_builder.build_and_send(
                instructions,
                additional_signers=additional_signers,
            )
        except OperationError as e:
            raise OperationError(
                f"{operation} transaction failed: {e.message}",
                ErrorCode.TRANSACTION_EXECUTION_FAILED,
                operation=operation,
                cause=e,
                recoverable=e.recoverable,
                details={"pool_id": pool_id},
            ) from e
        except Exception as e:
            raise OperationError(
                f"{operation} transaction failed: {e}",
                ErrorCode.TRANSACTION_EXECUTION_FAILED,
                operation=operation,
                cause=e,
                details={"pool_id": pool_id},
            ) from e

        if tx_result.is_timeout:
            logger.warning(f"{operation}: confirmation timed out for {tx_result.signature}")
            raise OperationError(
                f"{operation} transaction {tx_result.signature} was not confirmed in time",
                ErrorCode.TRANSACTION_CONFIRMATION_TIMEOUT,
                operation=operation,
                recoverable=True,
                details={"pool_id": pool_id, "signature": tx_result.signature},
            )

        if not tx_result.is_success:
            raise OperationError(
                f"{operation} transaction failed: {tx_result.error}",
                ErrorCode.TRANSACTION_EXECUTION_FAILED,
                operation=operation,
                details={"pool_id": pool_id, "signature": tx_result.signature},
            )

        logger.info(f"{operation} confirmed: {tx_result.signature}")
        return OperationResult.confirmed(
            tx_id=tx_result.signature,
            pool_id=pool_id,
            cluster=self._client.cluster,
            explorer_base_url=self._client.explorer_base_url,
        )
