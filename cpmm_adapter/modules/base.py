"""
Operation Module Base

Shared validation and error wrapping for the pool operations. Validation
helpers raise OperationError before any network access.
"""

import logging
from decimal import Decimal
from typing import Awaitable, Callable, Optional, TypeVar, Union, TYPE_CHECKING

from solders.pubkey import Pubkey

from ..cpmm.pda import is_valid_address
from ..errors import ErrorCode, OperationError
from ..infra.correlation import CorrelationContext, log_operation
from ..types import PoolState, TokenInfo, to_decimal

if TYPE_CHECKING:
    from ..client import CpmmClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

Amount = Union[Decimal, float, int, str]

MIN_SLIPPAGE_BPS = 1
MAX_SLIPPAGE_BPS = 10_000


class OperationModule:
    """Base for modules that submit pool transactions"""

    def __init__(self, client: "CpmmClient"):
        self._client = client

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _require_signer(self, operation: str) -> Pubkey:
        if self._client.signer is None:
            raise OperationError.validation(
                ErrorCode.MISSING_SIGNER,
                "A signer is required for this operation",
                operation,
            )
        return Pubkey.from_string(self._client.pubkey)

    @staticmethod
    def _validate_slippage(slippage_bps: int, operation: str) -> int:
        if (
            isinstance(slippage_bps, bool)
            or not isinstance(slippage_bps, int)
            or not MIN_SLIPPAGE_BPS <= slippage_bps <= MAX_SLIPPAGE_BPS
        ):
            raise OperationError.validation(
                ErrorCode.INVALID_SLIPPAGE_RANGE,
                f"Slippage must be an integer between {MIN_SLIPPAGE_BPS} and {MAX_SLIPPAGE_BPS} bps, got {slippage_bps}",
                operation,
                slippage_bps=slippage_bps,
            )
        return slippage_bps

    @staticmethod
    def _validate_mint_pair(mint_a: str, mint_b: str, operation: str):
        if not is_valid_address(mint_a) or not is_valid_address(mint_b):
            raise OperationError.validation(
                ErrorCode.INVALID_MINT_ADDRESSES,
                f"Invalid mint addresses: {mint_a!r}, {mint_b!r}",
                operation,
                mint_a=mint_a,
                mint_b=mint_b,
            )
        if mint_a == mint_b:
            raise OperationError.validation(
                ErrorCode.DUPLICATE_MINT_ADDRESSES,
                f"Mints must differ, got {mint_a} twice",
                operation,
                mint=mint_a,
            )

    @staticmethod
    def _positive_decimal(amount: Amount, code: ErrorCode, operation: str, name: str) -> Decimal:
        value = to_decimal(amount)
        if value is None or value <= 0:
            raise OperationError.validation(
                code,
                f"{name} must be a positive number, got {amount!r}",
                operation,
                **{name: str(amount)}
            )
        return value

    @staticmethod
    def _to_raw(value: Decimal, token: TokenInfo, code: ErrorCode, operation: str, name: str) -> int:
        """Convert a validated UI amount to raw units; amounts below one unit are rejected"""
        raw = token.raw_amount(value)
        if raw <= 0:
            raise OperationError.validation(
                code,
                f"{name} {value} is below the smallest unit of {token.mint}",
                operation,
                **{name: str(value)}
            )
        return raw

    @staticmethod
    def _validate_lp_amount(lp_amount: Optional[int], operation: str) -> Optional[int]:
        if lp_amount is None:
            return None
        if isinstance(lp_amount, bool) or not isinstance(lp_amount, int) or lp_amount <= 0:
            raise OperationError.validation(
                ErrorCode.INVALID_LP_AMOUNT,
                f"LP amount must be a positive integer, got {lp_amount!r}",
                operation,
                lp_amount=lp_amount,
            )
        return lp_amount

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    async def _load_pool(self, pool_id: str) -> PoolState:
        """Live snapshot of the pool for one operation"""
        pool = await self._client.pools.fetch_pool_state(pool_id, include_live_reserves=True)
        if not pool.has_live_reserves:
            raise OperationError(
                f"Pool {pool_id} has no live reserves",
                ErrorCode.MISSING_RPC_DATA,
                details={"pool_id": pool_id},
            )
        return pool

    async def _resolve_lp_amount(self, pool: PoolState, lp_amount: Optional[int], operation: str) -> int:
        """
        Requested LP amount checked against the wallet balance

        None means the whole balance.
        """
        balance = await self._client.wallet.lp_balance(pool.lp_mint.mint)
        if balance <= 0:
            raise OperationError(
                f"No LP tokens held for pool {pool.id}",
                ErrorCode.NO_LP_BALANCE,
                operation=operation,
                details={"pool_id": pool.id, "lp_mint": pool.lp_mint.mint},
            )
        if lp_amount is None:
            return balance
        if lp_amount > balance:
            raise OperationError(
                f"LP amount {lp_amount} exceeds balance {balance}",
                ErrorCode.INSUFFICIENT_LP_BALANCE,
                operation=operation,
                details={"pool_id": pool.id, "lp_amount": lp_amount, "balance": balance},
            )
        return lp_amount

    async def _run(self, operation: str, body: Callable[[], Awaitable[T]]) -> T:
        """
        Run an operation inside a correlation scope

        OperationErrors get the operation name attached; anything else is
        wrapped as OPERATION_FAILED.
        """
        with CorrelationContext(operation):
            log_operation(logging.INFO, "Starting", operation)
            try:
                result = await body()
            except OperationError as e:
                if e.operation is None:
                    e.operation = operation
                log_operation(logging.ERROR, f"Failed: {e}", operation)
                raise
            except Exception as e:
                log_operation(logging.ERROR, f"Unexpected error: {e}", operation)
                raise OperationError.wrap(operation, e) from e
            log_operation(logging.INFO, "Completed", operation)
            return result
