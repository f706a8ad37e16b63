"""
Swap Module

Exact-input and exact-output swaps against a single CPMM pool.
"""

import logging
from typing import List, Optional, TYPE_CHECKING

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from .base import Amount, OperationModule
from ..config import config as global_config
from ..cpmm.curve import SlippageDirection, apply_slippage, swap_exact_in, swap_exact_out
from ..cpmm.instructions import (
    build_close_wsol_instruction,
    build_create_ata_idempotent_instruction,
    build_swap_base_input_instruction,
    build_swap_base_output_instruction,
    build_wrap_sol_instructions,
)
from ..cpmm.pda import is_valid_address
from ..errors import ErrorCode, OperationError
from ..types import PoolState, SwapResult, TokenInfo

if TYPE_CHECKING:
    from ..client import CpmmClient

logger = logging.getLogger(__name__)


def _swap_instructions(
    owner: Pubkey,
    pool: PoolState,
    input_token: TokenInfo,
    output_token: TokenInfo,
    max_input: int,
    swap_ix: Instruction,
) -> List[Instruction]:
    """Wrap SOL for a WSOL input, make sure the output account exists, unwrap afterwards"""
    instructions: List[Instruction] = []
    if input_token.is_wsol:
        instructions.extend(
            build_wrap_sol_instructions(owner, max_input + global_config.solana.wsol_wrap_buffer)
        )
    instructions.append(build_create_ata_idempotent_instruction(
        owner, owner, Pubkey.from_string(output_token.mint), Pubkey.from_string(output_token.program_id)
    ))
    instructions.append(swap_ix)
    if input_token.is_wsol or output_token.is_wsol:
        instructions.append(build_close_wsol_instruction(owner))
    return instructions


class SwapModule(OperationModule):
    """
    Swap operations module

    Usage:
        # Sell exactly 1 SOL
        result = await client.swap.swap_exact_in(pool_id, Decimal("1"), WSOL_MINT, slippage_bps=50)

        # Buy exactly 100 USDC
        result = await client.swap.swap_exact_out(pool_id, Decimal("100"), USDC, slippage_bps=50)
    """

    def __init__(self, client: "CpmmClient"):
        super().__init__(client)

    def _validate_request(
        self,
        operation: str,
        amount: Amount,
        mint: str,
        mint_code: ErrorCode,
        slippage_bps: Optional[int],
    ):
        owner = self._require_signer(operation)
        if slippage_bps is None:
            slippage_bps = global_config.trading.default_slippage_bps
        self._validate_slippage(slippage_bps, operation)
        ui_amount = self._positive_decimal(amount, ErrorCode.INVALID_INPUT_AMOUNT, operation, "amount")
        if not is_valid_address(mint):
            raise OperationError.validation(mint_code, f"Invalid mint address {mint!r}", operation, mint=mint)
        return owner, ui_amount, slippage_bps

    @staticmethod
    def _check_pool_mint(pool: PoolState, mint: str, code: ErrorCode, operation: str):
        if not pool.contains_mint(mint):
            raise OperationError.validation(
                code,
                f"Mint {mint} is not traded by pool {pool.id}",
                operation,
                mint=mint,
                pool_id=pool.id,
            )

    async def swap_exact_in(
        self,
        pool_id: Optional[str],
        amount_in: Amount,
        input_mint: str,
        slippage_bps: Optional[int] = None,
        base_in: Optional[bool] = None,
    ) -> SwapResult:
        """
        Sell an exact amount of input_mint

        Args:
            pool_id: Target pool (None = cluster default pool)
            amount_in: Amount to sell (UI units)
            input_mint: Mint being sold
            slippage_bps: Tolerance on the output (default from config)
            base_in: Force direction (True = sell token A); inferred from input_mint when None

        Returns:
            SwapResult with amount_limit = minimum output
        """
        operation = "swap_exact_in"
        owner, ui_amount, slippage_bps = self._validate_request(
            operation, amount_in, input_mint, ErrorCode.INVALID_INPUT_MINT, slippage_bps
        )

        async def body() -> SwapResult:
            target_id = await self._client.pools.resolve_pool_id(pool_id=pool_id)
            pool = await self._load_pool(target_id)
            self._check_pool_mint(pool, input_mint, ErrorCode.INVALID_INPUT_MINT, operation)

            sell_a = base_in if base_in is not None else input_mint == pool.mint_a.mint
            if sell_a:
                input_token, output_token = pool.mint_a, pool.mint_b
                source_reserve, destination_reserve = pool.reserve_a, pool.reserve_b
            else:
                input_token, output_token = pool.mint_b, pool.mint_a
                source_reserve, destination_reserve = pool.reserve_b, pool.reserve_a
            if input_token.mint != input_mint:
                logger.warning(f"base_in={base_in} overrides input mint {input_mint}; selling {input_token.mint}")

            amount = self._to_raw(ui_amount, input_token, ErrorCode.INVALID_INPUT_AMOUNT, operation, "amount")
            quote = swap_exact_in(amount, source_reserve, destination_reserve, pool.fee_rate_bps)
            minimum_out = apply_slippage(quote.output_amount, slippage_bps, SlippageDirection.FLOOR)

            swap_ix = build_swap_base_input_instruction(pool, owner, input_token.mint, amount, minimum_out)
            instructions = _swap_instructions(owner, pool, input_token, output_token, amount, swap_ix)

            logger.info(
                f"Swapping {amount} {input_token.mint[:8]}... for ~{quote.output_amount} "
                f"{output_token.mint[:8]}... (min {minimum_out}, fee {quote.trade_fee}) in {pool}"
            )
            base = await self._client.executor.execute(instructions, operation, pool.id)
            return SwapResult.from_result(
                base,
                input_mint=input_token.mint,
                output_mint=output_token.mint,
                input_amount=quote.input_amount,
                output_amount=quote.output_amount,
                trade_fee=quote.trade_fee,
                amount_limit=minimum_out,
                slippage_bps=slippage_bps,
            )

        return await self._run(operation, body)

    async def swap_exact_out(
        self,
        pool_id: Optional[str],
        amount_out: Amount,
        output_mint: str,
        slippage_bps: Optional[int] = None,
        base_in: Optional[bool] = None,
    ) -> SwapResult:
        """
        Buy an exact amount of output_mint

        Args:
            pool_id: Target pool (None = cluster default pool)
            amount_out: Amount to receive (UI units)
            output_mint: Mint being bought
            slippage_bps: Tolerance on the input (default from config)
            base_in: Force direction (True = pay with token A); inferred from output_mint when None

        Returns:
            SwapResult with amount_limit = maximum input
        """
        operation = "swap_exact_out"
        owner, ui_amount, slippage_bps = self._validate_request(
            operation, amount_out, output_mint, ErrorCode.INVALID_OUTPUT_MINT, slippage_bps
        )

        async def body() -> SwapResult:
            target_id = await self._client.pools.resolve_pool_id(pool_id=pool_id)
            pool = await self._load_pool(target_id)
            self._check_pool_mint(pool, output_mint, ErrorCode.INVALID_OUTPUT_MINT, operation)

            pay_with_a = base_in if base_in is not None else output_mint == pool.mint_b.mint
            if pay_with_a:
                input_token, output_token = pool.mint_a, pool.mint_b
                source_reserve, destination_reserve = pool.reserve_a, pool.reserve_b
            else:
                input_token, output_token = pool.mint_b, pool.mint_a
                source_reserve, destination_reserve = pool.reserve_b, pool.reserve_a
            if output_token.mint != output_mint:
                logger.warning(f"base_in={base_in} overrides output mint {output_mint}; buying {output_token.mint}")

            amount = self._to_raw(ui_amount, output_token, ErrorCode.INVALID_INPUT_AMOUNT, operation, "amount")
            quote = swap_exact_out(amount, source_reserve, destination_reserve, pool.fee_rate_bps)
            maximum_in = apply_slippage(quote.input_amount, slippage_bps, SlippageDirection.CEILING)

            swap_ix = build_swap_base_output_instruction(pool, owner, input_token.mint, maximum_in, amount)
            instructions = _swap_instructions(owner, pool, input_token, output_token, maximum_in, swap_ix)

            logger.info(
                f"Buying {amount} {output_token.mint[:8]}... for ~{quote.input_amount} "
                f"{input_token.mint[:8]}... (max {maximum_in}, fee {quote.trade_fee}) in {pool}"
            )
            base = await self._client.executor.execute(instructions, operation, pool.id)
            return SwapResult.from_result(
                base,
                input_mint=input_token.mint,
                output_mint=output_token.mint,
                input_amount=quote.input_amount,
                output_amount=quote.output_amount,
                trade_fee=quote.trade_fee,
                amount_limit=maximum_in,
                slippage_bps=slippage_bps,
            )

        return await self._run(operation, body)
