"""
Liquidity Module

Pool creation, deposits, withdrawals, LP locking and locked-fee harvesting
on Raydium CPMM pools.
"""

import asyncio
import logging
from decimal import Decimal
from typing import List, Optional, Tuple, TYPE_CHECKING

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .base import Amount, OperationModule
from ..config import config as global_config
from ..cpmm.constants import U64_MAX, programs_for
from ..cpmm.curve import (
    SlippageDirection,
    apply_slippage,
    compute_lp_amount,
    compute_pair_amount,
    lp_to_token_amounts,
)
from ..cpmm.instructions import (
    build_close_wsol_instruction,
    build_collect_fees_instruction,
    build_create_ata_idempotent_instruction,
    build_deposit_instruction,
    build_initialize_instruction,
    build_lock_instruction,
    build_withdraw_instruction,
    build_wrap_sol_instructions,
)
from ..cpmm.layouts import decode_account_data, parse_mint_decimals
from ..cpmm.pda import is_valid_address, sort_mints
from ..errors import ErrorCode, OperationError
from ..types import (
    AddLiquidityResult,
    CreatePoolResult,
    FeeConfig,
    HarvestLockResult,
    LiquidityAmounts,
    LockLiquidityResult,
    NATIVE_SOL_MINT,
    PoolSortBy,
    PoolState,
    RemoveLiquidityResult,
    TokenInfo,
    WSOL_MINT,
)

if TYPE_CHECKING:
    from ..client import CpmmClient

logger = logging.getLogger(__name__)


def compute_liquidity_amounts(
    pool: PoolState,
    base_amount: int,
    base_in: bool,
    slippage_bps: int,
) -> LiquidityAmounts:
    """
    Deposit amounts for a fixed amount of one side

    Args:
        pool: Pool snapshot with live reserves
        base_amount: Raw amount of the authoritative side
        base_in: True if base_amount is token A, False for token B
        slippage_bps: Tolerance applied to the paired side

    Returns:
        LiquidityAmounts with the pair bounded by slippage floor and ceiling
    """
    if base_in:
        base_reserve, quote_reserve = pool.reserve_a, pool.reserve_b
    else:
        base_reserve, quote_reserve = pool.reserve_b, pool.reserve_a

    pair_amount = compute_pair_amount(base_amount, base_reserve, quote_reserve)
    return LiquidityAmounts(
        base_amount=base_amount,
        pair_amount=pair_amount,
        min_pair_amount=apply_slippage(pair_amount, slippage_bps, SlippageDirection.FLOOR),
        max_pair_amount=apply_slippage(pair_amount, slippage_bps, SlippageDirection.CEILING),
        lp_amount=compute_lp_amount(base_amount, base_reserve, pool.lp_supply),
    )


def _wsol_wrap_amount(amount: int) -> int:
    return amount + global_config.solana.wsol_wrap_buffer


def _create_token_accounts(owner: Pubkey, tokens: List[TokenInfo]) -> List[Instruction]:
    return [
        build_create_ata_idempotent_instruction(
            owner, owner, Pubkey.from_string(t.mint), Pubkey.from_string(t.program_id)
        )
        for t in tokens
    ]


class LiquidityModule(OperationModule):
    """
    Liquidity operations module

    Usage:
        result = await client.lp.create_pool(SOL, USDC, Decimal("1"), Decimal("150"))
        result = await client.lp.add_liquidity(Decimal("10"), pool_id=pool_id, slippage_bps=100)
        result = await client.lp.remove_liquidity(pool_id)
        lock = await client.lp.lock_liquidity(pool_id)
        await client.lp.harvest_lock(pool_id, lock.lock_receipt_id)
    """

    def __init__(self, client: "CpmmClient"):
        super().__init__(client)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def _fetch_token_info(self, mint: str) -> TokenInfo:
        """Decimals and token program of a mint, read from chain"""
        account = await self._client.rpc.get_account_info(mint)
        data = decode_account_data(account)
        if data is None:
            raise OperationError(
                f"Mint account {mint} not found",
                ErrorCode.TOKEN_INFO_FETCH_ERROR,
                details={"mint": mint},
            )
        try:
            decimals = parse_mint_decimals(data)
        except ValueError as e:
            raise OperationError(
                f"Account {mint} is not a token mint",
                ErrorCode.TOKEN_INFO_FETCH_ERROR,
                cause=e,
                details={"mint": mint},
            ) from e
        return TokenInfo(mint=mint, decimals=decimals, program_id=account["owner"])

    @staticmethod
    def _select_fee_config(configs: Tuple[FeeConfig, ...], index: int) -> FeeConfig:
        if not 0 <= index < len(configs):
            raise OperationError(
                f"Fee config index {index} out of range (0..{len(configs) - 1})",
                ErrorCode.INVALID_FEE_CONFIG_INDEX,
                details={"fee_config_index": index, "available": len(configs)},
            )
        return configs[index]

    async def create_pool(
        self,
        mint_a: str,
        mint_b: str,
        amount_a: Amount,
        amount_b: Amount,
        start_time: Optional[int] = None,
        fee_config_index: int = 0,
    ) -> CreatePoolResult:
        """
        Create a CPMM pool and seed it with initial liquidity

        Native SOL (the system program address) is accepted for either mint
        and is wrapped into WSOL within the same transaction.

        Args:
            mint_a: First token mint
            mint_b: Second token mint
            amount_a: Initial amount of mint_a (UI units)
            amount_b: Initial amount of mint_b (UI units)
            start_time: Unix time trading opens (None = immediately)
            fee_config_index: Position in the cluster's fee tier list

        Returns:
            CreatePoolResult with mints and amounts in on-chain order
        """
        operation = "create_pool"
        owner = self._require_signer(operation)
        self._validate_mint_pair(mint_a, mint_b, operation)

        wrap_a = mint_a == NATIVE_SOL_MINT
        wrap_b = mint_b == NATIVE_SOL_MINT
        mint_a = WSOL_MINT if wrap_a else mint_a
        mint_b = WSOL_MINT if wrap_b else mint_b
        if mint_a == mint_b:
            raise OperationError.validation(
                ErrorCode.DUPLICATE_MINT_ADDRESSES,
                "Native SOL and WSOL are the same token",
                operation,
                mint=mint_a,
            )

        ui_a = self._positive_decimal(amount_a, ErrorCode.INVALID_AMOUNTS, operation, "amount_a")
        ui_b = self._positive_decimal(amount_b, ErrorCode.INVALID_AMOUNTS, operation, "amount_b")

        if start_time is not None and (not isinstance(start_time, int) or start_time < 0):
            raise OperationError.validation(
                ErrorCode.INVALID_AMOUNTS,
                f"start_time must be a non-negative unix timestamp, got {start_time!r}",
                operation,
            )
        if isinstance(fee_config_index, bool) or not isinstance(fee_config_index, int) or fee_config_index < 0:
            raise OperationError.validation(
                ErrorCode.INVALID_FEE_CONFIG_INDEX,
                f"Fee config index must be a non-negative integer, got {fee_config_index!r}",
                operation,
            )

        async def body() -> CreatePoolResult:
            cluster = self._client.cluster
            programs = programs_for(cluster)

            configs = await self._client.fee_configs.get_fee_configs(cluster)
            fee_config = self._select_fee_config(configs, fee_config_index)

            token_a, token_b = await asyncio.gather(
                self._fetch_token_info(mint_a),
                self._fetch_token_info(mint_b),
            )
            raw_a = self._to_raw(ui_a, token_a, ErrorCode.INVALID_AMOUNTS, operation, "amount_a")
            raw_b = self._to_raw(ui_b, token_b, ErrorCode.INVALID_AMOUNTS, operation, "amount_b")

            _, _, swapped = sort_mints(mint_a, mint_b)
            if swapped:
                token_0, token_1, amount_0, amount_1 = token_b, token_a, raw_b, raw_a
            else:
                token_0, token_1, amount_0, amount_1 = token_a, token_b, raw_a, raw_b

            instructions: List[Instruction] = []
            wsol_amount = 0
            if wrap_a:
                wsol_amount = raw_a
            elif wrap_b:
                wsol_amount = raw_b
            if wsol_amount:
                instructions.extend(build_wrap_sol_instructions(owner, _wsol_wrap_amount(wsol_amount)))

            initialize_ix, keys = build_initialize_instruction(
                program_id=programs.cpmm_program,
                creator=owner,
                fee_config_index=fee_config.index,
                amm_config=fee_config.id,
                token_0=token_0,
                token_1=token_1,
                amount_0=amount_0,
                amount_1=amount_1,
                open_time=start_time or 0,
                create_pool_fee_receiver=programs.create_pool_fee_receiver,
            )
            instructions.append(initialize_ix)
            if wsol_amount:
                instructions.append(build_close_wsol_instruction(owner))

            logger.info(
                f"Creating pool {keys['pool_id']} ({token_0.mint[:8]}.../{token_1.mint[:8]}...) "
                f"with fee tier {fee_config.index} ({fee_config.fee_rate_bps} bps)"
            )
            base = await self._client.executor.execute(instructions, operation, keys["pool_id"])
            return CreatePoolResult.from_result(
                base,
                mint_a=token_0.mint,
                mint_b=token_1.mint,
                amount_a=amount_0,
                amount_b=amount_1,
                fee_config_id=fee_config.id,
                lp_mint=keys["lp_mint"],
                pool_keys=keys,
            )

        return await self._run(operation, body)

    # ------------------------------------------------------------------
    # Deposit / withdraw
    # ------------------------------------------------------------------

    async def add_liquidity(
        self,
        amount: Amount,
        pool_id: Optional[str] = None,
        mint_a: Optional[str] = None,
        mint_b: Optional[str] = None,
        slippage_bps: Optional[int] = None,
        base_in: bool = True,
        auto_select_best_pool: bool = True,
        pool_sort_by: PoolSortBy = PoolSortBy.LIQUIDITY,
    ) -> AddLiquidityResult:
        """
        Deposit into a pool, fixing the amount of one side

        The pool is given directly or searched for by its mint pair.

        Args:
            amount: Amount of the authoritative side (UI units)
            pool_id: Target pool
            mint_a: First mint, searched together with mint_b when pool_id is None
            mint_b: Second mint
            slippage_bps: Tolerance on the paired side (default from config)
            base_in: True if amount is token A of the pool, False for token B
            auto_select_best_pool: Pick the best search result by pool_sort_by
            pool_sort_by: Ranking used for search results

        Returns:
            AddLiquidityResult
        """
        operation = "add_liquidity"
        owner = self._require_signer(operation)
        if slippage_bps is None:
            slippage_bps = global_config.trading.default_lp_slippage_bps
        self._validate_slippage(slippage_bps, operation)
        ui_amount = self._positive_decimal(amount, ErrorCode.INVALID_INPUT_AMOUNT, operation, "amount")
        self._client.pools.check_identifier(pool_id, mint_a, mint_b)
        if not pool_id and mint_a and mint_b:
            self._validate_mint_pair(mint_a, mint_b, operation)

        async def body() -> AddLiquidityResult:
            target_id = await self._client.pools.resolve_pool_id(
                pool_id=pool_id,
                mint_a=mint_a,
                mint_b=mint_b,
                auto_select_best=auto_select_best_pool,
                sort_by=pool_sort_by,
            )
            pool = await self._load_pool(target_id)
            base_token = pool.mint_a if base_in else pool.mint_b
            input_amount = self._to_raw(ui_amount, base_token, ErrorCode.INVALID_INPUT_AMOUNT, operation, "amount")

            amounts = compute_liquidity_amounts(pool, input_amount, base_in, slippage_bps)
            if amounts.lp_amount <= 0:
                raise OperationError.validation(
                    ErrorCode.INVALID_INPUT_AMOUNT,
                    f"Amount {ui_amount} is too small to mint any LP tokens",
                    operation,
                    amount=str(ui_amount),
                )

            if base_in:
                max_a, max_b = amounts.base_amount, amounts.max_pair_amount
            else:
                max_a, max_b = amounts.max_pair_amount, amounts.base_amount

            instructions = _create_token_accounts(owner, [pool.lp_mint])
            wsol_max = max_a if pool.mint_a.is_wsol else max_b if pool.mint_b.is_wsol else 0
            if wsol_max:
                instructions.extend(build_wrap_sol_instructions(owner, _wsol_wrap_amount(wsol_max)))
            instructions.append(build_deposit_instruction(pool, owner, amounts.lp_amount, max_a, max_b))
            if wsol_max:
                instructions.append(build_close_wsol_instruction(owner))

            logger.info(
                f"Depositing into {pool}: {amounts.base_amount} + {amounts.pair_amount} "
                f"(max {amounts.max_pair_amount}) for {amounts.lp_amount} LP"
            )
            base = await self._client.executor.execute(instructions, operation, pool.id)
            return AddLiquidityResult.from_result(
                base,
                base_in=base_in,
                input_amount=amounts.base_amount,
                pair_amount=amounts.pair_amount,
                min_pair_amount=amounts.min_pair_amount,
                max_pair_amount=amounts.max_pair_amount,
                lp_amount=amounts.lp_amount,
                slippage_bps=slippage_bps,
            )

        return await self._run(operation, body)

    async def remove_liquidity(
        self,
        pool_id: Optional[str] = None,
        lp_amount: Optional[int] = None,
        slippage_bps: Optional[int] = None,
        close_wsol: bool = True,
    ) -> RemoveLiquidityResult:
        """
        Burn LP tokens for the proportional share of both reserves

        Args:
            pool_id: Target pool (None = cluster default pool)
            lp_amount: Raw LP amount (None = entire balance)
            slippage_bps: Tolerance on both outputs (default from config)
            close_wsol: Unwrap WSOL proceeds back to SOL

        Returns:
            RemoveLiquidityResult
        """
        operation = "remove_liquidity"
        owner = self._require_signer(operation)
        if slippage_bps is None:
            slippage_bps = global_config.trading.default_lp_slippage_bps
        self._validate_slippage(slippage_bps, operation)
        self._validate_lp_amount(lp_amount, operation)

        async def body() -> RemoveLiquidityResult:
            target_id = await self._client.pools.resolve_pool_id(pool_id=pool_id)
            pool = await self._load_pool(target_id)
            burn_amount = await self._resolve_lp_amount(pool, lp_amount, operation)

            expected_a, expected_b = lp_to_token_amounts(
                burn_amount, pool.reserve_a, pool.reserve_b, pool.lp_supply
            )
            min_a = apply_slippage(expected_a, slippage_bps, SlippageDirection.FLOOR)
            min_b = apply_slippage(expected_b, slippage_bps, SlippageDirection.FLOOR)

            instructions = _create_token_accounts(owner, [pool.mint_a, pool.mint_b])
            instructions.append(build_withdraw_instruction(pool, owner, burn_amount, min_a, min_b))
            if close_wsol and (pool.mint_a.is_wsol or pool.mint_b.is_wsol):
                instructions.append(build_close_wsol_instruction(owner))

            logger.info(f"Withdrawing {burn_amount} LP from {pool}: expecting {expected_a} + {expected_b}")
            base = await self._client.executor.execute(instructions, operation, pool.id)
            return RemoveLiquidityResult.from_result(
                base,
                lp_amount=burn_amount,
                expected_amount_a=expected_a,
                expected_amount_b=expected_b,
                min_amount_a=min_a,
                min_amount_b=min_b,
                slippage_bps=slippage_bps,
            )

        return await self._run(operation, body)

    # ------------------------------------------------------------------
    # Lock / harvest
    # ------------------------------------------------------------------

    async def lock_liquidity(
        self,
        pool_id: Optional[str] = None,
        lp_amount: Optional[int] = None,
        with_metadata: bool = True,
    ) -> LockLiquidityResult:
        """
        Permanently lock LP tokens, keeping the right to their trading fees

        A fee NFT is minted to the owner; its mint address is the lock
        receipt needed by harvest_lock.

        Args:
            pool_id: Target pool (None = cluster default pool)
            lp_amount: Raw LP amount (None = entire balance)
            with_metadata: Create Metaplex metadata for the fee NFT

        Returns:
            LockLiquidityResult with lock_receipt_id
        """
        operation = "lock_liquidity"
        owner = self._require_signer(operation)
        self._validate_lp_amount(lp_amount, operation)

        async def body() -> LockLiquidityResult:
            target_id = await self._client.pools.resolve_pool_id(pool_id=pool_id)
            pool = await self._client.pools.fetch_pool_state(target_id)
            lock_amount = await self._resolve_lp_amount(pool, lp_amount, operation)

            nft_mint = Keypair()
            lock_program = programs_for(self._client.cluster).lock_program
            instruction = build_lock_instruction(
                pool, owner, lock_program, nft_mint.pubkey(), lock_amount, with_metadata
            )

            logger.info(f"Locking {lock_amount} LP of {pool}, receipt {nft_mint.pubkey()}")
            base = await self._client.executor.execute(
                [instruction], operation, pool.id, additional_signers=[nft_mint]
            )
            return LockLiquidityResult.from_result(
                base,
                lp_amount=lock_amount,
                lock_receipt_id=str(nft_mint.pubkey()),
                with_metadata=with_metadata,
            )

        return await self._run(operation, body)

    async def harvest_lock(
        self,
        pool_id: Optional[str],
        lock_receipt_id: str,
        fee_lp_amount: Optional[int] = None,
        close_wsol: bool = False,
    ) -> HarvestLockResult:
        """
        Collect trading fees accrued by a locked position

        Args:
            pool_id: Pool of the locked position (None = cluster default pool)
            lock_receipt_id: Fee NFT mint returned by lock_liquidity
            fee_lp_amount: Raw LP-denominated fee amount (None = everything accrued)
            close_wsol: Unwrap WSOL proceeds back to SOL

        Returns:
            HarvestLockResult
        """
        operation = "harvest_lock"
        owner = self._require_signer(operation)
        if not lock_receipt_id or not is_valid_address(lock_receipt_id):
            raise OperationError.validation(
                ErrorCode.MISSING_LOCK_RECEIPT,
                f"A valid lock receipt id is required, got {lock_receipt_id!r}",
                operation,
            )
        if fee_lp_amount is None:
            fee_lp_amount = U64_MAX
        elif isinstance(fee_lp_amount, bool) or not isinstance(fee_lp_amount, int) or fee_lp_amount <= 0:
            raise OperationError.validation(
                ErrorCode.INVALID_LP_FEE_AMOUNT,
                f"Fee LP amount must be a positive integer, got {fee_lp_amount!r}",
                operation,
            )

        async def body() -> HarvestLockResult:
            target_id = await self._client.pools.resolve_pool_id(pool_id=pool_id)
            pool = await self._client.pools.fetch_pool_state(target_id)
            lock_program = programs_for(self._client.cluster).lock_program

            instructions = _create_token_accounts(owner, [pool.mint_a, pool.mint_b])
            instructions.append(
                build_collect_fees_instruction(pool, owner, lock_program, lock_receipt_id, fee_lp_amount)
            )
            if close_wsol and (pool.mint_a.is_wsol or pool.mint_b.is_wsol):
                instructions.append(build_close_wsol_instruction(owner))

            base = await self._client.executor.execute(instructions, operation, pool.id)
            return HarvestLockResult.from_result(
                base,
                lock_receipt_id=lock_receipt_id,
                lp_fee_amount=fee_lp_amount,
            )

        return await self._run(operation, body)
