"""
Raydium CPMM Instruction Builders

Encodes program instructions for pool creation, deposit, withdraw, both
swap directions, LP locking and locked-fee collection, plus the SOL
wrap/unwrap and ATA helpers they depend on.
"""

import struct
from typing import Dict, List, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from ..types import PoolState, TokenInfo
from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    DISCRIMINATORS,
    MEMO_PROGRAM_ID,
    METADATA_PROGRAM_ID,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    WRAPPED_SOL_MINT,
)
from .pda import (
    derive_authority,
    derive_locked_liquidity,
    derive_lock_authority,
    derive_lp_mint,
    derive_metadata,
    derive_observation,
    derive_pool_state,
    derive_vault,
    get_associated_token_address,
)


def _pk(value) -> Pubkey:
    return value if isinstance(value, Pubkey) else Pubkey.from_string(str(value))


def _ro(pubkey) -> AccountMeta:
    return AccountMeta(_pk(pubkey), is_signer=False, is_writable=False)


def _rw(pubkey) -> AccountMeta:
    return AccountMeta(_pk(pubkey), is_signer=False, is_writable=True)


def _user_ata(owner: Pubkey, token: TokenInfo) -> Pubkey:
    return get_associated_token_address(owner, _pk(token.mint), _pk(token.program_id))


def build_create_ata_idempotent_instruction(
    payer: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey = None,
) -> Instruction:
    """
    Build create_associated_token_account_idempotent instruction.

    This creates the ATA if it doesn't exist, or does nothing if it does.
    """
    if token_program is None:
        token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)

    ata_address = get_associated_token_address(owner, mint, token_program)

    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(ata_address, is_signer=False, is_writable=True),
        _ro(owner),
        _ro(mint),
        _ro(SYSTEM_PROGRAM_ID),
        _ro(token_program),
    ]

    # Instruction data: single byte 1 for idempotent create
    return Instruction(Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID), bytes([1]), accounts)


def build_transfer_instruction(source: Pubkey, destination: Pubkey, lamports: int) -> Instruction:
    """System program transfer (instruction index 2, u64 lamports)"""
    accounts = [
        AccountMeta(source, is_signer=True, is_writable=True),
        AccountMeta(destination, is_signer=False, is_writable=True),
    ]
    data = struct.pack("<I", 2) + struct.pack("<Q", lamports)
    return Instruction(Pubkey.from_string(SYSTEM_PROGRAM_ID), data, accounts)


def build_wrap_sol_instructions(owner: Pubkey, amount_lamports: int) -> List[Instruction]:
    """
    Build instructions to wrap SOL to WSOL.

    Creates the WSOL ATA if needed, transfers lamports into it and syncs
    the native balance.
    """
    wsol_mint = Pubkey.from_string(WRAPPED_SOL_MINT)
    token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)
    wsol_ata = get_associated_token_address(owner, wsol_mint, token_program)

    return [
        build_create_ata_idempotent_instruction(owner, owner, wsol_mint, token_program),
        build_transfer_instruction(owner, wsol_ata, amount_lamports),
        # SyncNative (token instruction 17)
        Instruction(token_program, bytes([17]), [_rw(wsol_ata)]),
    ]


def build_close_wsol_instruction(owner: Pubkey) -> Instruction:
    """Close the owner's WSOL ATA, returning its lamports as SOL (token instruction 9)"""
    token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)
    wsol_ata = get_associated_token_address(owner, Pubkey.from_string(WRAPPED_SOL_MINT), token_program)
    accounts = [
        _rw(wsol_ata),
        _rw(owner),
        AccountMeta(owner, is_signer=True, is_writable=False),
    ]
    return Instruction(token_program, bytes([9]), accounts)


def build_initialize_instruction(
    program_id: str,
    creator: Pubkey,
    fee_config_index: int,
    amm_config: str,
    token_0: TokenInfo,
    token_1: TokenInfo,
    amount_0: int,
    amount_1: int,
    open_time: int,
    create_pool_fee_receiver: str,
) -> Tuple[Instruction, Dict[str, str]]:
    """
    Build the pool initialize instruction.

    token_0 and token_1 must already be in program order (see sort_mints).

    Args:
        program_id: CPMM program for the cluster
        creator: Pool creator and payer
        fee_config_index: Fee tier index, echoed in the returned keys
        amm_config: Fee tier account address
        token_0: Lower-ordered mint
        token_1: Higher-ordered mint
        amount_0: Initial token_0 deposit (raw)
        amount_1: Initial token_1 deposit (raw)
        open_time: Unix time trading opens (0 = immediately)
        create_pool_fee_receiver: Account receiving the creation fee

    Returns:
        Tuple of (instruction, derived pool keys)
    """
    program = _pk(program_id)
    mint_0 = _pk(token_0.mint)
    mint_1 = _pk(token_1.mint)

    authority = derive_authority(program)
    pool_state = derive_pool_state(program, amm_config, mint_0, mint_1)
    lp_mint = derive_lp_mint(program, pool_state)
    vault_0 = derive_vault(program, pool_state, mint_0)
    vault_1 = derive_vault(program, pool_state, mint_1)
    observation = derive_observation(program, pool_state)
    token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)

    creator_token_0 = _user_ata(creator, token_0)
    creator_token_1 = _user_ata(creator, token_1)
    creator_lp = get_associated_token_address(creator, lp_mint, token_program)

    accounts = [
        AccountMeta(creator, is_signer=True, is_writable=True),
        _ro(amm_config),
        _ro(authority),
        _rw(pool_state),
        _ro(mint_0),
        _ro(mint_1),
        _rw(lp_mint),
        _rw(creator_token_0),
        _rw(creator_token_1),
        _rw(creator_lp),
        _rw(vault_0),
        _rw(vault_1),
        _rw(create_pool_fee_receiver),
        _rw(observation),
        _ro(token_program),
        _ro(token_0.program_id),
        _ro(token_1.program_id),
        _ro(ASSOCIATED_TOKEN_PROGRAM_ID),
        _ro(SYSTEM_PROGRAM_ID),
        _ro(RENT_SYSVAR_ID),
    ]

    data = DISCRIMINATORS["initialize"] + struct.pack("<QQQ", amount_0, amount_1, open_time)

    keys = {
        "pool_id": str(pool_state),
        "amm_config": str(amm_config),
        "fee_config_index": str(fee_config_index),
        "authority": str(authority),
        "lp_mint": str(lp_mint),
        "vault_a": str(vault_0),
        "vault_b": str(vault_1),
        "observation": str(observation),
        "mint_a": str(mint_0),
        "mint_b": str(mint_1),
    }
    return Instruction(program, data, accounts), keys


def build_deposit_instruction(
    pool: PoolState,
    owner: Pubkey,
    lp_amount: int,
    maximum_amount_0: int,
    maximum_amount_1: int,
) -> Instruction:
    """Build deposit instruction (mint lp_amount, pay at most the given token amounts)"""
    program = _pk(pool.program_id)
    lp_ata = get_associated_token_address(owner, _pk(pool.lp_mint.mint), _pk(pool.lp_mint.program_id))

    accounts = [
        AccountMeta(owner, is_signer=True, is_writable=False),
        _ro(derive_authority(program)),
        _rw(pool.id),
        _rw(lp_ata),
        _rw(_user_ata(owner, pool.mint_a)),
        _rw(_user_ata(owner, pool.mint_b)),
        _rw(pool.vault_a),
        _rw(pool.vault_b),
        _ro(TOKEN_PROGRAM_ID),
        _ro(TOKEN_2022_PROGRAM_ID),
        _ro(pool.mint_a.mint),
        _ro(pool.mint_b.mint),
        _rw(pool.lp_mint.mint),
    ]
    data = DISCRIMINATORS["deposit"] + struct.pack("<QQQ", lp_amount, maximum_amount_0, maximum_amount_1)
    return Instruction(program, data, accounts)


def build_withdraw_instruction(
    pool: PoolState,
    owner: Pubkey,
    lp_amount: int,
    minimum_amount_0: int,
    minimum_amount_1: int,
) -> Instruction:
    """Build withdraw instruction (burn lp_amount, receive at least the given amounts)"""
    program = _pk(pool.program_id)
    lp_ata = get_associated_token_address(owner, _pk(pool.lp_mint.mint), _pk(pool.lp_mint.program_id))

    accounts = [
        AccountMeta(owner, is_signer=True, is_writable=False),
        _ro(derive_authority(program)),
        _rw(pool.id),
        _rw(lp_ata),
        _rw(_user_ata(owner, pool.mint_a)),
        _rw(_user_ata(owner, pool.mint_b)),
        _rw(pool.vault_a),
        _rw(pool.vault_b),
        _ro(TOKEN_PROGRAM_ID),
        _ro(TOKEN_2022_PROGRAM_ID),
        _ro(pool.mint_a.mint),
        _ro(pool.mint_b.mint),
        _rw(pool.lp_mint.mint),
        _ro(MEMO_PROGRAM_ID),
    ]
    data = DISCRIMINATORS["withdraw"] + struct.pack("<QQQ", lp_amount, minimum_amount_0, minimum_amount_1)
    return Instruction(program, data, accounts)


def _swap_accounts(pool: PoolState, payer: Pubkey, input_mint: str) -> List[AccountMeta]:
    program = _pk(pool.program_id)
    if input_mint == pool.mint_a.mint:
        input_token, output_token = pool.mint_a, pool.mint_b
        input_vault, output_vault = pool.vault_a, pool.vault_b
    else:
        input_token, output_token = pool.mint_b, pool.mint_a
        input_vault, output_vault = pool.vault_b, pool.vault_a

    return [
        AccountMeta(payer, is_signer=True, is_writable=False),
        _ro(derive_authority(program)),
        _ro(pool.amm_config),
        _rw(pool.id),
        _rw(_user_ata(payer, input_token)),
        _rw(_user_ata(payer, output_token)),
        _rw(input_vault),
        _rw(output_vault),
        _ro(input_token.program_id),
        _ro(output_token.program_id),
        _ro(input_token.mint),
        _ro(output_token.mint),
        _rw(pool.observation),
    ]


def build_swap_base_input_instruction(
    pool: PoolState,
    payer: Pubkey,
    input_mint: str,
    amount_in: int,
    minimum_amount_out: int,
) -> Instruction:
    """Sell exactly amount_in, receive at least minimum_amount_out"""
    data = DISCRIMINATORS["swap_base_input"] + struct.pack("<QQ", amount_in, minimum_amount_out)
    return Instruction(_pk(pool.program_id), data, _swap_accounts(pool, payer, input_mint))


def build_swap_base_output_instruction(
    pool: PoolState,
    payer: Pubkey,
    input_mint: str,
    max_amount_in: int,
    amount_out: int,
) -> Instruction:
    """Buy exactly amount_out, pay at most max_amount_in"""
    data = DISCRIMINATORS["swap_base_output"] + struct.pack("<QQ", max_amount_in, amount_out)
    return Instruction(_pk(pool.program_id), data, _swap_accounts(pool, payer, input_mint))


def build_lock_instruction(
    pool: PoolState,
    owner: Pubkey,
    lock_program: str,
    nft_mint: Pubkey,
    lp_amount: int,
    with_metadata: bool,
) -> Instruction:
    """
    Build lock_cp_liquidity instruction.

    The fee NFT mint is a fresh keypair that must co-sign the transaction.
    Whoever holds the NFT can later collect the locked position's fees.
    """
    lock = _pk(lock_program)
    token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)
    lock_authority = derive_lock_authority(lock)
    lp_mint = _pk(pool.lp_mint.mint)

    accounts = [
        _ro(lock_authority),
        AccountMeta(owner, is_signer=True, is_writable=True),
        AccountMeta(owner, is_signer=True, is_writable=False),
        _ro(owner),
        AccountMeta(nft_mint, is_signer=True, is_writable=True),
        _rw(get_associated_token_address(owner, nft_mint, token_program)),
        _ro(pool.id),
        _rw(derive_locked_liquidity(lock, nft_mint)),
        _rw(lp_mint),
        _rw(get_associated_token_address(owner, lp_mint, token_program)),
        _rw(get_associated_token_address(lock_authority, lp_mint, token_program)),
        _rw(pool.vault_a),
        _rw(pool.vault_b),
        _rw(derive_metadata(nft_mint)),
        _ro(RENT_SYSVAR_ID),
        _ro(SYSTEM_PROGRAM_ID),
        _ro(TOKEN_PROGRAM_ID),
        _ro(ASSOCIATED_TOKEN_PROGRAM_ID),
        _ro(METADATA_PROGRAM_ID),
    ]
    data = DISCRIMINATORS["lock_cp_liquidity"] + struct.pack("<Q?", lp_amount, with_metadata)
    return Instruction(lock, data, accounts)


def build_collect_fees_instruction(
    pool: PoolState,
    owner: Pubkey,
    lock_program: str,
    nft_mint: str,
    fee_lp_amount: int,
) -> Instruction:
    """Build collect_cp_fees instruction for a locked position identified by its NFT mint"""
    lock = _pk(lock_program)
    program = _pk(pool.program_id)
    token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)
    lock_authority = derive_lock_authority(lock)
    lp_mint = _pk(pool.lp_mint.mint)
    nft = _pk(nft_mint)

    accounts = [
        _ro(lock_authority),
        AccountMeta(owner, is_signer=True, is_writable=False),
        _ro(get_associated_token_address(owner, nft, token_program)),
        _rw(derive_locked_liquidity(lock, nft)),
        _ro(program),
        _ro(derive_authority(program)),
        _rw(pool.id),
        _rw(lp_mint),
        _rw(_user_ata(owner, pool.mint_a)),
        _rw(_user_ata(owner, pool.mint_b)),
        _rw(pool.vault_a),
        _rw(pool.vault_b),
        _ro(pool.mint_a.mint),
        _ro(pool.mint_b.mint),
        _rw(get_associated_token_address(lock_authority, lp_mint, token_program)),
        _ro(TOKEN_PROGRAM_ID),
        _ro(TOKEN_2022_PROGRAM_ID),
        _ro(MEMO_PROGRAM_ID),
    ]
    data = DISCRIMINATORS["collect_cp_fees"] + struct.pack("<Q", fee_lp_amount)
    return Instruction(lock, data, accounts)

