"""
Raydium CPMM program-derived addresses
"""

import struct
from typing import Optional, Tuple

from solders.pubkey import Pubkey

from .constants import (
    AMM_CONFIG_SEED,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    AUTH_SEED,
    LOCK_AUTH_SEED,
    LOCKED_LIQUIDITY_SEED,
    METADATA_PROGRAM_ID,
    METADATA_SEED,
    OBSERVATION_SEED,
    POOL_LP_MINT_SEED,
    POOL_SEED,
    POOL_VAULT_SEED,
    TOKEN_PROGRAM_ID,
)


def _pk(value) -> Pubkey:
    return value if isinstance(value, Pubkey) else Pubkey.from_string(str(value))


def is_valid_address(value) -> bool:
    """True if value parses as a 32-byte base58 public key"""
    if isinstance(value, Pubkey):
        return True
    if not isinstance(value, str) or not value:
        return False
    try:
        Pubkey.from_string(value)
    except ValueError:
        return False
    return True


def get_associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program: Optional[Pubkey] = None,
) -> Pubkey:
    """
    Get associated token account address.

    Args:
        owner: Wallet owner
        mint: Token mint
        token_program: Token program (defaults to Tokenkeg)

    Returns:
        ATA address
    """
    if token_program is None:
        token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program), bytes(mint)],
        Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID),
    )
    return address


def derive_authority(program_id) -> Pubkey:
    """Vault and LP mint authority shared by every pool of the program"""
    address, _ = Pubkey.find_program_address([AUTH_SEED], _pk(program_id))
    return address


def derive_amm_config(program_id, index: int) -> Pubkey:
    """Fee tier account; the index is encoded as big-endian u16"""
    address, _ = Pubkey.find_program_address(
        [AMM_CONFIG_SEED, struct.pack(">H", index)],
        _pk(program_id),
    )
    return address


def derive_pool_state(program_id, amm_config, mint_0, mint_1) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [POOL_SEED, bytes(_pk(amm_config)), bytes(_pk(mint_0)), bytes(_pk(mint_1))],
        _pk(program_id),
    )
    return address


def derive_lp_mint(program_id, pool_state) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [POOL_LP_MINT_SEED, bytes(_pk(pool_state))],
        _pk(program_id),
    )
    return address


def derive_vault(program_id, pool_state, mint) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [POOL_VAULT_SEED, bytes(_pk(pool_state)), bytes(_pk(mint))],
        _pk(program_id),
    )
    return address


def derive_observation(program_id, pool_state) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [OBSERVATION_SEED, bytes(_pk(pool_state))],
        _pk(program_id),
    )
    return address


def derive_lock_authority(lock_program) -> Pubkey:
    address, _ = Pubkey.find_program_address([LOCK_AUTH_SEED], _pk(lock_program))
    return address


def derive_locked_liquidity(lock_program, nft_mint) -> Pubkey:
    """Lock record keyed by the fee NFT mint (the lock receipt)"""
    address, _ = Pubkey.find_program_address(
        [LOCKED_LIQUIDITY_SEED, bytes(_pk(nft_mint))],
        _pk(lock_program),
    )
    return address


def derive_metadata(mint) -> Pubkey:
    """Metaplex metadata account for a mint"""
    metadata_program = Pubkey.from_string(METADATA_PROGRAM_ID)
    address, _ = Pubkey.find_program_address(
        [METADATA_SEED, bytes(metadata_program), bytes(_pk(mint))],
        metadata_program,
    )
    return address


def sort_mints(mint_a: str, mint_b: str) -> Tuple[str, str, bool]:
    """
    Order two mints the way the program stores them (token_0 < token_1 by bytes)

    Returns:
        Tuple of (mint_0, mint_1, swapped)
    """
    if bytes(_pk(mint_a)) <= bytes(_pk(mint_b)):
        return mint_a, mint_b, False
    return mint_b, mint_a, True
