"""
Raydium CPMM Constants
"""

import hashlib
from dataclasses import dataclass
from typing import Dict

from ..errors import ConfigurationError
from ..types import Cluster


def _anchor_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for instruction name"""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:8]


def _anchor_account_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for account name"""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:8]


@dataclass(frozen=True)
class CpmmPrograms:
    """Program and fee-receiver addresses deployed on one cluster"""
    cpmm_program: str
    create_pool_fee_receiver: str
    lock_program: str


PROGRAMS: Dict[Cluster, CpmmPrograms] = {
    Cluster.MAINNET: CpmmPrograms(
        cpmm_program="CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C",
        create_pool_fee_receiver="DNXgeM9EiiaAbaWvwjHj9fQQLAX5ZsfHyvmYUNRAdNC8",
        lock_program="LockrWmn6K5twhz3y9w1dQERbmgSaRkfnTeTKbpofwE",
    ),
    Cluster.DEVNET: CpmmPrograms(
        cpmm_program="CPMDWBwJDtYax9qW7AyRuVC19Cc4L4Vcy4n2BHAbHkCW",
        create_pool_fee_receiver="G11FKBRaAkHAKuLCgLM6K6NUc9rTjPAznRCjZifrTQe2",
        lock_program="DLockwT7X7sxtLmGH9g5kmfcjaBtncdbUmi738m5bvQC",
    ),
}


def programs_for(cluster: Cluster) -> CpmmPrograms:
    """Look up program addresses, failing loudly for an unmapped cluster"""
    try:
        return PROGRAMS[cluster]
    except KeyError:
        raise ConfigurationError.unsupported_cluster(cluster, "cpmm programs") from None


# Default pools used when a caller names neither a pool nor a mint pair
DEFAULT_POOL_IDS: Dict[Cluster, str] = {
    Cluster.MAINNET: "7JuwJuNU88gurFnyWeiyGKbFmExMWcmRZntn9imEzdny",  # SOL/USDC
    Cluster.DEVNET: "6rXSohG2esLJMzKZzpFr1BXUeXg8Cr5Gv3TwbuXbrwQq",
}

# Token Programs
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

# Associated Token Program
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# System Program
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

# Rent Sysvar
RENT_SYSVAR_ID = "SysvarRent111111111111111111111111111111111"

# Metadata Program (Metaplex)
METADATA_PROGRAM_ID = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"

# Memo Program
MEMO_PROGRAM_ID = "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr"

# Wrapped SOL mint
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"

# u64 max, used as "everything available" for fee collection
U64_MAX = 2 ** 64 - 1

# PDA seeds
AUTH_SEED = b"vault_and_lp_mint_auth_seed"
AMM_CONFIG_SEED = b"amm_config"
POOL_SEED = b"pool"
POOL_LP_MINT_SEED = b"pool_lp_mint"
POOL_VAULT_SEED = b"pool_vault"
OBSERVATION_SEED = b"observation"
LOCKED_LIQUIDITY_SEED = b"locked_liquidity"
LOCK_AUTH_SEED = b"lock_cp_authority_seed"
METADATA_SEED = b"metadata"

# Anchor discriminators for instructions
# Computed as sha256("global:<instruction_name>")[0:8]
DISCRIMINATORS = {
    "initialize": _anchor_discriminator("initialize"),
    "deposit": _anchor_discriminator("deposit"),
    "withdraw": _anchor_discriminator("withdraw"),
    "swap_base_input": _anchor_discriminator("swap_base_input"),
    "swap_base_output": _anchor_discriminator("swap_base_output"),
    "lock_cp_liquidity": _anchor_discriminator("lock_cp_liquidity"),
    "collect_cp_fees": _anchor_discriminator("collect_cp_fees"),
}

# Account discriminators
POOL_STATE_DISCRIMINATOR = _anchor_account_discriminator("PoolState")
AMM_CONFIG_DISCRIMINATOR = _anchor_account_discriminator("AmmConfig")

# Account sizes
POOL_STATE_SIZE = 637
AMM_CONFIG_SIZE = 236
