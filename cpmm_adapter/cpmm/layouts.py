"""
Raydium CPMM Account Layouts

Parses pool, fee-config, token-account and mint data fetched from chain.
"""

import base64
import struct
from typing import Any, Dict, Optional

import base58

from ..errors import ErrorCode, OperationError


def _pubkey_from_bytes(data: bytes) -> str:
    """Convert 32 bytes to base58 pubkey string"""
    return base58.b58encode(data).decode("ascii")


def decode_account_data(account: Optional[Dict[str, Any]]) -> Optional[bytes]:
    """
    Extract raw bytes from an RPC account object fetched with base64 encoding

    Returns:
        Raw bytes, or None if the account is missing or not base64 encoded
    """
    if not account:
        return None
    data = account.get("data", [])
    if isinstance(data, list) and len(data) > 0:
        return base64.b64decode(data[0])
    if isinstance(data, str):
        return base64.b64decode(data)
    return None


def parse_pool_state(account_data: bytes) -> Dict[str, Any]:
    """
    Parse CPMM PoolState account (packed layout)

    Layout:
    - blob(8): discriminator
    - publicKey(32) x 10: amm_config, pool_creator, token_0_vault,
      token_1_vault, lp_mint, token_0_mint, token_1_mint,
      token_0_program, token_1_program, observation_key (offset 8..328)
    - u8: auth_bump (328)
    - u8: status (329)
    - u8: lp_mint_decimals (330)
    - u8: mint_0_decimals (331)
    - u8: mint_1_decimals (332)
    - u64: lp_supply (333)
    - u64: protocol_fees_token_0 (341)
    - u64: protocol_fees_token_1 (349)
    - u64: fund_fees_token_0 (357)
    - u64: fund_fees_token_1 (365)
    - u64: open_time (373)
    - u64: recent_epoch (381)

    Args:
        account_data: Raw account data bytes

    Returns:
        Parsed pool state dict
    """
    if len(account_data) < 389:
        raise OperationError(
            f"Pool account too short: {len(account_data)} bytes",
            ErrorCode.POOL_DATA_FETCH_ERROR,
        )

    names = (
        "amm_config",
        "pool_creator",
        "token_0_vault",
        "token_1_vault",
        "lp_mint",
        "token_0_mint",
        "token_1_mint",
        "token_0_program",
        "token_1_program",
        "observation_key",
    )
    state: Dict[str, Any] = {"discriminator": account_data[:8].hex()}
    offset = 8
    for name in names:
        state[name] = _pubkey_from_bytes(account_data[offset:offset + 32])
        offset += 32

    (
        state["auth_bump"],
        state["status"],
        state["lp_mint_decimals"],
        state["mint_0_decimals"],
        state["mint_1_decimals"],
    ) = struct.unpack_from("<5B", account_data, offset)
    offset += 5

    (
        state["lp_supply"],
        state["protocol_fees_token_0"],
        state["protocol_fees_token_1"],
        state["fund_fees_token_0"],
        state["fund_fees_token_1"],
        state["open_time"],
        state["recent_epoch"],
    ) = struct.unpack_from("<7Q", account_data, offset)

    return state


def parse_amm_config(account_data: bytes) -> Dict[str, Any]:
    """
    Parse CPMM AmmConfig account.

    Layout:
    - blob(8): discriminator
    - u8: bump (offset 8)
    - bool: disable_create_pool (offset 9)
    - u16: index (offset 10)
    - u64: trade_fee_rate (offset 12) - in 1e-6 units (2500 = 0.25%)
    - u64: protocol_fee_rate (offset 20)
    - u64: fund_fee_rate (offset 28)
    - u64: create_pool_fee (offset 36)
    - publicKey(32): protocol_owner (offset 44)
    - publicKey(32): fund_owner (offset 76)

    Args:
        account_data: Raw account data bytes

    Returns:
        Parsed config dict with integer rates
    """
    bump, disable_create_pool, index = struct.unpack_from("<BBH", account_data, 8)
    trade_fee_rate, protocol_fee_rate, fund_fee_rate, create_pool_fee = struct.unpack_from(
        "<4Q", account_data, 12
    )
    return {
        "bump": bump,
        "disable_create_pool": bool(disable_create_pool),
        "index": index,
        "trade_fee_rate": trade_fee_rate,
        "protocol_fee_rate": protocol_fee_rate,
        "fund_fee_rate": fund_fee_rate,
        "create_pool_fee": create_pool_fee,
        "protocol_owner": _pubkey_from_bytes(account_data[44:76]),
        "fund_owner": _pubkey_from_bytes(account_data[76:108]),
    }


def parse_token_account_amount(account_data: bytes) -> int:
    """SPL token account amount (u64 at offset 64, after mint and owner)"""
    return struct.unpack_from("<Q", account_data, 64)[0]


def parse_mint_decimals(account_data: bytes) -> int:
    """
    SPL mint decimals

    Mint layout: COption<Pubkey> mint_authority (36), u64 supply (8),
    u8 decimals at offset 44.
    """
    if len(account_data) < 82:
        raise ValueError(f"Mint data too short: {len(account_data)} bytes")
    return account_data[44]
