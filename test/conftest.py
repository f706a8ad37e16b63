"""
Shared fixtures for unit tests.

Nothing here touches the network: RPC and index calls are replaced with
AsyncMocks so tests can assert exactly which calls were made.
"""

import base64
import struct
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from cpmm_adapter.types import Cluster, OperationResult, PoolState, TokenInfo, WSOL_MINT

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
DEVNET_CPMM_PROGRAM = "CPMDWBwJDtYax9qW7AyRuVC19Cc4L4Vcy4n2BHAbHkCW"
MAINNET_CPMM_PROGRAM = "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C"


def new_address() -> str:
    return str(Pubkey.new_unique())


def make_pool(
    reserve_a=1_000,
    reserve_b=3_000,
    lp_supply=1_000,
    trade_fee_rate=2_500,
    mint_a=None,
    mint_b=None,
    decimals_a=0,
    decimals_b=0,
    program_id=DEVNET_CPMM_PROGRAM,
) -> PoolState:
    """Pool snapshot with live reserves and throwaway account addresses"""
    return PoolState(
        id=new_address(),
        program_id=program_id,
        amm_config=new_address(),
        mint_a=TokenInfo(mint_a or new_address(), decimals_a),
        mint_b=TokenInfo(mint_b or new_address(), decimals_b),
        lp_mint=TokenInfo(new_address(), 9),
        vault_a=new_address(),
        vault_b=new_address(),
        observation=new_address(),
        reserve_a=reserve_a,
        reserve_b=reserve_b,
        lp_supply=lp_supply,
        trade_fee_rate=trade_fee_rate,
    )


def encode_pool_state(
    amm_config,
    vault_0,
    vault_1,
    lp_mint,
    mint_0,
    mint_1,
    observation,
    lp_supply=1_000,
    protocol_fees=(0, 0),
    fund_fees=(0, 0),
    decimals=(9, 6, 9),
    open_time=0,
) -> bytes:
    """PoolState account bytes laid out the way the program stores them"""
    keys = [amm_config, new_address(), vault_0, vault_1, lp_mint, mint_0, mint_1,
            TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID, observation]
    data = b"\x00" * 8 + b"".join(bytes(Pubkey.from_string(k)) for k in keys)
    data += struct.pack("<5B", 255, 0, decimals[2], decimals[0], decimals[1])
    data += struct.pack(
        "<7Q", lp_supply, protocol_fees[0], protocol_fees[1], fund_fees[0], fund_fees[1], open_time, 0
    )
    return data + b"\x00" * (637 - len(data))


def encode_amm_config(index=0, trade_fee_rate=2_500) -> bytes:
    data = b"\x00" * 8 + struct.pack("<BBH4Q", 254, 0, index, trade_fee_rate, 120_000, 40_000, 150_000_000)
    data += bytes(Pubkey.new_unique()) + bytes(Pubkey.new_unique())
    return data + b"\x00" * (236 - len(data))


def encode_token_account(mint, owner, amount) -> bytes:
    data = bytes(Pubkey.from_string(mint)) + bytes(Pubkey.from_string(owner)) + struct.pack("<Q", amount)
    return data + b"\x00" * (165 - len(data))


def encode_mint(decimals) -> bytes:
    data = b"\x00" * 36 + struct.pack("<Q", 10 ** 12) + bytes([decimals, 1])
    return data + b"\x00" * (82 - len(data))


def rpc_account(data: bytes, owner: str) -> dict:
    """Account object as returned by getAccountInfo with base64 encoding"""
    return {
        "data": [base64.b64encode(data).decode("ascii"), "base64"],
        "owner": owner,
        "lamports": 2_039_280,
        "executable": False,
    }


def confirmed(pool_id: str, cluster: Cluster = Cluster.DEVNET) -> OperationResult:
    return OperationResult.confirmed("5" * 64, pool_id, cluster, "https://explorer.solana.com")


@pytest.fixture
def keypair():
    return Keypair()


def make_client(keypair, cluster="devnet"):
    """
    CpmmClient with every network entry point mocked

    rpc.call and api._get fail the test if reached; tests that need data
    replace the higher-level methods they exercise.
    """
    from cpmm_adapter.client import CpmmClient

    c = CpmmClient(rpc_url="http://localhost:8899", cluster=cluster, keypair=keypair)
    c.rpc.call = AsyncMock(side_effect=AssertionError("unexpected RPC call"))
    c.api._get = AsyncMock(side_effect=AssertionError("unexpected index call"))
    return c


def orchestrate(client, mock_locator=True):
    """
    Replace the wallet and executor of `client` with mocks

    With mock_locator the whole pool locator is a mock that resolves any
    identifier to the served pool; otherwise the real locator keeps its
    pool id resolution and only fetch_pool_state is replaced.
    Returns (client, pool).
    """
    from cpmm_adapter.modules.pool_locator import PoolLocator

    pool = make_pool()
    if mock_locator:
        locator = MagicMock(spec=PoolLocator)
        locator.check_identifier = PoolLocator.check_identifier
        locator.resolve_pool_id = AsyncMock(return_value=pool.id)
        client._pools = locator
    client.pools.fetch_pool_state = AsyncMock(return_value=pool)

    client._wallet = MagicMock()
    client._wallet.lp_balance = AsyncMock(return_value=500)

    client._executor = MagicMock()
    client._executor.execute = AsyncMock(return_value=confirmed(pool.id, client.cluster))
    return client, pool


@pytest.fixture
def client(keypair):
    return make_client(keypair)


@pytest.fixture
def read_only_client():
    from cpmm_adapter.client import CpmmClient
    from cpmm_adapter.config import config

    # A configured keypair path would make the client signing
    original = config.signer.keypair_path
    config.signer.keypair_path = ""
    try:
        c = CpmmClient(rpc_url="http://localhost:8899", cluster="devnet")
    finally:
        config.signer.keypair_path = original
    c.rpc.call = AsyncMock(side_effect=AssertionError("unexpected RPC call"))
    return c


@pytest.fixture
def orchestrated(client):
    """Devnet client with mocked locator, wallet and executor; returns (client, pool)"""
    return orchestrate(client)
