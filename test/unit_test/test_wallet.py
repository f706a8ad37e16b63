"""
Wallet Module Unit Tests

Tests balance aggregation without network dependencies.
"""

import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from cpmm_adapter.modules.wallet import TokenBalance
from cpmm_adapter.types import TOKEN_PROGRAM, TOKEN_2022_PROGRAM

USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
PYUSD = "2b1kV6DkPAnxd5ixfnxCpjxmKwqjjaYmCZfHsFu24GXo"


def parsed_account(pubkey, mint, amount, decimals=6, owner="owner", program=TOKEN_PROGRAM):
    """Token account entry as returned by getTokenAccountsByOwner (jsonParsed)"""
    return {
        "pubkey": pubkey,
        "account": {
            "owner": program,
            "data": {
                "parsed": {
                    "info": {
                        "mint": mint,
                        "owner": owner,
                        "tokenAmount": {"amount": str(amount), "decimals": decimals},
                    }
                }
            },
        },
    }


class TestTokenBalance:

    def test_ui_amount(self):
        balance = TokenBalance("acc", USDC, "owner", 1_250_000, 6)
        assert balance.ui_amount == Decimal("1.25")
        assert balance.program_id == TOKEN_PROGRAM


class TestWalletModule:

    async def test_token_balances_queries_both_programs(self, client):
        async def accounts(owner, mint=None, program_id=None):
            if program_id == TOKEN_PROGRAM:
                return [parsed_account("a1", USDC, 5_000_000), parsed_account("a2", "emptymint", 0)]
            return [parsed_account("a3", PYUSD, 7, program=TOKEN_2022_PROGRAM)]

        client.rpc.get_token_accounts_by_owner = AsyncMock(side_effect=accounts)

        balances = await client.wallet.token_balances()

        assert [(b.address, b.mint, b.amount) for b in balances] == [("a1", USDC, 5_000_000), ("a3", PYUSD, 7)]
        assert balances[1].program_id == TOKEN_2022_PROGRAM
        owners = {call.args[0] for call in client.rpc.get_token_accounts_by_owner.await_args_list}
        assert owners == {client.pubkey}

    async def test_token_balance_sums_accounts(self, client):
        client.rpc.get_token_accounts_by_owner = AsyncMock(return_value=[
            parsed_account("a1", USDC, 100),
            parsed_account("a2", USDC, 250),
        ])

        assert await client.wallet.token_balance(USDC, owner="someone") == 350
        client.rpc.get_token_accounts_by_owner.assert_awaited_once_with("someone", mint=USDC)

    async def test_lp_balance_without_accounts(self, client):
        client.rpc.get_token_accounts_by_owner = AsyncMock(return_value=[])
        assert await client.wallet.lp_balance("lpmint") == 0

    async def test_malformed_entries_skipped(self, client):
        client.rpc.get_token_accounts_by_owner = AsyncMock(return_value=[
            {"pubkey": "x", "account": {"data": {"parsed": {"info": {}}}}},
            parsed_account("a1", USDC, 42),
        ])
        assert await client.wallet.token_balance(USDC) == 42


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
