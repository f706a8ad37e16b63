"""
Wallet Module

Token balance lookups for the active signer (or any owner).
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..types import TOKEN_PROGRAM, TOKEN_2022_PROGRAM

if TYPE_CHECKING:
    from ..client import CpmmClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenBalance:
    """
    Token account holding

    Attributes:
        address: Token account address
        mint: Token mint
        owner: Account owner
        amount: Raw balance
        decimals: Mint decimals
        program_id: Token program owning the account
    """
    address: str
    mint: str
    owner: str
    amount: int
    decimals: int
    program_id: str = TOKEN_PROGRAM

    @property
    def ui_amount(self) -> Decimal:
        return Decimal(self.amount) / Decimal(10 ** self.decimals)


def _parse_token_account(entry: Dict[str, Any], program_id: str) -> Optional[TokenBalance]:
    info = entry.get("account", {}).get("data", {}).get("parsed", {}).get("info", {})
    token_amount = info.get("tokenAmount", {})
    amount_str = token_amount.get("amount")
    if amount_str is None or not info.get("mint"):
        return None
    return TokenBalance(
        address=entry.get("pubkey", ""),
        mint=info["mint"],
        owner=info.get("owner", ""),
        amount=int(amount_str),
        decimals=int(token_amount.get("decimals", 0)),
        program_id=program_id,
    )


class WalletModule:
    """
    Wallet operations module

    Usage:
        balances = await client.wallet.token_balances()
        lp = await client.wallet.lp_balance(pool.lp_mint.mint)
    """

    def __init__(self, client: "CpmmClient"):
        self._client = client
        self._rpc = client.rpc

    async def token_balances(self, owner: Optional[str] = None) -> List[TokenBalance]:
        """
        Every SPL Token and Token-2022 account held by owner

        Both programs are queried concurrently.

        Args:
            owner: Owner address (defaults to the signer)

        Returns:
            Non-empty token balances
        """
        owner = owner or self._client.pubkey
        programs = (TOKEN_PROGRAM, TOKEN_2022_PROGRAM)
        results = await asyncio.gather(*(
            self._rpc.get_token_accounts_by_owner(owner, program_id=program)
            for program in programs
        ))

        balances = []
        for program, accounts in zip(programs, results):
            for entry in accounts:
                balance = _parse_token_account(entry, program)
                if balance is not None and balance.amount > 0:
                    balances.append(balance)
        return balances

    async def token_balance(self, mint: str, owner: Optional[str] = None) -> int:
        """Raw balance of mint summed over all of owner's accounts"""
        owner = owner or self._client.pubkey
        accounts = await self._rpc.get_token_accounts_by_owner(owner, mint=mint)
        total = 0
        for entry in accounts:
            program = entry.get("account", {}).get("owner", TOKEN_PROGRAM)
            balance = _parse_token_account(entry, program)
            if balance is not None:
                total += balance.amount
        return total

    async def lp_balance(self, lp_mint: str, owner: Optional[str] = None) -> int:
        """Raw LP token balance"""
        return await self.token_balance(lp_mint, owner)
