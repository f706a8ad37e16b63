"""
Common type definitions
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from enum import Enum
from typing import Optional, Union

from ..errors import ConfigurationError


# Placeholder mint accepted from callers meaning "native SOL, wrap it first"
NATIVE_SOL_MINT = "11111111111111111111111111111111"
WSOL_MINT = "So11111111111111111111111111111111111111112"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"


class Cluster(Enum):
    """
    Ledger cluster the client talks to.

    Closed set: every per-cluster table in the package is keyed by these
    members, and a missing entry is a configuration error.
    """
    MAINNET = "mainnet-beta"
    DEVNET = "devnet"

    @classmethod
    def from_string(cls, name: str) -> "Cluster":
        normalized = (name or "").strip().lower()
        if normalized in ("mainnet", "mainnet-beta"):
            return cls.MAINNET
        if normalized == "devnet":
            return cls.DEVNET
        raise ConfigurationError.invalid("cluster", f"unsupported cluster '{name}'")

    @property
    def has_pool_index(self) -> bool:
        """Whether the off-chain index serves pool data for this cluster"""
        return self is Cluster.MAINNET

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TokenInfo:
    """
    Token descriptor

    Attributes:
        mint: Token mint address (base58)
        decimals: Number of decimal places
        program_id: Owning token program (SPL Token or Token-2022)
        symbol: Token symbol if known
    """
    mint: str
    decimals: int
    program_id: str = TOKEN_PROGRAM
    symbol: str = ""

    def __repr__(self) -> str:
        label = self.symbol or self.mint[:8] + "..."
        return f"TokenInfo({label}, decimals={self.decimals})"

    @property
    def is_wsol(self) -> bool:
        return self.mint == WSOL_MINT

    def ui_amount(self, raw_amount: int) -> Decimal:
        """Convert raw amount to UI amount"""
        return Decimal(raw_amount) / Decimal(10 ** self.decimals)

    def raw_amount(self, ui_amount: Union[Decimal, float, int, str]) -> int:
        """
        Convert UI amount to raw amount, rounding down

        Args:
            ui_amount: UI amount (Decimal, float, int, or str)

        Returns:
            Raw token amount (smallest units)
        """
        if not isinstance(ui_amount, Decimal):
            ui_amount = Decimal(str(ui_amount))
        raw = (ui_amount * Decimal(10 ** self.decimals)).to_integral_value(rounding=ROUND_DOWN)
        return int(raw)


def to_decimal(value: Union[Decimal, float, int, str, None]) -> Optional[Decimal]:
    """Parse a caller-supplied amount, returning None when it is not a number"""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        parsed = Decimal(str(value))
    except ArithmeticError:
        return None
    return parsed if parsed.is_finite() else None
