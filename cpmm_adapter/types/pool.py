"""
Pool and fee-tier type definitions
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from .common import TokenInfo


class PoolSortBy(Enum):
    """Criterion used to pick the best pool for a mint pair"""
    LIQUIDITY = "liquidity"
    VOLUME_24H = "volume24h"


@dataclass(frozen=True)
class FeeConfig:
    """
    CPMM fee tier (AmmConfig account)

    Rates are in on-chain units of 1e-6 (2500 = 0.25%).

    Attributes:
        id: On-chain address of the config account for the active cluster
        index: Fee tier index
        trade_fee_rate: Trade fee rate
        protocol_fee_rate: Share of the trade fee kept by the protocol
        fund_fee_rate: Share of the trade fee sent to the fund
        create_pool_fee: Lamports charged when creating a pool
    """
    id: str
    index: int
    trade_fee_rate: int
    protocol_fee_rate: int = 0
    fund_fee_rate: int = 0
    create_pool_fee: int = 0

    @property
    def fee_rate_bps(self) -> int:
        from ..cpmm.curve import fee_rate_to_bps

        return fee_rate_to_bps(self.trade_fee_rate)


@dataclass(frozen=True)
class PoolState:
    """
    Read-only snapshot of a CPMM pool

    Reserves are None when the pool was resolved from the off-chain index
    without live reserves. When present, reserves and trade_fee_rate come
    from the same account fetch.

    Attributes:
        id: Pool state address
        program_id: Owning CPMM program
        amm_config: Fee tier account address
        mint_a: Token 0 descriptor
        mint_b: Token 1 descriptor
        lp_mint: LP token descriptor
        vault_a: Token 0 vault
        vault_b: Token 1 vault
        observation: Oracle observation account
        reserve_a: Token 0 reserve net of unclaimed protocol/fund fees
        reserve_b: Token 1 reserve net of unclaimed protocol/fund fees
        lp_supply: Outstanding LP supply
        trade_fee_rate: Trade fee in 1e-6 units
        open_time: Unix time trading opens
        tvl: Index-reported TVL (USD)
        volume_24h: Index-reported 24h volume (USD)
    """
    id: str
    program_id: str
    amm_config: str
    mint_a: TokenInfo
    mint_b: TokenInfo
    lp_mint: TokenInfo
    vault_a: str
    vault_b: str
    observation: str
    reserve_a: Optional[int] = None
    reserve_b: Optional[int] = None
    lp_supply: Optional[int] = None
    trade_fee_rate: Optional[int] = None
    open_time: int = 0
    tvl: Decimal = Decimal(0)
    volume_24h: Decimal = Decimal(0)

    def __str__(self) -> str:
        a = self.mint_a.symbol or self.mint_a.mint[:6]
        b = self.mint_b.symbol or self.mint_b.mint[:6]
        return f"{a}/{b} ({self.id[:8]}...)"

    @property
    def has_live_reserves(self) -> bool:
        return (
            self.reserve_a is not None
            and self.reserve_b is not None
            and self.lp_supply is not None
            and self.trade_fee_rate is not None
        )

    @property
    def fee_rate_bps(self) -> Optional[int]:
        from ..cpmm.curve import fee_rate_to_bps

        if self.trade_fee_rate is None:
            return None
        return fee_rate_to_bps(self.trade_fee_rate)

    def contains_mint(self, mint: str) -> bool:
        return mint in (self.mint_a.mint, self.mint_b.mint)

    def token(self, mint: str) -> TokenInfo:
        if mint == self.mint_a.mint:
            return self.mint_a
        if mint == self.mint_b.mint:
            return self.mint_b
        raise KeyError(mint)


@dataclass(frozen=True)
class SwapComputation:
    """
    Result of a constant-product swap computation (raw units)

    Attributes:
        input_amount: Gross input including the trade fee
        output_amount: Amount leaving the destination reserve
        trade_fee: Fee taken from the input
        source_reserve: Source reserve used
        destination_reserve: Destination reserve used
    """
    input_amount: int
    output_amount: int
    trade_fee: int
    source_reserve: int
    destination_reserve: int


@dataclass(frozen=True)
class LiquidityAmounts:
    """
    Deposit amounts for one add-liquidity call (raw units)

    Attributes:
        base_amount: Amount on the authoritative side
        pair_amount: Proportional amount on the other side
        min_pair_amount: Slippage floor of pair_amount
        max_pair_amount: Slippage ceiling of pair_amount (instruction maximum)
        lp_amount: LP tokens to mint
    """
    base_amount: int
    pair_amount: int
    min_pair_amount: int
    max_pair_amount: int
    lp_amount: int
