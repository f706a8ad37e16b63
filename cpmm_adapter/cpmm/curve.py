"""
CPMM Curve Math

Pure integer constant-product (x * y = k) calculations. All amounts are
raw token units; fee rates are basis points. Every division rounds in the
pool's favour: outputs are floored, required inputs are ceiled.
"""

from enum import Enum

from ..errors import CurveError
from ..types import SwapComputation

BPS_DENOMINATOR = 10_000
# On-chain AmmConfig rates are expressed in 1e-6 units
FEE_RATE_DENOMINATOR = 1_000_000


class SlippageDirection(Enum):
    """Which side of an amount the tolerance protects"""
    FLOOR = "floor"      # minimum acceptable (outputs)
    CEILING = "ceiling"  # maximum payable (inputs)


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def _check_reserves(source_reserve: int, destination_reserve: int) -> None:
    if source_reserve <= 0 or destination_reserve <= 0:
        raise CurveError.invalid_reserve(source_reserve, destination_reserve)


def _check_fee_rate(fee_rate_bps: int) -> None:
    if fee_rate_bps < 0 or fee_rate_bps >= BPS_DENOMINATOR:
        raise CurveError.invalid_fee_rate(fee_rate_bps)


def fee_rate_to_bps(trade_fee_rate: int) -> int:
    """
    Convert an on-chain trade fee rate (1e-6 units) to basis points

    Args:
        trade_fee_rate: Rate as stored in AmmConfig (2500 = 0.25%)

    Returns:
        Rate in basis points (2500 -> 25)
    """
    return trade_fee_rate * BPS_DENOMINATOR // FEE_RATE_DENOMINATOR


def swap_exact_in(
    input_amount: int,
    source_reserve: int,
    destination_reserve: int,
    fee_rate_bps: int,
) -> SwapComputation:
    """
    Compute the output of selling an exact input amount

    The trade fee is deducted from the input before the constant-product
    step, so output = floor(net * dst / (src + net)).

    Args:
        input_amount: Gross input (raw units)
        source_reserve: Reserve of the token being sold
        destination_reserve: Reserve of the token being bought
        fee_rate_bps: Trade fee in basis points

    Returns:
        SwapComputation with output strictly below destination_reserve
    """
    _check_reserves(source_reserve, destination_reserve)
    _check_fee_rate(fee_rate_bps)
    if input_amount <= 0:
        raise CurveError.invalid_amount("input_amount", input_amount)

    trade_fee = _ceil_div(input_amount * fee_rate_bps, BPS_DENOMINATOR)
    net_input = input_amount - trade_fee
    output_amount = net_input * destination_reserve // (source_reserve + net_input)

    return SwapComputation(
        input_amount=input_amount,
        output_amount=output_amount,
        trade_fee=trade_fee,
        source_reserve=source_reserve,
        destination_reserve=destination_reserve,
    )


def swap_exact_out(
    output_amount: int,
    source_reserve: int,
    destination_reserve: int,
    fee_rate_bps: int,
) -> SwapComputation:
    """
    Compute the gross input required to buy an exact output amount

    Inverse of swap_exact_in: net = ceil(src * out / (dst - out)), then the
    fee is grossed up as ceil(net * 10000 / (10000 - fee)).

    Args:
        output_amount: Desired output (raw units)
        source_reserve: Reserve of the token being sold
        destination_reserve: Reserve of the token being bought
        fee_rate_bps: Trade fee in basis points

    Returns:
        SwapComputation whose input_amount includes the fee

    Raises:
        CurveError: INSUFFICIENT_LIQUIDITY when output_amount >= destination_reserve
    """
    _check_reserves(source_reserve, destination_reserve)
    _check_fee_rate(fee_rate_bps)
    if output_amount <= 0:
        raise CurveError.invalid_amount("output_amount", output_amount)
    if output_amount >= destination_reserve:
        raise CurveError.insufficient_liquidity(output_amount, destination_reserve)

    net_input = _ceil_div(source_reserve * output_amount, destination_reserve - output_amount)
    input_amount = _ceil_div(net_input * BPS_DENOMINATOR, BPS_DENOMINATOR - fee_rate_bps)

    return SwapComputation(
        input_amount=input_amount,
        output_amount=output_amount,
        trade_fee=input_amount - net_input,
        source_reserve=source_reserve,
        destination_reserve=destination_reserve,
    )


def compute_pair_amount(base_amount: int, base_reserve: int, quote_reserve: int) -> int:
    """Amount of the other token that keeps the pool ratio (floored)"""
    _check_reserves(base_reserve, quote_reserve)
    return base_amount * quote_reserve // base_reserve


def apply_slippage(amount: int, slippage_bps: int, direction: SlippageDirection) -> int:
    """
    Bound an amount by a slippage tolerance

    Args:
        amount: Expected amount (raw units)
        slippage_bps: Tolerance in basis points, 0..10000
        direction: FLOOR for a minimum to receive, CEILING for a maximum to pay

    Returns:
        floor(amount * (10000 - bps) / 10000) or ceil(amount * (10000 + bps) / 10000)
    """
    if slippage_bps < 0 or slippage_bps > BPS_DENOMINATOR:
        raise CurveError.invalid_slippage(slippage_bps)

    if direction is SlippageDirection.FLOOR:
        return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR
    return _ceil_div(amount * (BPS_DENOMINATOR + slippage_bps), BPS_DENOMINATOR)


def compute_lp_amount(base_amount: int, base_reserve: int, lp_supply: int) -> int:
    """LP tokens minted for depositing base_amount against base_reserve (floored)"""
    if base_reserve <= 0:
        raise CurveError.invalid_reserve(base_reserve, lp_supply)
    return base_amount * lp_supply // base_reserve


def lp_to_token_amounts(lp_amount: int, reserve_a: int, reserve_b: int, lp_supply: int) -> tuple:
    """
    Token amounts released by burning lp_amount (floored)

    Returns:
        Tuple of (amount_a, amount_b)
    """
    if lp_supply <= 0:
        raise CurveError.invalid_reserve(reserve_a, reserve_b)
    return (
        lp_amount * reserve_a // lp_supply,
        lp_amount * reserve_b // lp_supply,
    )
