"""
Raydium CPMM protocol layer

Curve math, account layouts, PDAs, instruction encoders and the index API
client for the constant-product pool program.
"""

from .constants import PROGRAMS, DEFAULT_POOL_IDS, CpmmPrograms, programs_for
from .curve import (
    SlippageDirection,
    apply_slippage,
    compute_lp_amount,
    compute_pair_amount,
    fee_rate_to_bps,
    lp_to_token_amounts,
    swap_exact_in,
    swap_exact_out,
)
from .api import RaydiumApi

__all__ = [
    "PROGRAMS",
    "DEFAULT_POOL_IDS",
    "CpmmPrograms",
    "programs_for",
    "SlippageDirection",
    "apply_slippage",
    "compute_lp_amount",
    "compute_pair_amount",
    "fee_rate_to_bps",
    "lp_to_token_amounts",
    "swap_exact_in",
    "swap_exact_out",
    "RaydiumApi",
]
