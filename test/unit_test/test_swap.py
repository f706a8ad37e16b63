"""
Test Swap Module

Quote bounds, direction inference and mint validation for both swap
directions against a mocked pool.
"""

import struct
import sys
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import make_pool, new_address, orchestrate
from cpmm_adapter.config import config
from cpmm_adapter.cpmm.constants import DEFAULT_POOL_IDS, DISCRIMINATORS
from cpmm_adapter.errors import ErrorCode, OperationError
from cpmm_adapter.types import Cluster, WSOL_MINT


def swap_instruction(client):
    instructions = client._executor.execute.await_args.args[0]
    return next(
        ix for ix in instructions
        if bytes(ix.data)[:8] in (DISCRIMINATORS["swap_base_input"], DISCRIMINATORS["swap_base_output"])
    )


class TestSwapExactIn:

    async def test_minimum_output(self, orchestrated):
        """1000/3000 pool at 25 bps: selling 100 A yields 270 B"""
        client, pool = orchestrated

        result = await client.swap.swap_exact_in(pool.id, 100, pool.mint_a.mint, slippage_bps=100)

        assert (result.input_mint, result.output_mint) == (pool.mint_a.mint, pool.mint_b.mint)
        assert result.input_amount == 100
        assert result.trade_fee == 1
        assert result.output_amount == 270
        assert result.amount_limit == 267

        ix = swap_instruction(client)
        assert bytes(ix.data)[:8] == DISCRIMINATORS["swap_base_input"]
        assert struct.unpack("<QQ", bytes(ix.data)[8:]) == (100, 267)

    async def test_sell_token_b(self, orchestrated):
        client, pool = orchestrated

        result = await client.swap.swap_exact_in(pool.id, 300, pool.mint_b.mint, slippage_bps=100)

        assert result.input_mint == pool.mint_b.mint
        assert result.output_amount == 90

    async def test_base_in_override_wins(self, orchestrated):
        client, pool = orchestrated

        result = await client.swap.swap_exact_in(pool.id, 100, pool.mint_b.mint, slippage_bps=100, base_in=True)

        assert result.input_mint == pool.mint_a.mint
        assert result.output_amount == 270

    async def test_default_slippage(self, orchestrated):
        client, pool = orchestrated

        result = await client.swap.swap_exact_in(pool.id, 100, pool.mint_a.mint)
        assert result.slippage_bps == config.trading.default_slippage_bps

    async def test_mint_not_in_pool(self, orchestrated):
        client, pool = orchestrated

        with pytest.raises(OperationError) as exc_info:
            await client.swap.swap_exact_in(pool.id, 100, new_address())

        assert exc_info.value.code == ErrorCode.INVALID_INPUT_MINT
        client._executor.execute.assert_not_awaited()

    async def test_malformed_mint_rejected_before_io(self, orchestrated):
        client, pool = orchestrated

        with pytest.raises(OperationError) as exc_info:
            await client.swap.swap_exact_in(pool.id, 100, "xyz")

        assert exc_info.value.code == ErrorCode.INVALID_INPUT_MINT
        client._pools.fetch_pool_state.assert_not_awaited()

    @pytest.mark.parametrize("pool_id", [None, ""])
    async def test_without_pool_id_uses_default_pool(self, client, pool_id):
        client, pool = orchestrate(client, mock_locator=False)
        default_id = DEFAULT_POOL_IDS[Cluster.DEVNET]

        result = await client.swap.swap_exact_in(pool_id, 100, pool.mint_a.mint, slippage_bps=100)

        assert result.output_amount == 270
        client.pools.fetch_pool_state.assert_awaited_once_with(default_id, include_live_reserves=True)

    async def test_amount_below_one_unit(self, orchestrated):
        client, _ = orchestrated
        pool = make_pool(decimals_a=2)
        client._pools.fetch_pool_state.return_value = pool

        with pytest.raises(OperationError) as exc_info:
            await client.swap.swap_exact_in(pool.id, "0.001", pool.mint_a.mint)
        assert exc_info.value.code == ErrorCode.INVALID_INPUT_AMOUNT

    async def test_wsol_input_wrapped_and_closed(self, orchestrated):
        client, _ = orchestrated
        pool = make_pool(mint_a=WSOL_MINT)
        client._pools.fetch_pool_state.return_value = pool

        await client.swap.swap_exact_in(pool.id, 100, WSOL_MINT, slippage_bps=100)

        instructions = client._executor.execute.await_args.args[0]
        # wrap (ata + transfer + sync), output ata, swap, close
        assert len(instructions) == 6
        assert struct.unpack("<IQ", bytes(instructions[1].data)) == (2, 100 + config.solana.wsol_wrap_buffer)
        assert bytes(instructions[-1].data) == bytes([9])

    async def test_missing_signer(self, read_only_client):
        with pytest.raises(OperationError) as exc_info:
            await read_only_client.swap.swap_exact_in(new_address(), 1, new_address())
        assert exc_info.value.code == ErrorCode.MISSING_SIGNER


class TestSwapExactOut:

    async def test_maximum_input(self, orchestrated):
        """Buying 300 B from a 1000/3000 pool at 25 bps costs 113 A"""
        client, pool = orchestrated

        result = await client.swap.swap_exact_out(pool.id, 300, pool.mint_b.mint, slippage_bps=100)

        assert (result.input_mint, result.output_mint) == (pool.mint_a.mint, pool.mint_b.mint)
        assert result.output_amount == 300
        assert result.input_amount == 113
        assert result.trade_fee == 1
        assert result.amount_limit == 115

        ix = swap_instruction(client)
        assert bytes(ix.data)[:8] == DISCRIMINATORS["swap_base_output"]
        assert struct.unpack("<QQ", bytes(ix.data)[8:]) == (115, 300)

    async def test_output_mint_not_in_pool(self, orchestrated):
        client, pool = orchestrated

        with pytest.raises(OperationError) as exc_info:
            await client.swap.swap_exact_out(pool.id, 10, new_address())
        assert exc_info.value.code == ErrorCode.INVALID_OUTPUT_MINT

    async def test_without_pool_id_uses_default_pool(self, client):
        client, pool = orchestrate(client, mock_locator=False)

        result = await client.swap.swap_exact_out(None, 300, pool.mint_b.mint, slippage_bps=100)

        assert result.input_amount == 113
        client.pools.fetch_pool_state.assert_awaited_once_with(
            DEFAULT_POOL_IDS[Cluster.DEVNET], include_live_reserves=True
        )

    async def test_output_exceeds_reserve(self, orchestrated):
        client, pool = orchestrated

        with pytest.raises(OperationError) as exc_info:
            await client.swap.swap_exact_out(pool.id, 3_000, pool.mint_b.mint)

        assert exc_info.value.code == ErrorCode.INSUFFICIENT_LIQUIDITY
        assert exc_info.value.operation == "swap_exact_out"

    @pytest.mark.parametrize("slippage", [0, 10_001])
    async def test_slippage_range(self, orchestrated, slippage):
        client, pool = orchestrated

        with pytest.raises(OperationError) as exc_info:
            await client.swap.swap_exact_out(pool.id, 10, pool.mint_b.mint, slippage_bps=slippage)
        assert exc_info.value.code == ErrorCode.INVALID_SLIPPAGE_RANGE


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
