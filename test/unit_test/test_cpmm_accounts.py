"""
Test CPMM Accounts and Instructions

Account layout parsing, PDA derivation and instruction encoding.
"""

import struct
import sys
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent))

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from conftest import (
    TOKEN_PROGRAM_ID,
    USDC_MINT,
    encode_amm_config,
    encode_mint,
    encode_pool_state,
    encode_token_account,
    make_pool,
    new_address,
    rpc_account,
)
from cpmm_adapter.cpmm.constants import DISCRIMINATORS, PROGRAMS, programs_for
from cpmm_adapter.cpmm.instructions import (
    build_initialize_instruction,
    build_swap_base_input_instruction,
    build_withdraw_instruction,
)
from cpmm_adapter.cpmm.layouts import (
    decode_account_data,
    parse_amm_config,
    parse_mint_decimals,
    parse_pool_state,
    parse_token_account_amount,
)
from cpmm_adapter.cpmm.pda import (
    derive_amm_config,
    derive_pool_state,
    get_associated_token_address,
    is_valid_address,
    sort_mints,
)
from cpmm_adapter.errors import ErrorCode, OperationError
from cpmm_adapter.types import Cluster, TokenInfo, WSOL_MINT


class TestLayouts:

    def test_parse_pool_state(self):
        keys = [new_address() for _ in range(7)]
        data = encode_pool_state(
            *keys,
            lp_supply=123_456,
            protocol_fees=(11, 12),
            fund_fees=(21, 22),
            decimals=(9, 6, 9),
            open_time=1_700_000_000,
        )

        state = parse_pool_state(data)

        assert state["amm_config"] == keys[0]
        assert (state["token_0_vault"], state["token_1_vault"]) == (keys[1], keys[2])
        assert state["lp_mint"] == keys[3]
        assert (state["token_0_mint"], state["token_1_mint"]) == (keys[4], keys[5])
        assert state["observation_key"] == keys[6]
        assert state["token_0_program"] == TOKEN_PROGRAM_ID
        assert (state["mint_0_decimals"], state["mint_1_decimals"], state["lp_mint_decimals"]) == (9, 6, 9)
        assert state["lp_supply"] == 123_456
        assert (state["protocol_fees_token_0"], state["protocol_fees_token_1"]) == (11, 12)
        assert (state["fund_fees_token_0"], state["fund_fees_token_1"]) == (21, 22)
        assert state["open_time"] == 1_700_000_000

    def test_short_pool_state(self):
        with pytest.raises(OperationError) as exc_info:
            parse_pool_state(b"\x00" * 100)
        assert exc_info.value.code == ErrorCode.POOL_DATA_FETCH_ERROR

    def test_parse_amm_config(self):
        config = parse_amm_config(encode_amm_config(index=3, trade_fee_rate=10_000))

        assert config["index"] == 3
        assert config["trade_fee_rate"] == 10_000
        assert config["create_pool_fee"] == 150_000_000

    def test_token_account_and_mint(self):
        assert parse_token_account_amount(encode_token_account(USDC_MINT, new_address(), 987_654)) == 987_654
        assert parse_mint_decimals(encode_mint(6)) == 6
        with pytest.raises(ValueError):
            parse_mint_decimals(b"\x00" * 40)

    def test_decode_account_data(self):
        assert decode_account_data(rpc_account(b"abc", TOKEN_PROGRAM_ID)) == b"abc"
        assert decode_account_data(None) is None
        assert decode_account_data({"data": {"parsed": {}}}) is None


class TestPda:

    def test_sort_mints(self):
        mint_0, mint_1, swapped = sort_mints(USDC_MINT, WSOL_MINT)
        assert bytes(Pubkey.from_string(mint_0)) < bytes(Pubkey.from_string(mint_1))
        assert sort_mints(mint_0, mint_1) == (mint_0, mint_1, False)
        assert sort_mints(mint_1, mint_0) == (mint_0, mint_1, True)
        assert swapped == (mint_0 == WSOL_MINT)

    def test_amm_config_index_big_endian(self):
        program = programs_for(Cluster.DEVNET).cpmm_program
        expected, _ = Pubkey.find_program_address(
            [b"amm_config", (1).to_bytes(2, "big")],
            Pubkey.from_string(program),
        )
        assert derive_amm_config(program, 1) == expected
        assert derive_amm_config(program, 0) != derive_amm_config(program, 1)

    def test_is_valid_address(self):
        assert is_valid_address(USDC_MINT)
        assert is_valid_address(Pubkey.new_unique())
        assert not is_valid_address("")
        assert not is_valid_address("not-a-key")
        assert not is_valid_address(None)

    def test_every_cluster_has_programs(self):
        for cluster in Cluster:
            assert is_valid_address(programs_for(cluster).cpmm_program)
        assert set(PROGRAMS) == set(Cluster)


class TestInstructions:

    def test_known_discriminators(self):
        assert DISCRIMINATORS["initialize"] == bytes([175, 175, 109, 31, 13, 152, 155, 237])
        assert DISCRIMINATORS["swap_base_input"] == bytes([143, 190, 90, 218, 196, 30, 51, 222])
        assert len(set(DISCRIMINATORS.values())) == len(DISCRIMINATORS)

    def test_initialize_keys(self):
        program = programs_for(Cluster.DEVNET)
        creator = Keypair().pubkey()
        amm_config = str(derive_amm_config(program.cpmm_program, 0))
        mint_0, mint_1, _ = sort_mints(USDC_MINT, WSOL_MINT)

        ix, keys = build_initialize_instruction(
            program_id=program.cpmm_program,
            creator=creator,
            fee_config_index=0,
            amm_config=amm_config,
            token_0=TokenInfo(mint_0, 9),
            token_1=TokenInfo(mint_1, 6),
            amount_0=1_000,
            amount_1=2_000,
            open_time=0,
            create_pool_fee_receiver=program.create_pool_fee_receiver,
        )

        assert keys["pool_id"] == str(derive_pool_state(program.cpmm_program, amm_config, mint_0, mint_1))
        assert (keys["mint_a"], keys["mint_b"]) == (mint_0, mint_1)
        assert bytes(ix.data)[:8] == DISCRIMINATORS["initialize"]
        assert struct.unpack("<QQQ", bytes(ix.data)[8:]) == (1_000, 2_000, 0)
        assert ix.accounts[0].pubkey == creator
        assert ix.accounts[0].is_signer

    def test_swap_accounts_follow_direction(self):
        pool = make_pool()
        payer = Keypair().pubkey()

        sell_a = build_swap_base_input_instruction(pool, payer, pool.mint_a.mint, 10, 5)
        sell_b = build_swap_base_input_instruction(pool, payer, pool.mint_b.mint, 10, 5)

        # input vault, output vault
        assert str(sell_a.accounts[6].pubkey) == pool.vault_a
        assert str(sell_a.accounts[7].pubkey) == pool.vault_b
        assert str(sell_b.accounts[6].pubkey) == pool.vault_b
        assert str(sell_b.accounts[7].pubkey) == pool.vault_a
        assert str(sell_a.accounts[12].pubkey) == pool.observation

    def test_withdraw_uses_user_atas(self):
        pool = make_pool()
        owner = Keypair().pubkey()

        ix = build_withdraw_instruction(pool, owner, 100, 99, 297)

        ata_a = get_associated_token_address(
            owner, Pubkey.from_string(pool.mint_a.mint), Pubkey.from_string(pool.mint_a.program_id)
        )
        assert ix.accounts[4].pubkey == ata_a
        assert struct.unpack("<QQQ", bytes(ix.data)[8:]) == (100, 99, 297)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
