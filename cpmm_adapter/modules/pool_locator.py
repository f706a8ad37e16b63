"""
Pool Locator

Resolves which pool an operation targets and loads its state, either from
the off-chain index (MAINNET) or straight from chain (DEVNET).
"""

import logging
import struct
from decimal import Decimal
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..cpmm.constants import DEFAULT_POOL_IDS, POOL_STATE_SIZE, programs_for
from ..cpmm.layouts import (
    decode_account_data,
    parse_amm_config,
    parse_pool_state,
    parse_token_account_amount,
)
from ..cpmm.pda import derive_lp_mint, derive_observation, derive_vault, sort_mints
from ..errors import ErrorCode, OperationError
from ..infra.batch import BatchResult
from ..types import PoolSortBy, PoolState, TokenInfo, TOKEN_PROGRAM

if TYPE_CHECKING:
    from ..client import CpmmClient

logger = logging.getLogger(__name__)

# Byte offsets of token_0_mint / token_1_mint inside PoolState
_MINT_0_OFFSET = 168
_MINT_1_OFFSET = 200


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value or 0))
    except ArithmeticError:
        return Decimal(0)


def _token_from_index(raw: Dict[str, Any]) -> TokenInfo:
    return TokenInfo(
        mint=raw["address"],
        decimals=int(raw["decimals"]),
        program_id=raw.get("programId") or TOKEN_PROGRAM,
        symbol=raw.get("symbol") or "",
    )


class PoolLocator:
    """
    Pool resolution and state loading

    Usage:
        pool_id = await client.pools.resolve_pool_id(mint_a=SOL, mint_b=USDC)
        pool = await client.pools.fetch_pool_state(pool_id, include_live_reserves=True)
    """

    def __init__(self, client: "CpmmClient"):
        self._client = client

    @property
    def _cluster(self):
        return self._client.cluster

    @property
    def _program_id(self) -> str:
        return programs_for(self._cluster).cpmm_program

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @staticmethod
    def check_identifier(
        pool_id: Optional[str] = None,
        mint_a: Optional[str] = None,
        mint_b: Optional[str] = None,
    ):
        """Reject a half-specified mint pair before any network access"""
        if not pool_id and bool(mint_a) != bool(mint_b):
            raise OperationError(
                "Both mint_a and mint_b are required to search for a pool",
                ErrorCode.MISSING_POOL_IDENTIFIER,
                details={"mint_a": mint_a, "mint_b": mint_b},
            )

    async def resolve_pool_id(
        self,
        pool_id: Optional[str] = None,
        mint_a: Optional[str] = None,
        mint_b: Optional[str] = None,
        auto_select_best: bool = True,
        sort_by: PoolSortBy = PoolSortBy.LIQUIDITY,
    ) -> str:
        """
        Pick the target pool

        Precedence: explicit pool_id, then a search on both mints (best by
        sort_by, or the first result), then the cluster default pool.

        Raises:
            OperationError: MISSING_POOL_IDENTIFIER when exactly one mint is given
        """
        self.check_identifier(pool_id, mint_a, mint_b)

        if pool_id:
            return pool_id

        if mint_a and mint_b:
            if auto_select_best:
                best = await self.find_best_pool(mint_a, mint_b, sort_by)
                logger.info(f"Selected pool {best.id} for {mint_a[:8]}.../{mint_b[:8]}... by {sort_by.value}")
                return best.id
            pools = await self.find_pools(mint_a, mint_b, sort_by)
            return pools[0].id

        if self._cluster not in DEFAULT_POOL_IDS:
            raise OperationError("No default pool for cluster", ErrorCode.MISSING_POOL_IDENTIFIER)
        default_id = DEFAULT_POOL_IDS[self._cluster]
        logger.info(f"No pool identifier given, using default pool {default_id}")
        return default_id

    # ------------------------------------------------------------------
    # State loading
    # ------------------------------------------------------------------

    async def fetch_pool_state(self, pool_id: str, include_live_reserves: bool = False) -> PoolState:
        """
        Load a pool snapshot

        MAINNET reads the index and validates the owning program. DEVNET
        reads the account from chain and always includes live reserves.

        Raises:
            OperationError: POOL_NOT_FOUND, INVALID_POOL_TYPE,
                POOL_DATA_FETCH_ERROR or MISSING_RPC_DATA
        """
        try:
            if self._cluster.has_pool_index:
                pool = await self._fetch_from_index(pool_id)
                if include_live_reserves:
                    pool = await self._with_live_reserves(pool)
                return pool
            return await self._fetch_from_chain(pool_id)
        except OperationError:
            raise
        except (KeyError, TypeError, ValueError, struct.error) as e:
            raise OperationError(
                f"Unreadable pool data for {pool_id}: {e}",
                ErrorCode.POOL_DATA_FETCH_ERROR,
                cause=e,
                details={"pool_id": pool_id},
            ) from e

    async def _fetch_from_index(self, pool_id: str) -> PoolState:
        pools = await self._client.api.fetch_pools_by_ids([pool_id])
        raw = next((p for p in pools if p.get("id") == pool_id), None)
        if raw is None:
            raise OperationError(f"Pool {pool_id} not found", ErrorCode.POOL_NOT_FOUND, details={"pool_id": pool_id})

        if raw.get("programId") != self._program_id:
            raise OperationError(
                f"Pool {pool_id} is not a CPMM pool (program={raw.get('programId')})",
                ErrorCode.INVALID_POOL_TYPE,
                details={"pool_id": pool_id, "program_id": raw.get("programId")},
            )
        return self._pool_from_index(raw)

    def _pool_from_index(self, raw: Dict[str, Any]) -> PoolState:
        program_id = raw["programId"]
        pool_id = raw["id"]
        mint_a = _token_from_index(raw["mintA"])
        mint_b = _token_from_index(raw["mintB"])

        lp_raw = raw.get("lpMint") or {}
        lp_mint = TokenInfo(
            mint=lp_raw.get("address") or str(derive_lp_mint(program_id, pool_id)),
            decimals=int(lp_raw.get("decimals", mint_a.decimals)),
        )
        fee_config = raw.get("config") or {}

        return PoolState(
            id=pool_id,
            program_id=program_id,
            amm_config=fee_config.get("id", ""),
            mint_a=mint_a,
            mint_b=mint_b,
            lp_mint=lp_mint,
            vault_a=str(derive_vault(program_id, pool_id, mint_a.mint)),
            vault_b=str(derive_vault(program_id, pool_id, mint_b.mint)),
            observation=str(derive_observation(program_id, pool_id)),
            tvl=_decimal(raw.get("tvl")),
            volume_24h=_decimal((raw.get("day") or {}).get("volume")),
            open_time=int(raw.get("openTime") or 0),
        )

    async def _fetch_from_chain(self, pool_id: str) -> PoolState:
        account = await self._client.rpc.get_account_info(pool_id)
        if not account:
            raise OperationError(f"Pool {pool_id} not found", ErrorCode.POOL_NOT_FOUND, details={"pool_id": pool_id})

        owner = account.get("owner")
        if owner != self._program_id:
            raise OperationError(
                f"Account {pool_id} not owned by the CPMM program (owner={owner})",
                ErrorCode.INVALID_POOL_TYPE,
                details={"pool_id": pool_id, "program_id": owner},
            )

        data = decode_account_data(account)
        if data is None:
            raise OperationError(f"Invalid account data format for {pool_id}", ErrorCode.POOL_DATA_FETCH_ERROR)

        pool = self._pool_from_account(pool_id, parse_pool_state(data))
        return await self._with_live_reserves(pool)

    def _pool_from_account(self, pool_id: str, state: Dict[str, Any]) -> PoolState:
        return PoolState(
            id=pool_id,
            program_id=self._program_id,
            amm_config=state["amm_config"],
            mint_a=TokenInfo(state["token_0_mint"], state["mint_0_decimals"], state["token_0_program"]),
            mint_b=TokenInfo(state["token_1_mint"], state["mint_1_decimals"], state["token_1_program"]),
            lp_mint=TokenInfo(state["lp_mint"], state["lp_mint_decimals"]),
            vault_a=state["token_0_vault"],
            vault_b=state["token_1_vault"],
            observation=state["observation_key"],
            lp_supply=state["lp_supply"],
            open_time=state["open_time"],
        )

    async def _with_live_reserves(self, pool: PoolState) -> PoolState:
        """
        Attach reserves, LP supply and trade fee read in one getMultipleAccounts
        call, so all of them come from the same slot.
        """
        addresses = [pool.id, pool.vault_a, pool.vault_b]
        if pool.amm_config:
            addresses.append(pool.amm_config)
        accounts = await self._client.rpc.get_multiple_accounts(addresses)
        raw = [decode_account_data(a) for a in accounts]

        if len(raw) < 3 or any(r is None for r in raw[:3]):
            raise OperationError(
                f"Missing on-chain data for pool {pool.id}",
                ErrorCode.MISSING_RPC_DATA,
                details={"pool_id": pool.id},
            )

        state = parse_pool_state(raw[0])
        amm_config = pool.amm_config or state["amm_config"]
        config_data = raw[3] if len(raw) > 3 else None
        if config_data is None:
            # Index did not report the fee tier; read it now
            config_account = await self._client.rpc.get_account_info(amm_config)
            config_data = decode_account_data(config_account)
        if config_data is None:
            raise OperationError(
                f"Missing fee config {amm_config} for pool {pool.id}",
                ErrorCode.MISSING_RPC_DATA,
                details={"pool_id": pool.id, "amm_config": amm_config},
            )
        fee_config = parse_amm_config(config_data)

        reserve_a = (
            parse_token_account_amount(raw[1])
            - state["protocol_fees_token_0"]
            - state["fund_fees_token_0"]
        )
        reserve_b = (
            parse_token_account_amount(raw[2])
            - state["protocol_fees_token_1"]
            - state["fund_fees_token_1"]
        )

        return PoolState(
            id=pool.id,
            program_id=pool.program_id,
            amm_config=amm_config,
            mint_a=pool.mint_a,
            mint_b=pool.mint_b,
            lp_mint=pool.lp_mint,
            vault_a=pool.vault_a,
            vault_b=pool.vault_b,
            observation=pool.observation,
            reserve_a=reserve_a,
            reserve_b=reserve_b,
            lp_supply=state["lp_supply"],
            trade_fee_rate=fee_config["trade_fee_rate"],
            open_time=state["open_time"],
            tvl=pool.tvl,
            volume_24h=pool.volume_24h,
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def find_pools(
        self,
        mint_a: str,
        mint_b: str,
        sort_by: PoolSortBy = PoolSortBy.LIQUIDITY,
    ) -> List[PoolState]:
        """
        CPMM pools trading a mint pair, best first

        Raises:
            OperationError: NO_POOLS_FOUND or POOL_SEARCH_ERROR
        """
        try:
            if self._cluster.has_pool_index:
                pools = await self._search_index(mint_a, mint_b, sort_by)
            else:
                pools = await self._search_chain(mint_a, mint_b)
        except OperationError as e:
            raise OperationError(
                f"Pool search failed for {mint_a}/{mint_b}: {e.message}",
                ErrorCode.POOL_SEARCH_ERROR,
                cause=e,
                recoverable=e.recoverable,
            ) from e
        except (KeyError, TypeError, ValueError) as e:
            raise OperationError(
                f"Unreadable pool search result for {mint_a}/{mint_b}: {e}",
                ErrorCode.POOL_SEARCH_ERROR,
                cause=e,
            ) from e

        if not pools:
            raise OperationError(
                f"No CPMM pools found for {mint_a}/{mint_b}",
                ErrorCode.NO_POOLS_FOUND,
                details={"mint_a": mint_a, "mint_b": mint_b},
            )

        return self._rank(pools, sort_by)

    async def find_best_pool(
        self,
        mint_a: str,
        mint_b: str,
        sort_by: PoolSortBy = PoolSortBy.LIQUIDITY,
    ) -> PoolState:
        """Highest-ranked pool for the pair by TVL or 24h volume"""
        pools = await self.find_pools(mint_a, mint_b, sort_by)
        return pools[0]

    def _rank(self, pools: List[PoolState], sort_by: PoolSortBy) -> List[PoolState]:
        if sort_by is PoolSortBy.VOLUME_24H:
            key = lambda p: p.volume_24h
        elif self._cluster.has_pool_index:
            key = lambda p: p.tvl
        else:
            # No TVL without the index; LP supply stands in for depth
            key = lambda p: p.lp_supply or 0
        return sorted(pools, key=key, reverse=True)

    async def _search_index(self, mint_a: str, mint_b: str, sort_by: PoolSortBy) -> List[PoolState]:
        results = await self._client.api.fetch_pools_by_mints(mint_a, mint_b, sort_field=sort_by.value)
        return [
            self._pool_from_index(raw)
            for raw in results
            if raw.get("programId") == self._program_id
        ]

    async def _search_chain(self, mint_a: str, mint_b: str) -> List[PoolState]:
        mint_0, mint_1, _ = sort_mints(mint_a, mint_b)
        filters = [
            {"dataSize": POOL_STATE_SIZE},
            {"memcmp": {"offset": _MINT_0_OFFSET, "bytes": mint_0}},
            {"memcmp": {"offset": _MINT_1_OFFSET, "bytes": mint_1}},
        ]
        accounts = await self._client.rpc.get_program_accounts(self._program_id, filters=filters)

        pools = []
        for entry in accounts:
            data = decode_account_data(entry.get("account"))
            if data is None:
                continue
            pools.append(self._pool_from_account(entry["pubkey"], parse_pool_state(data)))
        return pools

    async def pool_details(self, mint_a: str, mint_b: str) -> BatchResult:
        """
        Live snapshots of every pool for a pair

        Pools whose reserves cannot be loaded land in BatchResult.failed
        instead of failing the whole call.
        """
        pools = await self.find_pools(mint_a, mint_b)
        return await self._client.batch.run(pools, self._with_live_reserves)

