"""
Async RPC Client for Solana

Provides a JSON-RPC interface with:
- Multiple endpoint fallback
- Rate limit detection
- Request timeout management

Transport errors are mapped to RpcError and surfaced. Reconnection with
backoff is handled by ConnectionManager, not here.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from ..errors import RpcError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)


@dataclass
class RpcClientConfig:
    """
    RPC client runtime configuration

    Allows per-client overrides while pulling defaults from the global
    config (cpmm_adapter.config.RpcConfig / TxConfig).

    Usage:
        config = RpcClientConfig(timeout_seconds=60)
        client = RpcClient(endpoint, config=config)
    """
    timeout_seconds: float = None
    commitment: str = None
    poll_interval: float = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.timeout_seconds is None:
            self.timeout_seconds = global_config.rpc.timeout_seconds
        if self.commitment is None:
            self.commitment = global_config.rpc.commitment
        if self.poll_interval is None:
            self.poll_interval = global_config.tx.poll_interval


class RpcClient:
    """
    Async Solana RPC client

    Usage:
        rpc = RpcClient([
            "https://primary-rpc.example.com",
            "https://backup-rpc.example.com",
        ])

        data = await rpc.get_account_info("AccountAddress...")
        result = await rpc.call("getSlot", [])
        await rpc.close()
    """

    def __init__(
        self,
        endpoint: Union[str, List[str]],
        config: Optional[RpcClientConfig] = None,
    ):
        """
        Initialize RPC client

        Args:
            endpoint: RPC endpoint URL or list of URLs (for fallback)
            config: RPC configuration options
        """
        self._endpoints = [endpoint] if isinstance(endpoint, str) else list(endpoint)
        self._endpoints = [e for e in self._endpoints if e]
        if not self._endpoints:
            raise ConfigurationError.missing("RPC endpoint")

        self._config = config or RpcClientConfig()
        self._current_endpoint_idx = 0
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    @property
    def endpoint(self) -> str:
        """Current active endpoint"""
        return self._endpoints[self._current_endpoint_idx]

    @property
    def commitment(self) -> str:
        """Default commitment level"""
        return self._config.commitment

    def set_endpoint(self, endpoint: str):
        """Replace the endpoint list with a single endpoint"""
        if not endpoint:
            raise ConfigurationError.missing("RPC endpoint")
        self._endpoints = [endpoint]
        self._current_endpoint_idx = 0
        logger.info(f"RPC endpoint set to {endpoint}")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            async with self._client_lock:
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        timeout=self._config.timeout_seconds,
                        headers={"Content-Type": "application/json"},
                    )
        return self._client

    def _rotate_endpoint(self):
        """Rotate to next endpoint on failure"""
        if len(self._endpoints) > 1:
            self._current_endpoint_idx = (self._current_endpoint_idx + 1) % len(self._endpoints)
            logger.info(f"Rotating to RPC endpoint: {self.endpoint}")

    async def call(
        self,
        method: str,
        params: List[Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make JSON-RPC call

        Each configured endpoint is tried at most once.

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Optional timeout override

        Returns:
            RPC result

        Raises:
            RpcError: On RPC failure
        """
        client = await self._get_client()
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }
        timeout_val = timeout or self._config.timeout_seconds

        last_error: Optional[RpcError] = None
        for _ in range(len(self._endpoints)):
            endpoint = self.endpoint
            try:
                response = await client.post(endpoint, json=body, timeout=timeout_val)

                if response.status_code == 429:
                    logger.warning(f"Rate limited by {endpoint}")
                    last_error = RpcError.rate_limited(endpoint)
                    self._rotate_endpoint()
                    continue

                response.raise_for_status()
                result = response.json()

                if "error" in result:
                    error = result["error"]
                    rpc_error = RpcError.invalid_response(endpoint, method, error.get("message", error))
                    rpc_error.details["rpc_error_code"] = error.get("code")
                    rpc_error.details["rpc_error_data"] = error.get("data")
                    raise rpc_error

                return result.get("result")

            except httpx.TimeoutException:
                last_error = RpcError.timeout(endpoint, timeout_val)
                logger.warning(f"RPC timeout calling {method}: {endpoint}")

            except httpx.HTTPStatusError as e:
                last_error = RpcError(
                    f"HTTP error {e.response.status_code}",
                    cause=e,
                    endpoint=endpoint,
                )
                logger.warning(f"RPC HTTP error calling {method}: {e}")

            except httpx.RequestError as e:
                last_error = RpcError.connection_failed(endpoint, e)
                logger.warning(f"RPC connection error calling {method}: {e}")

            except ValueError as e:
                last_error = RpcError(f"Malformed RPC response: {e}", cause=e, endpoint=endpoint)

            self._rotate_endpoint()

        raise last_error or RpcError("All RPC endpoints failed")

    async def get_account_info(
        self,
        address: str,
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Get account information

        Returns:
            Account info or None if not found
        """
        params = [
            address,
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = await self.call("getAccountInfo", params)
        return result.get("value") if result else None

    async def get_multiple_accounts(
        self,
        addresses: List[str],
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> List[Optional[Dict[str, Any]]]:
        """
        Get multiple accounts in one call (single slot snapshot)

        Returns:
            List of account info (None for accounts not found)
        """
        params = [
            addresses,
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = await self.call("getMultipleAccounts", params)
        return result.get("value", []) if result else []

    async def get_latest_blockhash(
        self,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get latest blockhash

        Returns:
            Dict with blockhash and lastValidBlockHeight
        """
        params = [{"commitment": commitment or self.commitment}]
        result = await self.call("getLatestBlockhash", params)
        return result.get("value", {}) if result else {}

    async def get_token_accounts_by_owner(
        self,
        owner: str,
        mint: Optional[str] = None,
        program_id: Optional[str] = None,
        encoding: str = "jsonParsed",
        commitment: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get token accounts owned by address

        Args:
            owner: Owner address
            mint: Optional mint filter
            program_id: Optional program filter (defaults to SPL Token)
            encoding: Data encoding

        Returns:
            List of token account info
        """
        if mint:
            filter_param = {"mint": mint}
        else:
            filter_param = {"programId": program_id or "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"}

        params = [
            owner,
            filter_param,
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = await self.call("getTokenAccountsByOwner", params)
        return result.get("value", []) if result else []

    async def get_recent_prioritization_fees(self, accounts: List[str]) -> List[Dict[str, Any]]:
        """
        Recent per-slot prioritization fees paid by transactions locking accounts

        Returns:
            List of {"slot": int, "prioritizationFee": int}
        """
        result = await self.call("getRecentPrioritizationFees", [accounts])
        return result or []

    async def get_program_accounts(
        self,
        program_id: str,
        filters: Optional[List[Dict[str, Any]]] = None,
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get all accounts owned by a program

        Example filters:
            [
                {"memcmp": {"offset": 0, "bytes": "base58_data"}},
                {"dataSize": 637}
            ]

        Returns:
            List of dicts with pubkey and account fields
        """
        config: Dict[str, Any] = {
            "encoding": encoding,
            "commitment": commitment or self.commitment,
        }
        if filters:
            config["filters"] = filters
        result = await self.call("getProgramAccounts", [program_id, config])
        return result or []

    async def send_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = False,
        preflight_commitment: Optional[str] = None,
    ) -> str:
        """
        Send signed transaction

        Returns:
            Transaction signature (base58)
        """
        tx_data = base64.b64encode(transaction).decode("ascii")
        params = [
            tx_data,
            {
                "skipPreflight": skip_preflight,
                "preflightCommitment": preflight_commitment or self.commitment,
                "encoding": "base64",
            },
        ]
        return await self.call("sendTransaction", params)

    async def simulate_transaction(
        self,
        transaction: bytes,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Simulate transaction execution (signature verification disabled)"""
        tx_data = base64.b64encode(transaction).decode("ascii")
        params = [
            tx_data,
            {
                "commitment": commitment or self.commitment,
                "encoding": "base64",
                "sigVerify": False,
                "replaceRecentBlockhash": True,
            },
        ]
        return await self.call("simulateTransaction", params)

    async def confirm_transaction(
        self,
        signature: str,
        commitment: Optional[str] = None,
        timeout_seconds: float = 60.0,
    ) -> Optional[bool]:
        """
        Wait for transaction confirmation

        Returns:
            True if confirmed at the requested commitment
            False if the transaction failed on-chain
            None if timeout (outcome unknown)
        """
        target = commitment or self.commitment
        accepted = ("finalized",) if target == "finalized" else ("confirmed", "finalized")
        start_time = time.monotonic()
        last_status = None

        while time.monotonic() - start_time < timeout_seconds:
            try:
                result = await self.call("getSignatureStatuses", [[signature]])
                if result and result.get("value"):
                    status = result["value"][0]
                    if status:
                        last_status = status
                        if status.get("err"):
                            logger.warning(f"Transaction {signature} failed on-chain: {status.get('err')}")
                            return False
                        if status.get("confirmationStatus") in accepted:
                            return True
            except RpcError as e:
                logger.debug(f"Error checking transaction status: {e}")

            await asyncio.sleep(self._config.poll_interval)

        if last_status is None:
            logger.warning(f"Transaction {signature} was never seen on chain (dropped/expired)")
        else:
            logger.warning(
                f"Transaction {signature} timeout. Last status: {last_status.get('confirmationStatus', 'unknown')}"
            )
        return None

    async def close(self):
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
