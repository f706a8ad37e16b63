"""
Connection health checks and reconnect with exponential backoff
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Optional

from .rpc import RpcClient
from ..config import config as global_config

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """RPC connection states"""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ConnectionState:
    """
    Snapshot of the connection state

    Attributes:
        status: Current status
        last_error: Message of the most recent probe failure
        retry_count: Reconnect attempts made since the last fresh check
        max_retries: Attempts allowed before giving up
    """
    status: ConnectionStatus
    last_error: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 5


class ConnectionManager:
    """
    Tracks RPC health and reconnects with capped exponential backoff.

    Retry attempt n (0-based) waits min(2**n * base_delay, max_delay)
    seconds before probing again. After max_retries failed attempts the
    status becomes DISCONNECTED and stays there until the next
    check_connection().

    Usage:
        manager = ConnectionManager(rpc)
        ok = await manager.check_connection()
        manager.state.status
    """

    def __init__(
        self,
        rpc: RpcClient,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._rpc = rpc
        self._base_delay = base_delay if base_delay is not None else global_config.connection.base_delay
        self._max_delay = max_delay if max_delay is not None else global_config.connection.max_delay
        self._sleep = sleep
        self._state = ConnectionState(
            status=ConnectionStatus.CONNECTING,
            max_retries=max_retries if max_retries is not None else global_config.connection.max_retries,
        )
        self._lock = asyncio.Lock()
        self._pending_checks = 0
        self._backoff_sleep: Optional[asyncio.Future] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.status == ConnectionStatus.CONNECTED

    def _set(self, **changes):
        previous = self._state.status
        self._state = replace(self._state, **changes)
        if self._state.status != previous:
            logger.info(f"Connection {previous.value} -> {self._state.status.value}")

    def backoff_delay(self, retry_count: int) -> float:
        """Seconds to wait before reconnect attempt retry_count (0-based)"""
        return min((2 ** retry_count) * self._base_delay, self._max_delay)

    def set_max_retries(self, max_retries: int):
        """Change the attempt limit; retry_count is clamped to the new limit"""
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._set(max_retries=max_retries, retry_count=min(self._state.retry_count, max_retries))

    async def _probe(self) -> Optional[str]:
        """Return None when the endpoint answers, else the failure message"""
        try:
            info = await self._rpc.get_latest_blockhash()
            if not info or not info.get("blockhash"):
                return "Endpoint returned no blockhash"
            return None
        except Exception as e:
            return str(e)

    def _interrupt_backoff(self):
        if self._backoff_sleep is not None and not self._backoff_sleep.done():
            self._backoff_sleep.cancel()

    async def check_connection(self) -> bool:
        """
        Fresh connectivity check

        Resets the retry count, probes the endpoint and falls through to
        reconnect() on failure. A reconnect loop already running is
        stopped at its next backoff wait and returns False.

        Returns:
            True if connected when the call returns
        """
        self._pending_checks += 1
        self._interrupt_backoff()
        try:
            await self._lock.acquire()
        finally:
            self._pending_checks -= 1
        try:
            self._set(status=ConnectionStatus.CONNECTING, retry_count=0)
            error = await self._probe()
            if error is None:
                self._set(status=ConnectionStatus.CONNECTED, last_error=None)
                return True

            logger.warning(f"Connection check failed: {error}")
            self._set(status=ConnectionStatus.ERROR, last_error=error)
            return await self._reconnect()
        finally:
            self._lock.release()

    async def reconnect(self) -> bool:
        """Retry the connection with backoff until connected or out of retries"""
        async with self._lock:
            return await self._reconnect()

    async def _backoff(self, delay: float) -> bool:
        """Wait delay seconds; False if a fresh check interrupted the wait"""
        if self._pending_checks:
            return False
        sleeper = asyncio.ensure_future(self._sleep(delay))
        self._backoff_sleep = sleeper
        try:
            await asyncio.wait({sleeper})
        finally:
            self._backoff_sleep = None
            if not sleeper.done():
                sleeper.cancel()
        return not sleeper.cancelled()

    async def _reconnect(self) -> bool:
        while self._state.retry_count < self._state.max_retries:
            delay = self.backoff_delay(self._state.retry_count)
            self._set(
                status=ConnectionStatus.RECONNECTING,
                retry_count=self._state.retry_count + 1,
            )
            logger.info(
                f"Reconnect attempt {self._state.retry_count}/{self._state.max_retries} in {delay:.1f}s"
            )
            if not await self._backoff(delay):
                logger.info("Reconnect loop superseded by a fresh connection check")
                return False

            error = await self._probe()
            if error is None:
                self._set(status=ConnectionStatus.CONNECTED, last_error=None, retry_count=0)
                return True
            self._set(last_error=error)
            logger.warning(f"Reconnect attempt {self._state.retry_count} failed: {error}")

        self._set(status=ConnectionStatus.DISCONNECTED)
        logger.error(f"Giving up after {self._state.max_retries} reconnect attempts: {self._state.last_error}")
        return False

    async def update_endpoint(self, endpoint: str) -> bool:
        """Switch the RPC endpoint and run a fresh check against it"""
        self._rpc.set_endpoint(endpoint)
        return await self.check_connection()
