"""
Exception definitions for CPMM Adapter
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """
    Error codes for CPMM operations

    Values are the stable string codes surfaced to callers, grouped as:
    validation, pool resolution, fee configs, curve math, liquidity,
    transaction, RPC/index, configuration.
    """
    # Validation errors (raised before any network access)
    MISSING_SIGNER = "MISSING_SIGNER"
    MISSING_POOL_IDENTIFIER = "MISSING_POOL_IDENTIFIER"
    INVALID_MINT_ADDRESSES = "INVALID_MINT_ADDRESSES"
    DUPLICATE_MINT_ADDRESSES = "DUPLICATE_MINT_ADDRESSES"
    INVALID_AMOUNTS = "INVALID_AMOUNTS"
    INVALID_INPUT_AMOUNT = "INVALID_INPUT_AMOUNT"
    INVALID_SLIPPAGE_RANGE = "INVALID_SLIPPAGE_RANGE"
    INVALID_INPUT_MINT = "INVALID_INPUT_MINT"
    INVALID_OUTPUT_MINT = "INVALID_OUTPUT_MINT"
    INVALID_LP_AMOUNT = "INVALID_LP_AMOUNT"
    INVALID_LP_FEE_AMOUNT = "INVALID_LP_FEE_AMOUNT"
    MISSING_LOCK_RECEIPT = "MISSING_LOCK_RECEIPT"

    # Pool resolution errors
    POOL_NOT_FOUND = "POOL_NOT_FOUND"
    INVALID_POOL_TYPE = "INVALID_POOL_TYPE"
    NO_POOLS_FOUND = "NO_POOLS_FOUND"
    POOL_DATA_FETCH_ERROR = "POOL_DATA_FETCH_ERROR"
    POOL_SEARCH_ERROR = "POOL_SEARCH_ERROR"
    MISSING_RPC_DATA = "MISSING_RPC_DATA"
    TOKEN_INFO_FETCH_ERROR = "TOKEN_INFO_FETCH_ERROR"

    # Fee config errors
    NO_FEE_CONFIGS = "NO_FEE_CONFIGS"
    FEE_CONFIG_FETCH_ERROR = "FEE_CONFIG_FETCH_ERROR"
    INVALID_FEE_CONFIG_INDEX = "INVALID_FEE_CONFIG_INDEX"

    # Curve math errors
    INVALID_RESERVE = "INVALID_RESERVE"
    INSUFFICIENT_LIQUIDITY = "INSUFFICIENT_LIQUIDITY"
    INVALID_SLIPPAGE = "INVALID_SLIPPAGE"
    INVALID_FEE_RATE = "INVALID_FEE_RATE"

    # LP balance errors
    NO_LP_BALANCE = "NO_LP_BALANCE"
    INSUFFICIENT_LP_BALANCE = "INSUFFICIENT_LP_BALANCE"

    # Transaction errors
    TRANSACTION_EXECUTION_FAILED = "TRANSACTION_EXECUTION_FAILED"
    TRANSACTION_CONFIRMATION_TIMEOUT = "TRANSACTION_CONFIRMATION_TIMEOUT"

    # RPC / index API errors (recoverable)
    RPC_CONNECTION_FAILED = "RPC_CONNECTION_FAILED"
    RPC_TIMEOUT = "RPC_TIMEOUT"
    RPC_RATE_LIMITED = "RPC_RATE_LIMITED"
    RPC_INVALID_RESPONSE = "RPC_INVALID_RESPONSE"
    API_REQUEST_FAILED = "API_REQUEST_FAILED"

    # Operation errors
    OPERATION_FAILED = "OPERATION_FAILED"

    # Configuration errors
    SDK_INIT_FAILED = "SDK_INIT_FAILED"
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_MISSING = "CONFIG_MISSING"
    UNSUPPORTED_CLUSTER = "UNSUPPORTED_CLUSTER"


class OperationError(Exception):
    """
    Base exception for all CPMM adapter errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        operation: Name of the operation that failed (create_pool, swap_exact_in, ...)
        cause: The underlying exception if any
        recoverable: Whether the error might succeed on retry
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.operation = operation
        self.cause = cause
        self.recoverable = recoverable
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code.value}, "
            f"operation={self.operation!r}, message={self.message!r})"
        )

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable

    @classmethod
    def validation(cls, code: ErrorCode, message: str, operation: Optional[str] = None, **details) -> "OperationError":
        return cls(message, code, operation=operation, details=details or None)

    @classmethod
    def wrap(cls, operation: str, error: Exception) -> "OperationError":
        """Wrap an unexpected exception raised while running an operation"""
        return cls(
            f"{operation} failed: {error}",
            ErrorCode.OPERATION_FAILED,
            operation=operation,
            cause=error,
        )


class RpcError(OperationError):
    """
    RPC and index API errors - typically recoverable

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    - Rate limit is hit
    - Invalid response received
    - The off-chain index rejects a request
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        cause: Optional[Exception] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            cause=cause,
            recoverable=True,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            cause=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "RpcError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def rate_limited(cls, endpoint: str) -> "RpcError":
        return cls(
            "RPC rate limit exceeded",
            ErrorCode.RPC_RATE_LIMITED,
            endpoint=endpoint,
        )

    @classmethod
    def invalid_response(cls, endpoint: str, method: str, error: object) -> "RpcError":
        return cls(
            f"RPC error for {method}: {error}",
            ErrorCode.RPC_INVALID_RESPONSE,
            endpoint=endpoint,
        )

    @classmethod
    def api_failed(cls, url: str, reason: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Index API request failed: {reason}",
            ErrorCode.API_REQUEST_FAILED,
            cause=error,
            endpoint=url,
        )


class CurveError(OperationError):
    """
    Constant-product math rejected its inputs

    Never recoverable: the same inputs always fail the same way.
    """

    def __init__(self, message: str, code: ErrorCode, details: Optional[dict] = None):
        super().__init__(message, code, details=details)

    @classmethod
    def invalid_reserve(cls, source_reserve: int, destination_reserve: int) -> "CurveError":
        return cls(
            f"Pool reserves must be positive: source={source_reserve}, destination={destination_reserve}",
            ErrorCode.INVALID_RESERVE,
            details={"source_reserve": source_reserve, "destination_reserve": destination_reserve},
        )

    @classmethod
    def insufficient_liquidity(cls, output_amount: int, destination_reserve: int) -> "CurveError":
        return cls(
            f"Requested output {output_amount} exceeds available reserve {destination_reserve}",
            ErrorCode.INSUFFICIENT_LIQUIDITY,
            details={"output_amount": output_amount, "destination_reserve": destination_reserve},
        )

    @classmethod
    def invalid_slippage(cls, slippage_bps: int) -> "CurveError":
        return cls(
            f"Slippage must be between 0 and 10000 bps, got {slippage_bps}",
            ErrorCode.INVALID_SLIPPAGE,
            details={"slippage_bps": slippage_bps},
        )

    @classmethod
    def invalid_fee_rate(cls, fee_rate_bps: int) -> "CurveError":
        return cls(
            f"Fee rate must be in [0, 10000) bps, got {fee_rate_bps}",
            ErrorCode.INVALID_FEE_RATE,
            details={"fee_rate_bps": fee_rate_bps},
        )

    @classmethod
    def invalid_amount(cls, name: str, amount: int) -> "CurveError":
        return cls(
            f"{name} must be positive, got {amount}",
            ErrorCode.INVALID_INPUT_AMOUNT,
            details={name: amount},
        )


class ConfigurationError(OperationError):
    """
    Configuration errors

    Raised when:
    - Required configuration is missing
    - Configuration value is invalid
    - A cluster has no entry in a per-cluster table
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        param_name: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            details={"param": param_name} if param_name else None,
        )
        self.param_name = param_name

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING, param_name=param)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration for {param}: {reason}", ErrorCode.CONFIG_INVALID, param_name=param)

    @classmethod
    def unsupported_cluster(cls, cluster: object, table: str) -> "ConfigurationError":
        return cls(
            f"Cluster {cluster} has no entry in {table}",
            ErrorCode.UNSUPPORTED_CLUSTER,
            param_name=table,
        )
