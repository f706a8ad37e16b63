"""
Test Errors Module

Tests for cpmm_adapter.errors package.
"""

import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))


def test_error_code():
    """Test ErrorCode enum"""
    from cpmm_adapter.errors import ErrorCode

    print("Testing ErrorCode...")

    # Values are the stable string codes
    for code in ErrorCode:
        assert code.value == code.name
    assert ErrorCode.INVALID_SLIPPAGE_RANGE.value == "INVALID_SLIPPAGE_RANGE"

    print("  ErrorCode: PASSED")


def test_operation_error():
    """Test OperationError base class"""
    from cpmm_adapter.errors import ErrorCode, OperationError

    print("Testing OperationError...")

    error = OperationError(
        message="Test error",
        code=ErrorCode.POOL_NOT_FOUND,
        operation="add_liquidity",
    )

    # __str__ returns "[code] message" format
    assert str(error) == "[POOL_NOT_FOUND] Test error"
    assert error.operation == "add_liquidity"
    assert error.recoverable is False
    assert error.should_retry is False
    assert error.details == {}

    print("  OperationError: PASSED")


def test_validation_factory():
    """Test OperationError.validation"""
    from cpmm_adapter.errors import ErrorCode, OperationError

    print("Testing OperationError.validation...")

    error = OperationError.validation(
        ErrorCode.INVALID_SLIPPAGE_RANGE,
        "out of range",
        "swap_exact_in",
        slippage_bps=0,
    )
    assert error.code == ErrorCode.INVALID_SLIPPAGE_RANGE
    assert error.operation == "swap_exact_in"
    assert error.details == {"slippage_bps": 0}
    assert not error.recoverable

    print("  OperationError.validation: PASSED")


def test_wrap():
    """Test OperationError.wrap keeps the cause"""
    from cpmm_adapter.errors import ErrorCode, OperationError

    print("Testing OperationError.wrap...")

    cause = KeyError("mintA")
    error = OperationError.wrap("create_pool", cause)
    assert error.code == ErrorCode.OPERATION_FAILED
    assert error.operation == "create_pool"
    assert error.cause is cause
    assert "create_pool failed" in error.message

    print("  OperationError.wrap: PASSED")


def test_rpc_error():
    """Test RpcError exception"""
    from cpmm_adapter.errors import ErrorCode, RpcError

    print("Testing RpcError...")

    error1 = RpcError.connection_failed("https://rpc.example.com")
    assert error1.code == ErrorCode.RPC_CONNECTION_FAILED
    assert error1.recoverable is True
    assert error1.endpoint == "https://rpc.example.com"

    error2 = RpcError.timeout("https://rpc.example.com", 30.0)
    assert error2.code == ErrorCode.RPC_TIMEOUT
    assert "30.0" in error2.message

    error3 = RpcError.rate_limited("https://rpc.example.com")
    assert error3.code == ErrorCode.RPC_RATE_LIMITED

    error4 = RpcError.api_failed("https://api-v3.raydium.io/pools/info/ids", "HTTP 500")
    assert error4.code == ErrorCode.API_REQUEST_FAILED
    assert error4.recoverable is True

    print("  RpcError: PASSED")


def test_curve_error():
    """Test CurveError factories"""
    from cpmm_adapter.errors import CurveError, ErrorCode

    print("Testing CurveError...")

    error = CurveError.insufficient_liquidity(5_000, 3_000)
    assert error.code == ErrorCode.INSUFFICIENT_LIQUIDITY
    assert error.details == {"output_amount": 5_000, "destination_reserve": 3_000}
    assert not error.recoverable

    assert CurveError.invalid_slippage(10_001).code == ErrorCode.INVALID_SLIPPAGE
    assert CurveError.invalid_amount("input_amount", 0).code == ErrorCode.INVALID_INPUT_AMOUNT

    print("  CurveError: PASSED")


def test_configuration_error():
    """Test ConfigurationError factories"""
    from cpmm_adapter.errors import ConfigurationError, ErrorCode

    print("Testing ConfigurationError...")

    assert ConfigurationError.missing("rpc_url").code == ErrorCode.CONFIG_MISSING
    invalid = ConfigurationError.invalid("cluster", "unsupported cluster 'testnet'")
    assert invalid.code == ErrorCode.CONFIG_INVALID
    assert invalid.param_name == "cluster"
    assert ConfigurationError.unsupported_cluster("localnet", "explorer").code == ErrorCode.UNSUPPORTED_CLUSTER

    print("  ConfigurationError: PASSED")


def test_error_inheritance():
    """Test exception inheritance"""
    from cpmm_adapter.errors import ConfigurationError, CurveError, OperationError, RpcError

    print("Testing error inheritance...")

    assert issubclass(RpcError, OperationError)
    assert issubclass(CurveError, OperationError)
    assert issubclass(ConfigurationError, OperationError)
    assert issubclass(OperationError, Exception)

    print("  Error inheritance: PASSED")


if __name__ == "__main__":
    test_error_code()
    test_operation_error()
    test_validation_factory()
    test_wrap()
    test_rpc_error()
    test_curve_error()
    test_configuration_error()
    test_error_inheritance()
    print("\nAll error tests passed!")
