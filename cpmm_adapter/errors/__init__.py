"""
Error definitions for CPMM Adapter
"""

from .exceptions import (
    ErrorCode,
    OperationError,
    RpcError,
    CurveError,
    ConfigurationError,
)

__all__ = [
    "ErrorCode",
    "OperationError",
    "RpcError",
    "CurveError",
    "ConfigurationError",
]
