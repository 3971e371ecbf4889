"""RPC module for Kelivo.

JSON-RPC 2.0 types and utilities for the in-process MCP engines.
"""

from __future__ import annotations

from kelivo.rpc.types import (
    DEFAULT_PROTOCOL_VERSION,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    JSON,
    JSONRPC_VERSION,
    METHOD_CALL_TOOL,
    METHOD_INITIALIZE,
    METHOD_LIST_TOOLS,
    METHOD_NOT_FOUND,
    TOOL_NOT_FOUND,
    RpcError,
    is_noop,
    jsonrpc_error,
    jsonrpc_noop,
    jsonrpc_result,
)

__all__ = [
    # Types
    "JSON",
    "JSONRPC_VERSION",
    "RpcError",
    # Error codes
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INTERNAL_ERROR",
    "TOOL_NOT_FOUND",
    # MCP methods
    "METHOD_INITIALIZE",
    "METHOD_LIST_TOOLS",
    "METHOD_CALL_TOOL",
    "DEFAULT_PROTOCOL_VERSION",
    # Utilities
    "jsonrpc_error",
    "jsonrpc_result",
    "jsonrpc_noop",
    "is_noop",
]
