"""RPC types and utilities.

Core types, error codes, and JSON-RPC 2.0 envelope helpers shared by the
MCP server engines and the in-process client.
"""

from __future__ import annotations

from typing import Any

# Type alias for JSON-serializable dict
JSON = dict[str, Any]

JSONRPC_VERSION = "2.0"


class RpcError(Exception):
    """JSON-RPC error with code, message, and optional data."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> JSON:
        """Convert to JSON-RPC error object."""
        result: JSON = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result

    @classmethod
    def from_dict(cls, error: Any) -> "RpcError":
        """Build from a JSON-RPC error object received on the wire."""
        if not isinstance(error, dict):
            return cls(INTERNAL_ERROR, f"Malformed error object: {error!r}")
        code = error.get("code")
        return cls(
            code=code if isinstance(code, int) else INTERNAL_ERROR,
            message=str(error.get("message", "")),
            data=error.get("data"),
        )


# Standard JSON-RPC error codes
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

# Implementation-defined codes
TOOL_NOT_FOUND = -32101

# MCP method names and protocol revision
METHOD_INITIALIZE = "initialize"
METHOD_LIST_TOOLS = "tools/list"
METHOD_CALL_TOOL = "tools/call"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"


def jsonrpc_error(request_id: str | int | None, error: RpcError) -> JSON:
    """Build a JSON-RPC 2.0 error response.

    The ``id`` key is left out when the request carried no id.
    """
    response: JSON = {"jsonrpc": JSONRPC_VERSION}
    if request_id is not None:
        response["id"] = request_id
    response["error"] = error.to_dict()
    return response


def jsonrpc_result(request_id: str | int | None, result: Any) -> JSON:
    """Build a JSON-RPC 2.0 success response."""
    response: JSON = {"jsonrpc": JSONRPC_VERSION}
    if request_id is not None:
        response["id"] = request_id
    response["result"] = result
    return response


def jsonrpc_noop() -> JSON:
    """Empty envelope returned for ignored notifications.

    Never deliver this to a peer; transports drop it.
    """
    return {"jsonrpc": JSONRPC_VERSION}


def is_noop(response: Any) -> bool:
    """True for the bare envelope produced by :func:`jsonrpc_noop`."""
    return isinstance(response, dict) and "result" not in response and "error" not in response
