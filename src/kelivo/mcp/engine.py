"""Minimal MCP server engine over JSON-RPC 2.0.

Implements the subset of MCP the in-process servers need: ``initialize``,
``tools/list`` and ``tools/call``. The engine never touches a socket; a
transport (see ``kelivo.mcp.transport``) feeds it decoded messages.

Error tiers:
- Malformed requests and unknown methods are JSON-RPC errors.
- An unknown tool name is a JSON-RPC error (-32101).
- A known tool that rejects its arguments or fails while running returns a
  successful RPC result whose body has ``isError: true``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..errors import ToolNotFoundError, ValidationError, get_error_code
from ..rpc.types import (
    DEFAULT_PROTOCOL_VERSION,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    JSON,
    METHOD_CALL_TOOL,
    METHOD_INITIALIZE,
    METHOD_LIST_TOOLS,
    METHOD_NOT_FOUND,
    RpcError,
    jsonrpc_error,
    jsonrpc_noop,
    jsonrpc_result,
)
from .tools import ToolCallResult, ToolRegistry

logger = logging.getLogger(__name__)


@runtime_checkable
class LocalMcpServer(Protocol):
    """What a transport needs from a server engine."""

    async def handle_message(self, message: Any) -> Any:
        ...

    def close(self) -> None:
        ...


class McpServerEngine:
    """JSON-RPC dispatcher bound to a fixed tool registry."""

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        server_name: str,
        server_version: str = "0.1.0",
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    ) -> None:
        self._registry = registry
        self._server_name = server_name
        self._server_version = server_version
        self._protocol_version = protocol_version
        self._closed = False

    @property
    def name(self) -> str:
        return self._server_name

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def closed(self) -> bool:
        return self._closed

    async def handle_message(self, message: Any) -> JSON | list[JSON] | None:
        """Handle one request or a batch.

        Returns None once the engine is closed.
        """
        if self._closed:
            return None

        if isinstance(message, list):
            return [await self._handle_single(item) for item in message]
        return await self._handle_single(message)

    def close(self) -> None:
        if not self._closed:
            logger.debug("MCP server %s closed", self._server_name)
        self._closed = True

    async def _handle_single(self, raw: Any) -> JSON:
        try:
            if not isinstance(raw, Mapping):
                return jsonrpc_error(None, RpcError(INVALID_REQUEST, "Invalid Request"))

            req_id = raw.get("id")
            method = raw.get("method")
            method = "" if method is None else str(method)
            params = raw.get("params")
            if not isinstance(params, Mapping):
                params = {}

            logger.debug(
                "MCP request server=%s method=%s req_id=%s",
                self._server_name,
                method,
                req_id,
            )

            if method == METHOD_INITIALIZE:
                return jsonrpc_result(req_id, self._initialize_result())

            if method == METHOD_LIST_TOOLS:
                return jsonrpc_result(req_id, {"tools": self._registry.describe_all()})

            if method == METHOD_CALL_TOOL:
                return await self._call_tool(req_id, params)

            # Notifications (initialized, cancelled, ...) are ignored.
            if req_id is None:
                return jsonrpc_noop()
            logger.warning("MCP server %s: unknown method %s", self._server_name, method)
            return jsonrpc_error(
                req_id,
                RpcError(METHOD_NOT_FOUND, f"Method not found: {method}"),
            )
        except Exception as e:
            logger.exception("MCP server %s: internal error", self._server_name)
            return jsonrpc_error(None, RpcError(INTERNAL_ERROR, f"Internal error: {e}"))

    def _initialize_result(self) -> JSON:
        return {
            "serverInfo": {
                "name": self._server_name,
                "version": self._server_version,
            },
            "protocolVersion": self._protocol_version,
            # Only the tools capability is advertised
            "capabilities": {
                "tools": {"listChanged": False},
            },
        }

    async def _call_tool(self, req_id: Any, params: Mapping[str, Any]) -> JSON:
        name = params.get("name")
        tool = self._registry.get(name)
        if tool is None:
            err = ToolNotFoundError(name)
            logger.warning("MCP server %s: %s", self._server_name, err.message)
            return jsonrpc_error(req_id, RpcError(get_error_code(err), err.message))

        arguments = params.get("arguments")
        if not isinstance(arguments, Mapping):
            arguments = {}

        try:
            parsed = tool.parse_arguments(arguments)
        except ValidationError as e:
            logger.info("Tool %s rejected arguments: %s", tool.name, e.message)
            return jsonrpc_result(req_id, ToolCallResult.error(e.message).to_dict())

        logger.info("Tool called: %s", tool.name)
        result = await tool.invoke(parsed)
        if result.is_error:
            logger.info("Tool %s returned an error: %s", tool.name, result.text)
        return jsonrpc_result(req_id, result.to_dict())
