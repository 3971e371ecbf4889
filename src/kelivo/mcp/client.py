"""In-process MCP client speaking to a local engine through the transport.

Assigns request ids, correlates responses, and turns JSON-RPC error
envelopes into ``RpcError``. Tool-level failures are not exceptions: they
come back as ``tools/call`` results with ``isError`` set.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

from ..errors import McpClientError
from ..rpc.types import (
    DEFAULT_PROTOCOL_VERSION,
    JSON,
    JSONRPC_VERSION,
    METHOD_CALL_TOOL,
    METHOD_INITIALIZE,
    METHOD_LIST_TOOLS,
    RpcError,
)
from ..settings import settings as default_settings
from .transport import LocalInMemoryClientTransport

logger = logging.getLogger(__name__)

CLIENT_NAME = "kelivo"
CLIENT_VERSION = "0.1.0"


class LocalMcpClient:
    """Request/response client over a ``LocalInMemoryClientTransport``."""

    def __init__(
        self,
        transport: LocalInMemoryClientTransport,
        *,
        timeout: float | None = None,
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    ) -> None:
        self._transport = transport
        self._timeout = default_settings.client_timeout if timeout is None else timeout
        self._protocol_version = protocol_version
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._server_info: JSON | None = None
        self._unsubscribe = transport.on_message(self._on_message)
        transport.on_close(self._on_transport_closed)

    @property
    def server_info(self) -> JSON | None:
        """``initialize`` result, once the handshake has run."""
        return self._server_info

    async def initialize(self) -> JSON:
        result = await self.request(
            METHOD_INITIALIZE,
            {
                "protocolVersion": self._protocol_version,
                "capabilities": {},
                "clientInfo": {"name": CLIENT_NAME, "version": CLIENT_VERSION},
            },
        )
        self._server_info = result
        self.notify("notifications/initialized")
        return result

    async def list_tools(self) -> list[JSON]:
        result = await self.request(METHOD_LIST_TOOLS)
        return list(result.get("tools", []))

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> JSON:
        return await self.request(
            METHOD_CALL_TOOL,
            {"name": name, "arguments": arguments or {}},
        )

    def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        message: JSON = {"jsonrpc": JSONRPC_VERSION, "method": method}
        if params is not None:
            message["params"] = params
        self._transport.send(message)

    async def request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send a request and wait for its result.

        Raises:
            RpcError: If the server answers with an error envelope.
            McpClientError: On timeout or when the transport is closed.
        """
        if self._transport.closed:
            raise McpClientError("Transport is closed", method=method)

        req_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[req_id] = future

        message: JSON = {"jsonrpc": JSONRPC_VERSION, "id": req_id, "method": method}
        if params is not None:
            message["params"] = params
        self._transport.send(message)

        try:
            return await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise McpClientError(
                f"Timed out after {self._timeout}s waiting for {method}",
                method=method,
            ) from e
        finally:
            self._pending.pop(req_id, None)

    def close(self) -> None:
        self._unsubscribe()
        self._transport.close()

    async def __aenter__(self) -> "LocalMcpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    def _on_message(self, payload: Any) -> None:
        responses = payload if isinstance(payload, list) else [payload]
        for response in responses:
            if isinstance(response, dict):
                self._resolve(response)
            else:
                logger.warning("Ignoring malformed response: %r", response)

    def _resolve(self, response: JSON) -> None:
        req_id = response.get("id")
        if req_id is None and "error" in response and self._pending:
            # Errors raised before the id could be read carry none; the
            # transport is FIFO, so they answer the oldest pending request.
            req_id = next(iter(self._pending))

        future = self._pending.get(req_id)
        if future is None or future.done():
            logger.warning("Response for unknown request id: %r", req_id)
            return

        if "error" in response:
            future.set_exception(RpcError.from_dict(response["error"]))
        else:
            future.set_result(response.get("result"))

    def _on_transport_closed(self) -> None:
        for req_id, future in list(self._pending.items()):
            if not future.done():
                future.set_exception(
                    McpClientError(f"Transport closed before response to request {req_id}")
                )
