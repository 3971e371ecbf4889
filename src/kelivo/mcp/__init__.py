"""In-process MCP servers, transport and client."""

from __future__ import annotations

from kelivo.mcp.client import LocalMcpClient
from kelivo.mcp.device import DeviceBackend, HostDeviceBackend
from kelivo.mcp.engine import LocalMcpServer, McpServerEngine
from kelivo.mcp.fetch_server import FetchRequestPayload, Fetcher, create_fetch_server
from kelivo.mcp.local_server import create_local_server
from kelivo.mcp.tools import TextContent, Tool, ToolCallResult, ToolRegistry
from kelivo.mcp.transport import LocalInMemoryClientTransport

__all__ = [
    "DeviceBackend",
    "FetchRequestPayload",
    "Fetcher",
    "HostDeviceBackend",
    "LocalInMemoryClientTransport",
    "LocalMcpClient",
    "LocalMcpServer",
    "McpServerEngine",
    "TextContent",
    "Tool",
    "ToolCallResult",
    "ToolRegistry",
    "create_fetch_server",
    "create_local_server",
]
