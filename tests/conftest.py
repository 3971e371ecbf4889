from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from kelivo.mcp.engine import McpServerEngine
from kelivo.mcp.tools import Tool, ToolCallResult, ToolRegistry
from kelivo.settings import Settings


class EchoTool(Tool):
    """Returns its ``text`` argument; fails when asked to."""

    name = "echo"
    description = "Echo the text argument"
    input_schema = {
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
    }

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def invoke(self, arguments: dict[str, Any]) -> ToolCallResult:
        self.calls.append(arguments)
        if arguments.get("fail"):
            return ToolCallResult.error("echo failed")
        return ToolCallResult.ok(str(arguments.get("text", "")))


class BoomTool(Tool):
    """Raises out of invoke, which a well-behaved tool never does."""

    name = "boom"
    description = "Always raises"
    input_schema = {"type": "object", "properties": {}}

    async def invoke(self, arguments: dict[str, Any]) -> ToolCallResult:
        raise RuntimeError("kaboom")


@pytest.fixture
def echo_tool() -> EchoTool:
    return EchoTool()


@pytest.fixture
def engine(echo_tool: EchoTool) -> McpServerEngine:
    return McpServerEngine(
        ToolRegistry([echo_tool, BoomTool()]),
        server_name="@test/echo",
        server_version="9.9.9",
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        fetch_timeout=5.0,
        user_agent="KelivoTest/1.0",
        protocol_version="2024-11-05",
        client_timeout=5.0,
        device_tools_enabled=True,
    )


@pytest.fixture
def http_routes() -> dict[str, Any]:
    """URL -> canned response served by ``mock_transport``."""
    return {}


@pytest.fixture
def seen_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def mock_transport(
    http_routes: dict[str, Any],
    seen_requests: list[httpx.Request],
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen_requests.append(request)
        route = http_routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        return route

    return httpx.MockTransport(handler)


@pytest.fixture
def device_backend() -> AsyncMock:
    backend = AsyncMock()
    backend.battery.return_value = {"level": 80, "state": "charging"}
    backend.network.return_value = {"type": "wifi"}
    backend.sensors.return_value = {"accelerometer": {"x": 0.0, "y": 0.0, "z": 9.8}}
    backend.send_sms.return_value = None
    backend.location.return_value = {"latitude": 1.5, "longitude": 2.5, "accuracy": 10.0}
    backend.contacts.return_value = [{"displayName": "Ada"}]
    backend.calendar.return_value = [{"eventId": "e1", "title": "Standup"}]
    backend.set_alarm.return_value = {"hour": 7, "minute": 30, "label": None}
    backend.device_info.return_value = {"os": "Linux", "osVersion": "6.0", "model": "x86_64"}
    return backend


def rpc_request(method: str, req_id: Any = 1, params: Any = None) -> dict[str, Any]:
    """Build a JSON-RPC request."""
    message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if req_id is not None:
        message["id"] = req_id
    if params is not None:
        message["params"] = params
    return message


def tool_call(name: str, arguments: Any = None, req_id: Any = 1) -> dict[str, Any]:
    params: dict[str, Any] = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return rpc_request("tools/call", req_id, params)


