"""Kelivo MCP bridge command line.

Everything runs in-process: each command builds a server engine, connects an
in-memory transport and client to it, and exits.

Usage:
    kelivo tools [--server fetch|local]
    kelivo call TOOL [--server fetch|local] [--args JSON]
    kelivo sanitize [FILE]

Environment Variables:
    KELIVO_LOG_LEVEL        Logging level (default: INFO)
    KELIVO_LOG_PATH         Rotating log file (default: none)
    KELIVO_FETCH_TIMEOUT    Fetch tool timeout in seconds (default: 30)
    KELIVO_USER_AGENT       Default User-Agent for fetch tools
    KELIVO_DEVICE_TOOLS_ENABLED  Allow the local device server (default: true)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from . import __version__
from .chat.sanitizer import sanitize_tool_messages
from .errors import ConfigurationError, KelivoError
from .logging_setup import configure_logging
from .mcp.client import LocalMcpClient
from .mcp.engine import McpServerEngine
from .mcp.fetch_server import create_fetch_server
from .mcp.local_server import create_local_server
from .mcp.transport import LocalInMemoryClientTransport
from .rpc.types import RpcError
from .settings import Settings, settings

SERVERS = ("fetch", "local")


def build_server(kind: str, config: Settings | None = None) -> McpServerEngine:
    cfg = config or settings
    if kind == "fetch":
        return create_fetch_server(cfg)
    if kind == "local":
        if not cfg.device_tools_enabled:
            raise ConfigurationError(
                "Device tools are disabled (KELIVO_DEVICE_TOOLS_ENABLED)",
                setting="device_tools_enabled",
            )
        return create_local_server(config=cfg)
    raise ConfigurationError(f"Unknown server: {kind}", setting="server")


async def _list_tools(server: McpServerEngine) -> list[dict[str, Any]]:
    async with LocalMcpClient(LocalInMemoryClientTransport(server)) as client:
        await client.initialize()
        return await client.list_tools()


async def _call_tool(
    server: McpServerEngine,
    name: str,
    arguments: dict[str, Any],
) -> dict[str, Any]:
    async with LocalMcpClient(LocalInMemoryClientTransport(server)) as client:
        await client.initialize()
        return await client.call_tool(name, arguments)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _cmd_tools(args: argparse.Namespace) -> int:
    _print_json(asyncio.run(_list_tools(build_server(args.server))))
    return 0


def _cmd_call(args: argparse.Namespace) -> int:
    try:
        arguments = json.loads(args.args)
    except json.JSONDecodeError as e:
        print(f"error: --args is not valid JSON: {e}", file=sys.stderr)
        return 2
    if not isinstance(arguments, dict):
        print("error: --args must be a JSON object", file=sys.stderr)
        return 2

    result = asyncio.run(_call_tool(build_server(args.server), args.tool, arguments))
    _print_json(result)
    return 1 if result.get("isError") else 0


def _cmd_sanitize(args: argparse.Namespace) -> int:
    if args.file == "-":
        raw = sys.stdin.read()
    else:
        with open(args.file, encoding="utf-8") as f:
            raw = f.read()

    try:
        messages = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"error: input is not valid JSON: {e}", file=sys.stderr)
        return 2
    if not isinstance(messages, list):
        print("error: input must be a JSON array of messages", file=sys.stderr)
        return 2

    _print_json(sanitize_tool_messages(messages, match_names=args.match_names))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kelivo",
        description="Kelivo in-process MCP bridge",
        epilog="""
Examples:
  kelivo tools                                  List @kelivo/fetch tools
  kelivo tools --server local                   List @local/phone tools
  kelivo call fetch_txt --args '{"url": "https://example.com"}'
  kelivo sanitize history.json                  Repair tool messages in a history
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.log_level.upper(),
        help=f"Logging level (default: {settings.log_level})",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    tools = sub.add_parser("tools", help="List the tools a server exposes")
    tools.add_argument("--server", choices=SERVERS, default="fetch")
    tools.set_defaults(func=_cmd_tools)

    call = sub.add_parser("call", help="Call a tool and print the result")
    call.add_argument("tool", help="Tool name")
    call.add_argument("--server", choices=SERVERS, default="fetch")
    call.add_argument("--args", default="{}", help="Tool arguments as a JSON object")
    call.set_defaults(func=_cmd_call)

    sanitize = sub.add_parser("sanitize", help="Repair tool messages in a chat history")
    sanitize.add_argument("file", nargs="?", default="-", help="JSON file (default: stdin)")
    sanitize.add_argument(
        "--match-names",
        action="store_true",
        help="Require id-less tool messages to name an open call",
    )
    sanitize.set_defaults(func=_cmd_sanitize)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the kelivo command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        return args.func(args)
    except RpcError as e:
        print(f"error: {e.message} (code {e.code})", file=sys.stderr)
        return 1
    except KelivoError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
