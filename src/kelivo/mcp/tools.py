"""Tool abstraction shared by the in-process MCP servers.

A tool is a stateless, named capability with a JSON-schema-like input
description. Servers own a ``ToolRegistry`` that is built once and never
mutated afterwards.

Usage:
    registry = ToolRegistry([FetchHtmlTool(fetcher), FetchJsonTool(fetcher)])
    tool = registry.get("fetch_html")
    result = await tool.invoke(tool.parse_arguments({"url": "https://example.com"}))
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# Core Data Structures
# =============================================================================


@dataclass(frozen=True)
class TextContent:
    """One ``{"type": "text"}`` entry of a tool result."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolCallResult:
    """Result of a ``tools/call``.

    Tool-level failures are results with ``is_error`` set, never RPC errors.
    """

    content: tuple[TextContent, ...] = field(default_factory=tuple)
    is_error: bool = False
    is_streaming: bool = False

    @classmethod
    def ok(cls, text: str) -> "ToolCallResult":
        """Create a successful single-text result."""
        return cls(content=(TextContent(text),))

    @classmethod
    def error(cls, message: str) -> "ToolCallResult":
        """Create a failed single-text result."""
        return cls(content=(TextContent(message),), is_error=True)

    @property
    def text(self) -> str:
        """All text parts joined with newlines."""
        return "\n".join(part.text for part in self.content)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [part.to_dict() for part in self.content],
            "isStreaming": self.is_streaming,
            "isError": self.is_error,
        }


# =============================================================================
# Tool Interface
# =============================================================================


class Tool(ABC):
    """Fixed capability interface every registered tool implements."""

    name: str
    description: str
    input_schema: dict[str, Any]

    def describe(self) -> dict[str, Any]:
        """Tool entry as returned by ``tools/list``."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def parse_arguments(self, arguments: Any) -> Any:
        """Validate raw call arguments.

        Returns the value handed to :meth:`invoke`.

        Raises:
            ValidationError: If the arguments are unusable.
        """
        if not isinstance(arguments, Mapping):
            raise ValidationError("Invalid arguments: expected object", field="arguments")
        return dict(arguments)

    @abstractmethod
    async def invoke(self, arguments: Any) -> ToolCallResult:
        """Run the tool. Failures are reported via ``ToolCallResult.error``."""


# =============================================================================
# Registry
# =============================================================================


class ToolRegistry:
    """Read-only, ordered name -> tool table."""

    def __init__(self, tools: Iterable[Tool]) -> None:
        table: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in table:
                raise ConfigurationError(
                    f"Duplicate tool name: {tool.name}",
                    setting="tools",
                )
            table[tool.name] = tool
        self._tools = table
        logger.debug("Tool registry built: %s", ", ".join(table))

    def get(self, name: Any) -> Tool | None:
        if not isinstance(name, str):
            return None
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def describe_all(self) -> list[dict[str, Any]]:
        return [tool.describe() for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
