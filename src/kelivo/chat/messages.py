"""Typed chat messages exchanged with model APIs.

Messages arrive as plain mappings (OpenAI chat format). ``parse_message``
validates one at the boundary and returns the role-specific variant:

    SystemMessage / UserMessage   content only
    AssistantMessage              content + tool_calls
    ToolMessage                   content + tool_call_id + name
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from ..errors import ValidationError


class Role(str, Enum):
    """Chat roles understood by the bridge."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """One entry of an assistant message's ``tool_calls``."""

    id: str
    name: str
    arguments: str = "{}"
    type: str = "function"

    @classmethod
    def from_dict(cls, data: Any) -> "ToolCall":
        if not isinstance(data, Mapping):
            raise ValidationError("tool_calls entries must be objects", field="tool_calls")
        function = data.get("function")
        if not isinstance(function, Mapping):
            function = {}
        arguments = function.get("arguments", "{}")
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments, ensure_ascii=False)
        return cls(
            id=_optional_str(data.get("id")) or "",
            name=_optional_str(function.get("name")) or "",
            arguments=arguments,
            type=str(data.get("type") or "function"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class ChatMessage:
    """Fields shared by every role."""

    role: ClassVar[Role]
    content: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class SystemMessage(ChatMessage):
    role: ClassVar[Role] = Role.SYSTEM


@dataclass(frozen=True)
class UserMessage(ChatMessage):
    role: ClassVar[Role] = Role.USER


@dataclass(frozen=True)
class AssistantMessage(ChatMessage):
    role: ClassVar[Role] = Role.ASSISTANT
    tool_calls: tuple[ToolCall, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        return data


@dataclass(frozen=True)
class ToolMessage(ChatMessage):
    role: ClassVar[Role] = Role.TOOL
    tool_call_id: str | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            data["name"] = self.name
        return data


def _optional_str(value: Any) -> str | None:
    """String value, or None for missing/blank."""
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def content_text(content: Any) -> str:
    """Flatten message content to text.

    Multi-part content keeps its text parts, joined by newlines.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, Mapping) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "\n".join(parts)
    return str(content)


def parse_message(data: Any) -> ChatMessage:
    """Validate a message mapping and return its typed variant.

    Raises:
        ValidationError: If ``data`` is not a mapping or has an unknown role.
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Chat message must be an object", field="message")

    raw_role = data.get("role")
    try:
        role = Role(raw_role)
    except ValueError:
        raise ValidationError(
            f"Unknown message role: {raw_role}",
            field="role",
            value=raw_role,
        ) from None

    content = content_text(data.get("content"))

    if role is Role.ASSISTANT:
        raw_calls = data.get("tool_calls")
        calls: tuple[ToolCall, ...] = ()
        if isinstance(raw_calls, list):
            # Entries that are not objects carry no call to answer.
            calls = tuple(
                ToolCall.from_dict(item) for item in raw_calls if isinstance(item, Mapping)
            )
        return AssistantMessage(content=content, tool_calls=calls)

    if role is Role.TOOL:
        return ToolMessage(
            content=content,
            tool_call_id=_optional_str(data.get("tool_call_id")),
            name=_optional_str(data.get("name")),
        )

    if role is Role.SYSTEM:
        return SystemMessage(content=content)
    return UserMessage(content=content)


def tool_definitions(tools: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Convert ``tools/list`` entries to the function-tool list sent to a model."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool["name"],
                "description": tool.get("description", ""),
                "parameters": tool.get("inputSchema") or {"type": "object", "properties": {}},
            },
        }
        for tool in tools
    ]
