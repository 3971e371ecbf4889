"""Chat message types and history repair."""

from __future__ import annotations

from kelivo.chat.messages import (
    AssistantMessage,
    ChatMessage,
    Role,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
    parse_message,
    tool_definitions,
)
from kelivo.chat.sanitizer import sanitize_tool_messages

__all__ = [
    "AssistantMessage",
    "ChatMessage",
    "Role",
    "SystemMessage",
    "ToolCall",
    "ToolMessage",
    "UserMessage",
    "parse_message",
    "sanitize_tool_messages",
    "tool_definitions",
]
