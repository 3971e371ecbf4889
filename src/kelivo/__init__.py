"""Kelivo MCP bridge.

In-process MCP tool servers (web fetch, device capabilities), the in-memory
transport and client that connect them to the chat layer, and the
tool-message sanitizer applied to chat histories before they reach a model.
"""

from __future__ import annotations

__version__ = "0.1.0"
