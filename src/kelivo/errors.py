"""Kelivo Error Hierarchy.

Provides a structured error hierarchy for the MCP bridge:
- KelivoError: Base exception for all application errors
- ValidationError: Input validation failures (tool arguments, chat messages)
- ConfigurationError: Configuration/setup issues (duplicate tools, bad env)
- ToolError: Tool lookup and execution failures
- FetchError: HTTP fetch failures inside the content-fetch tools
- DeviceError: Device capability failures (unavailable, permission denied)

Each error type includes:
- Descriptive message
- Optional context for debugging
- Recoverable flag for retry logic
- Structured representation for RPC responses

Usage:
    from kelivo.errors import ValidationError, FetchError

    if parsed.scheme not in ("http", "https"):
        raise ValidationError(f"Invalid url: {raw}", field="url")

    if not response.is_success:
        raise FetchError(f"HTTP {response.status_code}", status_code=response.status_code)
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Error Base Class
# =============================================================================


class KelivoError(Exception):
    """Base exception for all Kelivo application errors.

    Attributes:
        message: Human-readable error description
        recoverable: Whether the operation can be retried
        context: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured dictionary for RPC responses."""
        return {
            "type": type(self).__name__.lower().replace("error", ""),
            "message": self.message,
            "recoverable": self.recoverable,
            **{k: v for k, v in self.context.items() if v is not None},
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(KelivoError):
    """Input validation failed.

    Raised when tool arguments or chat messages fail validation checks.

    Example:
        raise ValidationError("Invalid url: ftp://x", field="url", value="ftp://x")
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if constraint:
            context["constraint"] = constraint
        # Don't include sensitive values
        if value is not None and not _is_sensitive(str(value)):
            context["value"] = _truncate(str(value), 100)
        super().__init__(message, recoverable=False, context=context)
        self.field = field
        self.constraint = constraint


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(KelivoError):
    """Configuration or setup problem."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if setting:
            context["setting"] = setting
        super().__init__(message, recoverable=False, context=context)
        self.setting = setting


# =============================================================================
# Tool Errors
# =============================================================================


class ToolError(KelivoError):
    """A tool could not be resolved or failed while running."""

    def __init__(
        self,
        message: str,
        *,
        tool: str | None = None,
        recoverable: bool = False,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if tool:
            context["tool"] = tool
        super().__init__(message, recoverable=recoverable, context=context)
        self.tool = tool


class ToolNotFoundError(ToolError):
    """No tool with the requested name is registered."""

    def __init__(self, tool: str | None) -> None:
        super().__init__(f"Tool not found: {tool}", tool=tool)


class FetchError(ToolError):
    """HTTP fetch failed (network error, timeout, non-2xx status)."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=status_code is None or status_code >= 500,
            context={
                "url": _truncate(url, 200) if url else None,
                "status_code": status_code,
            },
        )
        self.url = url
        self.status_code = status_code


class McpClientError(KelivoError):
    """The in-process client got no usable response (timeout, closed transport)."""

    def __init__(self, message: str, *, method: str | None = None) -> None:
        super().__init__(
            message,
            recoverable=True,
            context={"method": method},
        )
        self.method = method


# =============================================================================
# Device Errors
# =============================================================================


class DeviceError(KelivoError):
    """A device capability failed."""

    def __init__(
        self,
        message: str,
        *,
        capability: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if capability:
            context["capability"] = capability
        super().__init__(message, recoverable=False, context=context)
        self.capability = capability


class DeviceUnavailableError(DeviceError):
    """The host has no implementation for this capability."""

    def __init__(self, capability: str) -> None:
        super().__init__(
            f"{capability} is not available on this device",
            capability=capability,
        )


class PermissionDeniedError(DeviceError):
    """The user or OS refused access to the capability."""

    def __init__(self, capability: str) -> None:
        super().__init__(
            f"{capability.capitalize()} permission denied",
            capability=capability,
        )


# =============================================================================
# Helpers
# =============================================================================


def _is_sensitive(value: str) -> bool:
    """Check if a value appears to contain sensitive data."""
    sensitive_patterns = ["password", "token", "secret", "key", "auth"]
    lower = value.lower()
    return any(p in lower for p in sensitive_patterns)


def _truncate(value: str | None, max_len: int) -> str | None:
    """Truncate a string value for safe logging."""
    if value is None:
        return None
    if len(value) <= max_len:
        return value
    return value[:max_len] + "..."


def get_error_code(exc: KelivoError) -> int:
    """Map a domain error to its JSON-RPC error code."""
    from .rpc.types import INTERNAL_ERROR, TOOL_NOT_FOUND

    if isinstance(exc, ToolNotFoundError):
        return TOOL_NOT_FOUND
    return INTERNAL_ERROR
