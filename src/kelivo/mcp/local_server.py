"""@local/phone: in-process MCP server exposing device capabilities.

Tools delegate to a ``DeviceBackend``; argument problems are reported as
validation errors and backend failures as ``isError`` results.
"""

from __future__ import annotations

import json
import logging
from abc import abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from ..errors import KelivoError, ValidationError
from ..settings import Settings, settings as default_settings
from .device import DeviceBackend, HostDeviceBackend
from .engine import McpServerEngine
from .tools import Tool, ToolCallResult, ToolRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "@local/phone"
SERVER_VERSION = "0.1.0"

_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}, "required": []}

CALENDAR_ACTIONS = ("list", "create", "read", "update", "delete")


def _dump(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def _require_str(arguments: Mapping[str, Any], key: str) -> str:
    value = arguments.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required", field=key)
    return value


def _require_int(arguments: Mapping[str, Any], key: str, low: int, high: int) -> int:
    value = arguments.get(key)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer", field=key)
    if not low <= value <= high:
        raise ValidationError(
            f"{key} must be between {low} and {high}",
            field=key,
            value=value,
            constraint=f"{low}..{high}",
        )
    return value


class DeviceTool(Tool):
    """Base for tools backed by a ``DeviceBackend``."""

    input_schema = _EMPTY_SCHEMA

    def __init__(self, backend: DeviceBackend) -> None:
        self._backend = backend

    async def invoke(self, arguments: dict[str, Any]) -> ToolCallResult:
        try:
            return ToolCallResult.ok(await self._run(arguments))
        except KelivoError as e:
            logger.info("%s unavailable: %s", self.name, e.message)
            return ToolCallResult.error(e.message)
        except Exception as e:
            logger.exception("%s failed", self.name)
            return ToolCallResult.error(str(e))

    @abstractmethod
    async def _run(self, arguments: dict[str, Any]) -> str:
        """Return the result text."""


class DeviceStatusTool(DeviceTool):
    name = "device_status"
    description = "Get the device status, including battery, network, and timestamp."

    async def _run(self, arguments: dict[str, Any]) -> str:
        return _dump(
            {
                "battery": await self._backend.battery(),
                "network": await self._backend.network(),
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )


class SensorsTool(DeviceTool):
    name = "sensors"
    description = (
        "Get sensor data, including motion, ambient light, proximity, and barometer."
    )

    async def _run(self, arguments: dict[str, Any]) -> str:
        return _dump(await self._backend.sensors())


class SmsTool(DeviceTool):
    name = "sms"
    description = "Send an SMS message to a single recipient."
    input_schema = {
        "type": "object",
        "properties": {
            "recipient": {
                "type": "string",
                "description": "The phone number of the recipient.",
            },
            "message": {
                "type": "string",
                "description": "The content of the message.",
            },
            "confirm": {
                "type": "boolean",
                "description": "Whether to show a confirmation dialog before sending.",
                "default": True,
            },
        },
        "required": ["recipient", "message"],
    }

    def parse_arguments(self, arguments: Any) -> dict[str, Any]:
        args = super().parse_arguments(arguments)
        message = args.get("message")
        if not isinstance(message, str):
            raise ValidationError("message is required", field="message")
        confirm = args.get("confirm", True)
        if not isinstance(confirm, bool):
            raise ValidationError("confirm must be a boolean", field="confirm")
        return {
            "recipient": _require_str(args, "recipient"),
            "message": message,
            "confirm": confirm,
        }

    async def _run(self, arguments: dict[str, Any]) -> str:
        if arguments["confirm"]:
            logger.info("Confirmation required to send SMS to %s", arguments["recipient"])
        await self._backend.send_sms(
            arguments["recipient"],
            arguments["message"],
            confirm=arguments["confirm"],
        )
        return "SMS sent successfully."


class LocationTool(DeviceTool):
    name = "location"
    description = "Get the device's current location."
    input_schema = {
        "type": "object",
        "properties": {
            "accuracy": {
                "type": "string",
                "description": "The desired accuracy of the location.",
                "enum": ["low", "high"],
                "default": "low",
            },
        },
        "required": [],
    }

    def parse_arguments(self, arguments: Any) -> dict[str, Any]:
        args = super().parse_arguments(arguments)
        accuracy = args.get("accuracy") or "low"
        if accuracy not in ("low", "high"):
            raise ValidationError(
                f"Invalid accuracy: {accuracy}",
                field="accuracy",
                value=accuracy,
                constraint="low|high",
            )
        return {"accuracy": accuracy}

    async def _run(self, arguments: dict[str, Any]) -> str:
        return _dump(await self._backend.location(arguments["accuracy"]))


class ContactsTool(DeviceTool):
    name = "contacts"
    description = "Get the contacts from the device."

    async def _run(self, arguments: dict[str, Any]) -> str:
        return _dump(await self._backend.contacts())


class CalendarTool(DeviceTool):
    name = "calendar"
    description = "Manage calendar events, reminders, and attendees."
    input_schema = {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "description": "The action to perform.",
                "enum": list(CALENDAR_ACTIONS),
                "default": "list",
            },
            "calendarId": {
                "type": "string",
                "description": "The ID of the calendar to perform the action on.",
            },
            "eventId": {
                "type": "string",
                "description": "The ID of the event to perform the action on.",
            },
            "event": {
                "type": "object",
                "description": "The event data to create or update.",
            },
        },
        "required": ["action", "calendarId"],
    }

    def parse_arguments(self, arguments: Any) -> dict[str, Any]:
        args = super().parse_arguments(arguments)
        action = args.get("action") or "list"
        if action not in CALENDAR_ACTIONS:
            raise ValidationError(f"Invalid action: {action}", field="action", value=action)

        parsed: dict[str, Any] = {
            "action": action,
            "calendar_id": _require_str(args, "calendarId"),
            "event_id": None,
            "event": None,
        }
        if action in ("read", "update", "delete"):
            parsed["event_id"] = _require_str(args, "eventId")
        if action in ("create", "update"):
            event = args.get("event")
            if not isinstance(event, Mapping):
                raise ValidationError("event is required", field="event")
            parsed["event"] = dict(event)
        return parsed

    async def _run(self, arguments: dict[str, Any]) -> str:
        result = await self._backend.calendar(
            arguments["action"],
            arguments["calendar_id"],
            event_id=arguments["event_id"],
            event=arguments["event"],
        )
        return _dump(result)


class AlarmTool(DeviceTool):
    name = "alarm"
    description = "Set an alarm on the device."
    input_schema = {
        "type": "object",
        "properties": {
            "hour": {"type": "integer", "description": "Hour of day (0-23)."},
            "minute": {"type": "integer", "description": "Minute (0-59)."},
            "label": {"type": "string", "description": "Optional alarm label."},
        },
        "required": ["hour", "minute"],
    }

    def parse_arguments(self, arguments: Any) -> dict[str, Any]:
        args = super().parse_arguments(arguments)
        label = args.get("label")
        if label is not None and not isinstance(label, str):
            raise ValidationError("label must be a string", field="label")
        return {
            "hour": _require_int(args, "hour", 0, 23),
            "minute": _require_int(args, "minute", 0, 59),
            "label": label,
        }

    async def _run(self, arguments: dict[str, Any]) -> str:
        result = await self._backend.set_alarm(
            arguments["hour"],
            arguments["minute"],
            label=arguments["label"],
        )
        return _dump(result)


class DeviceInfoTool(DeviceTool):
    name = "device_info"
    description = "Get information about the device (OS, version, model)."

    async def _run(self, arguments: dict[str, Any]) -> str:
        return _dump(await self._backend.device_info())


def create_local_server(
    backend: DeviceBackend | None = None,
    config: Settings | None = None,
) -> McpServerEngine:
    """Build the @local/phone engine over ``backend`` (host backend by default)."""
    cfg = config or default_settings
    device = backend or HostDeviceBackend()
    registry = ToolRegistry(
        [
            DeviceStatusTool(device),
            SensorsTool(device),
            SmsTool(device),
            LocationTool(device),
            ContactsTool(device),
            CalendarTool(device),
            AlarmTool(device),
            DeviceInfoTool(device),
        ]
    )
    return McpServerEngine(
        registry,
        server_name=SERVER_NAME,
        server_version=SERVER_VERSION,
        protocol_version=cfg.protocol_version,
    )
