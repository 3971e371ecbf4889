"""Device capability backends for the @local/phone tools.

The tools never talk to the OS directly; they call a ``DeviceBackend``.
``HostDeviceBackend`` is the read-only default for desktop hosts: battery and
network state come from sysfs on Linux, device info from ``platform``.
Capabilities a desktop host cannot provide raise ``DeviceUnavailableError``.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ..errors import DeviceUnavailableError

logger = logging.getLogger(__name__)

_POWER_SUPPLY_DIR = Path("/sys/class/power_supply")
_NET_DIR = Path("/sys/class/net")


@runtime_checkable
class DeviceBackend(Protocol):
    """OS-facing side of the device tools.

    Every method may raise ``DeviceUnavailableError`` or
    ``PermissionDeniedError``.
    """

    async def battery(self) -> dict[str, Any]:
        ...

    async def network(self) -> dict[str, Any]:
        ...

    async def sensors(self) -> dict[str, Any]:
        ...

    async def send_sms(self, recipient: str, message: str, *, confirm: bool = True) -> None:
        ...

    async def location(self, accuracy: str = "low") -> dict[str, Any]:
        ...

    async def contacts(self) -> list[dict[str, Any]]:
        ...

    async def calendar(
        self,
        action: str,
        calendar_id: str,
        *,
        event_id: str | None = None,
        event: dict[str, Any] | None = None,
    ) -> Any:
        ...

    async def set_alarm(self, hour: int, minute: int, *, label: str | None = None) -> dict[str, Any]:
        ...

    async def device_info(self) -> dict[str, Any]:
        ...


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return None


class HostDeviceBackend:
    """Backend for the machine the bridge runs on."""

    def __init__(
        self,
        *,
        power_supply_dir: Path = _POWER_SUPPLY_DIR,
        net_dir: Path = _NET_DIR,
    ) -> None:
        self._power_supply_dir = power_supply_dir
        self._net_dir = net_dir

    async def battery(self) -> dict[str, Any]:
        if self._power_supply_dir.is_dir():
            for supply in sorted(self._power_supply_dir.iterdir()):
                if _read(supply / "type") != "Battery":
                    continue
                capacity = _read(supply / "capacity")
                return {
                    "level": int(capacity) if capacity and capacity.isdigit() else None,
                    "state": (_read(supply / "status") or "unknown").lower(),
                }
        return {"level": None, "state": "unknown"}

    async def network(self) -> dict[str, Any]:
        if not self._net_dir.is_dir():
            return {"type": "unknown"}

        kinds = []
        for iface in sorted(self._net_dir.iterdir()):
            if iface.name == "lo" or _read(iface / "operstate") != "up":
                continue
            kinds.append("wifi" if (iface / "wireless").exists() else "ethernet")

        if not kinds:
            return {"type": "none"}
        # Prefer wired when both are up.
        return {"type": "ethernet" if "ethernet" in kinds else "wifi"}

    async def sensors(self) -> dict[str, Any]:
        raise DeviceUnavailableError("sensors")

    async def send_sms(self, recipient: str, message: str, *, confirm: bool = True) -> None:
        raise DeviceUnavailableError("sms")

    async def location(self, accuracy: str = "low") -> dict[str, Any]:
        raise DeviceUnavailableError("location")

    async def contacts(self) -> list[dict[str, Any]]:
        raise DeviceUnavailableError("contacts")

    async def calendar(
        self,
        action: str,
        calendar_id: str,
        *,
        event_id: str | None = None,
        event: dict[str, Any] | None = None,
    ) -> Any:
        raise DeviceUnavailableError("calendar")

    async def set_alarm(self, hour: int, minute: int, *, label: str | None = None) -> dict[str, Any]:
        raise DeviceUnavailableError("alarm")

    async def device_info(self) -> dict[str, Any]:
        return {
            "os": platform.system(),
            "osVersion": platform.release(),
            "model": platform.machine(),
            "hostname": platform.node(),
        }
