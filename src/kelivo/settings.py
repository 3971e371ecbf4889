from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_path(name: str) -> Path | None:
    raw = os.environ.get(name)
    if not raw or not raw.strip():
        return None
    return Path(raw.strip()).expanduser()


@dataclass(frozen=True)
class Settings:
    """Static settings for the in-process MCP bridge.

    Everything runs inside the host process; there are no listen addresses.
    Defaults are read from the environment once, at import time.
    """

    log_level: str = os.environ.get("KELIVO_LOG_LEVEL", "INFO")
    # File logging is off unless a path is configured.
    log_path: Path | None = _env_path("KELIVO_LOG_PATH")
    log_max_bytes: int = int(os.environ.get("KELIVO_LOG_MAX_BYTES", str(1_000_000)))
    log_backup_count: int = int(os.environ.get("KELIVO_LOG_BACKUP_COUNT", "3"))

    # =========================================================================
    # Content fetch tools (@kelivo/fetch)
    # =========================================================================
    fetch_timeout: float = float(os.environ.get("KELIVO_FETCH_TIMEOUT", "30.0"))
    user_agent: str = os.environ.get("KELIVO_USER_AGENT", DEFAULT_USER_AGENT)

    # =========================================================================
    # MCP protocol
    # =========================================================================
    protocol_version: str = os.environ.get("KELIVO_PROTOCOL_VERSION", "2024-11-05")
    # Seconds the in-process client waits for a response before giving up.
    client_timeout: float = float(os.environ.get("KELIVO_CLIENT_TIMEOUT", "60.0"))

    # Device tools (@local/phone) can be switched off for hosts without a backend.
    device_tools_enabled: bool = _env_bool("KELIVO_DEVICE_TOOLS_ENABLED", True)


settings = Settings()
