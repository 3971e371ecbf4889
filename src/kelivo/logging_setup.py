"""Logging configuration for Kelivo entry points.

Library modules only create module loggers; handlers are installed here,
once, by whichever entry point runs first.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from .settings import Settings, settings as default_settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_MARK = "_kelivo_handler"


def configure_logging(level: str | None = None, *, config: Settings | None = None) -> None:
    """Install stderr (and optional rotating file) handlers on the kelivo logger.

    Calling this again only updates the level.
    """
    cfg = config or default_settings
    root = logging.getLogger("kelivo")
    root.setLevel((level or cfg.log_level).upper())

    if any(getattr(h, _HANDLER_MARK, False) for h in root.handlers):
        return

    formatter = logging.Formatter(_FORMAT)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    setattr(stream, _HANDLER_MARK, True)
    root.addHandler(stream)

    if cfg.log_path is not None:
        cfg.log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            cfg.log_path,
            maxBytes=cfg.log_max_bytes,
            backupCount=cfg.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARK, True)
        root.addHandler(file_handler)
