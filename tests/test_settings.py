"""Tests for settings helpers and logging setup."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from kelivo.logging_setup import configure_logging
from kelivo.settings import DEFAULT_USER_AGENT, Settings, _env_bool, _env_path


@pytest.mark.parametrize(
    "raw, expected",
    [("1", True), ("Yes", True), (" on ", True), ("0", False), ("off", False), ("maybe", True)],
)
def test_env_bool(raw: str, expected: bool, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KELIVO_TEST_FLAG", raw)

    assert _env_bool("KELIVO_TEST_FLAG", True) is expected


def test_env_bool_missing_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("KELIVO_TEST_FLAG", raising=False)

    assert _env_bool("KELIVO_TEST_FLAG") is False


def test_env_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KELIVO_TEST_PATH", "  /tmp/kelivo.log ")
    assert _env_path("KELIVO_TEST_PATH") == Path("/tmp/kelivo.log")

    monkeypatch.setenv("KELIVO_TEST_PATH", "   ")
    assert _env_path("KELIVO_TEST_PATH") is None


def test_settings_are_frozen() -> None:
    cfg = Settings()

    with pytest.raises(AttributeError):
        cfg.fetch_timeout = 1.0  # type: ignore[misc]


def test_settings_overrides() -> None:
    cfg = Settings(user_agent="Custom/1.0", fetch_timeout=2.5)

    assert cfg.user_agent == "Custom/1.0"
    assert cfg.fetch_timeout == 2.5
    assert DEFAULT_USER_AGENT.startswith("Mozilla/5.0")


@pytest.fixture
def kelivo_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger("kelivo")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    yield logger
    for handler in logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


def test_configure_logging_is_idempotent(kelivo_logger: logging.Logger) -> None:
    configure_logging("warning", config=Settings(log_path=None))
    count = len(kelivo_logger.handlers)
    configure_logging("debug", config=Settings(log_path=None))

    assert len(kelivo_logger.handlers) == count
    assert kelivo_logger.level == logging.DEBUG


def test_configure_logging_writes_rotating_file(
    tmp_path: Path, kelivo_logger: logging.Logger
) -> None:
    log_path = tmp_path / "logs" / "kelivo.log"
    kelivo_logger.handlers = [h for h in kelivo_logger.handlers if not getattr(h, "_kelivo_handler", False)]

    configure_logging("INFO", config=Settings(log_path=log_path))
    logging.getLogger("kelivo.mcp.engine").info("engine started")
    for handler in kelivo_logger.handlers:
        handler.flush()

    assert "engine started" in log_path.read_text(encoding="utf-8")
