from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from story_planner.adapters import observability


def test_configure_runtime_logging_installs_bounded_file_handler(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    log_path = tmp_path / "logs" / "planner.log"
    monkeypatch.setattr(observability, "_CONFIGURED", False)
    monkeypatch.setenv("STORY_PLANNER_LOG_PATH", str(log_path))
    monkeypatch.setenv("STORY_PLANNER_LOG_LEVEL", "debug")
    monkeypatch.setenv("STORY_PLANNER_LOG_MAX_BYTES", "1")
    monkeypatch.setenv("STORY_PLANNER_LOG_BACKUP_COUNT", "not-a-number")

    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    try:
        observability.configure_runtime_logging()
        file_handlers = [
            handler for handler in root.handlers if isinstance(handler, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 64 * 1024
        assert file_handlers[0].backupCount == 10
        assert root.level == logging.DEBUG
        assert log_path.parent.is_dir()

        observability.configure_runtime_logging()
        assert len(root.handlers) == 2
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_logging_settings_fall_back_and_clamp() -> None:
    defaults = observability.logging_settings_from_env({})
    assert defaults.level == logging.INFO
    assert defaults.log_path == observability.DEFAULT_LOG_PATH
    assert defaults.max_bytes == 5 * 1024 * 1024
    assert defaults.backup_count == 10

    tuned = observability.logging_settings_from_env(
        {
            "STORY_PLANNER_LOG_LEVEL": " warning ",
            "STORY_PLANNER_LOG_PATH": "logs/custom.log",
            "STORY_PLANNER_LOG_MAX_BYTES": str(10**12),
            "STORY_PLANNER_LOG_BACKUP_COUNT": "0",
        }
    )
    assert tuned.level == logging.WARNING
    assert tuned.log_path == Path("logs/custom.log")
    assert tuned.max_bytes == 100 * 1024 * 1024
    assert tuned.backup_count == 1

    unknown = observability.logging_settings_from_env({"STORY_PLANNER_LOG_LEVEL": "chatty"})
    assert unknown.level == logging.INFO
