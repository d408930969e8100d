"""Process-wide logging for planner entry points.

Console output plus a size-capped rotating log file. Settings come from
`STORY_PLANNER_LOG_*` environment variables and are read once, the first time
`configure_runtime_logging` runs.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final

DEFAULT_LOG_PATH: Final = Path("work/logs/story_planner.log")
LOG_FORMAT: Final = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT: Final = "%Y-%m-%dT%H:%M:%S%z"

_KIB: Final = 1024
_MAX_BYTES_RANGE: Final = (64 * _KIB, 100 * _KIB * _KIB)
_BACKUP_COUNT_RANGE: Final = (1, 120)

_CONFIGURED = False


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    log_path: Path
    max_bytes: int
    backup_count: int


def _clamped(raw: str | None, default: int, bounds: tuple[int, int]) -> int:
    text = (raw or "").strip()
    if not text.lstrip("-").isdigit():
        return default
    low, high = bounds
    return max(low, min(high, int(text)))


def logging_settings_from_env(env: Mapping[str, str] | None = None) -> LoggingSettings:
    """Resolve logging settings; unparseable numbers fall back to defaults."""
    source = os.environ if env is None else env
    level_name = (source.get("STORY_PLANNER_LOG_LEVEL") or "").strip().upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    raw_path = (source.get("STORY_PLANNER_LOG_PATH") or "").strip()
    return LoggingSettings(
        level=level,
        log_path=Path(raw_path) if raw_path else DEFAULT_LOG_PATH,
        max_bytes=_clamped(
            source.get("STORY_PLANNER_LOG_MAX_BYTES"), 5 * _KIB * _KIB, _MAX_BYTES_RANGE
        ),
        backup_count=_clamped(
            source.get("STORY_PLANNER_LOG_BACKUP_COUNT"), 10, _BACKUP_COUNT_RANGE
        ),
    )


def configure_runtime_logging() -> None:
    """Install console and rotating-file handlers on the root logger, once."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = logging_settings_from_env()
    settings.log_path.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        RotatingFileHandler(
            filename=settings.log_path,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        ),
    ]
    root = logging.getLogger()
    root.setLevel(settings.level)
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    _CONFIGURED = True
    logging.getLogger(__name__).debug(
        "logging.configured path=%s max_bytes=%s backups=%s",
        settings.log_path,
        settings.max_bytes,
        settings.backup_count,
    )
