"""JSON line logging with size and time based rotation."""

from __future__ import annotations

import json
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from revolt_voice.config.environment import get_environment
from revolt_voice.config.paths import logs_dir


class JsonFormatter(logging.Formatter):
    """Serialise log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "category": record.name,
            "message": record.getMessage(),
        }
        details = getattr(record, "details", None)
        if details:
            log_record["details"] = details
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False, default=str)


class SizeAndTimeRotatingFileHandler(TimedRotatingFileHandler):
    """Roll the JSON log at midnight or once it would exceed ``max_bytes``."""

    def __init__(
        self,
        filename: str | Path,
        *,
        max_bytes: int = 0,
        backup_count: int = 0,
        when: str = "midnight",
    ) -> None:
        self.max_bytes = max_bytes
        super().__init__(
            str(filename),
            when=when,
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        )

    def _would_overflow(self, record: logging.LogRecord) -> bool:
        if self.max_bytes <= 0:
            return False
        if self.stream is None:
            self.stream = self._open()
        pending = len(f"{self.format(record)}\n".encode("utf-8"))
        return self.stream.tell() + pending >= self.max_bytes

    def shouldRollover(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return self._would_overflow(record) or bool(super().shouldRollover(record))


def _build_logger(name: str, file_path: Path | None = None) -> logging.Logger:
    logger = logging.getLogger(f"revolt.{name}")
    if logger.handlers:  # avoid duplicates
        return logger

    env = get_environment()
    if file_path is None:
        file_path = logs_dir() / f"{name}.jsonl"
    handler = SizeAndTimeRotatingFileHandler(
        file_path,
        max_bytes=env.log_rotate_mb * 1024 * 1024,
        backup_count=env.log_retention_days,
    )
    handler.setFormatter(JsonFormatter())
    logger.setLevel(env.log_level.upper())
    logger.addHandler(handler)
    return logger


_LOGGERS: dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """Return an existing logger or build it on first use."""
    if name not in _LOGGERS:
        _LOGGERS[name] = _build_logger(name)
    return _LOGGERS[name]
