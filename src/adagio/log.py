"""Logging setup: the "adagio" logger tree plus a recent-records buffer."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Deque

logger = logging.getLogger("adagio")

# Circular buffer of recent log entries for the developer log panel
log_buffer: Deque[dict] = deque(maxlen=100)


class LogBufferHandler(logging.Handler):
    """Logging handler that captures records to the circular buffer."""

    def emit(self, record: logging.LogRecord):
        try:
            log_buffer.append({
                "timestamp": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "logger": record.name,
                "message": self.format(record),
            })
        except Exception:
            self.handleError(record)


_buffer_handler: LogBufferHandler | None = None
_stream_handler: logging.StreamHandler | None = None


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach stream and buffer handlers to the adagio logger. Idempotent."""
    global _buffer_handler, _stream_handler

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if _buffer_handler is None:
        _buffer_handler = LogBufferHandler()
        _buffer_handler.setLevel(logging.DEBUG)
        _buffer_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(_buffer_handler)

    if _stream_handler is None:
        _stream_handler = logging.StreamHandler()
        _stream_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(_stream_handler)

    return logger


def recent_logs(limit: int | None = None) -> list[dict]:
    entries = list(log_buffer)
    if limit is not None:
        entries = entries[-limit:]
    return entries
