"""Structured JSON logging for featlink.

Writes JSONL to .featlink/featlink.log with rotation (5MB, 3 backups). Engine
modules log through ``logging.getLogger(__name__)`` and everything under the
``featlink`` logger lands in the same file.

Two groups of ``extra`` keys are recognised. Call-level keys (``tool``,
``command``, ``args_data``, ``duration_ms``, ``error``) become top-level
fields. Graph keys (``feature``, ``target``, ``rel_type``, ``category``,
``code``) are gathered under ``"graph"`` so a link, a cycle warning and a
failed fix can be filtered on the same shape.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILENAME = "featlink.log"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3

# record attribute -> JSON key
_CALL_FIELDS = {
    "tool": "tool",
    "command": "command",
    "args_data": "args",
    "duration_ms": "duration_ms",
    "error": "error",
}
_GRAPH_FIELDS = ("feature", "target", "rel_type", "category", "code")


class _JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({key: getattr(record, attr) for attr, key in _CALL_FIELDS.items() if hasattr(record, attr)})
        graph = {name: getattr(record, name) for name in _GRAPH_FIELDS if hasattr(record, name)}
        if graph:
            entry["graph"] = graph
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def setup_logging(featlink_dir: Path, *, level: int = logging.INFO) -> logging.Logger:
    """Attach the JSONL file handler for *featlink_dir* to the ``featlink`` logger.

    Repeat calls for the same directory only adjust the level. Pointing it at a
    different directory swaps the handler so one process never writes two
    project logs.
    """
    logger = logging.getLogger("featlink")
    log_path = featlink_dir / LOG_FILENAME
    target_filename = os.path.abspath(str(log_path))

    with _setup_lock:
        logger.setLevel(level)
        stale = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        if any(h.baseFilename == target_filename for h in stale):
            return logger
        for h in stale:
            logger.removeHandler(h)
            h.close()

        handler = RotatingFileHandler(str(log_path), maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT)
        handler.setFormatter(_JsonFormatter())
        logger.addHandler(handler)
    return logger
