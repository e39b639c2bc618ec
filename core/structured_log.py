from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict


logger = logging.getLogger("planopt.events")

# Log rotation settings (configurable via environment)
MAX_LOG_BYTES = int(os.getenv("PLANOPT_LOG_MAX_BYTES", 10 * 1024 * 1024))  # 10MB default
LOG_BACKUP_COUNT = int(os.getenv("PLANOPT_LOG_BACKUP_COUNT", 5))

# Handlers are keyed by file so a changed PLANOPT_LOG_DIR gets its own file
_file_handlers: Dict[str, RotatingFileHandler] = {}


def get_log_file() -> Path:
    """Return the events file, resolving PLANOPT_LOG_DIR at call time."""
    return Path(os.getenv("PLANOPT_LOG_DIR", "logs")) / "events.jsonl"


def _get_file_handler() -> RotatingFileHandler:
    """Get or create the rotating file handler for the current log file."""
    log_file = get_log_file()
    key = str(log_file.resolve())
    handler = _file_handlers.get(key)
    if handler is None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(log_file),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        _file_handlers[key] = handler
    return handler


def jlog(event: str, level: str = "INFO", **fields: Any) -> None:
    """
    Write a structured JSON log entry with automatic rotation.

    Args:
        event: Event name/type
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **fields: Additional fields to include in the log entry
    """
    rec: Dict[str, Any] = {
        "ts": datetime.utcnow().isoformat(),
        "level": level,
        "event": event,
        **fields,
    }
    line = json.dumps(rec, default=str)

    handler = _get_file_handler()
    record = logging.LogRecord(
        name="planopt", level=logging.INFO, pathname="", lineno=0,
        msg=line, args=(), exc_info=None,
    )
    handler.acquire()
    try:
        if handler.shouldRollover(record):
            handler.doRollover()
        handler.stream.write(line + "\n")
        handler.stream.flush()
    finally:
        handler.release()

    # Also echo a concise line through standard logging
    logger.log(getattr(logging, level.upper(), logging.INFO), "%s | %s", event, fields)


def get_log_stats() -> Dict[str, Any]:
    """Get statistics about current log files."""
    log_file = get_log_file()
    stats: Dict[str, Any] = {
        "main_log": str(log_file),
        "main_log_size_bytes": 0,
        "backup_files": [],
        "total_size_bytes": 0,
    }

    if log_file.exists():
        stats["main_log_size_bytes"] = log_file.stat().st_size
        stats["total_size_bytes"] = stats["main_log_size_bytes"]

    for i in range(1, LOG_BACKUP_COUNT + 1):
        backup = log_file.parent / f"{log_file.name}.{i}"
        if backup.exists():
            size = backup.stat().st_size
            stats["backup_files"].append({"file": str(backup), "size_bytes": size})
            stats["total_size_bytes"] += size

    return stats


def read_recent_logs(count: int = 100, level: str | None = None) -> list[Dict[str, Any]]:
    """
    Read the most recent log entries.

    Args:
        count: Maximum number of entries to return
        level: Optional filter by log level

    Returns:
        List of log entries (most recent last)
    """
    entries: list[Dict[str, Any]] = []
    log_file = get_log_file()

    if not log_file.exists():
        return entries

    with log_file.open("r", encoding="utf-8") as f:
        lines = f.readlines()

    for line in reversed(lines):
        if len(entries) >= count:
            break
        try:
            entry = json.loads(line.strip())
        except json.JSONDecodeError:
            continue
        if level is None or entry.get("level") == level:
            entries.append(entry)

    return list(reversed(entries))
