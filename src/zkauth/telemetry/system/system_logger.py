"""Operational logger for zkauth (not the audit trail).

Records things an operator acts on: oracle and prover outages, storage
failures, audit-log fallbacks, account deactivation, server startup.

Routing:
- stderr: every record at or above the configured level, one line each
- system.jsonl: WARNING and above only, attached once the server knows
  its log_dir (see configure_system_logger_file)
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "set_system_log_level",
]

import logging
import sys
from pathlib import Path

from zkauth.constants import APP_NAME
from zkauth.utils.logging.iso_formatter import ISO8601Formatter
from zkauth.utils.logging.logger_setup import prepare_log_file

SYSTEM_LOGGER_NAME = f"{APP_NAME}.system"


class ConsoleFormatter(logging.Formatter):
    """Render ``LEVEL: text`` where text is the dict's message, else its event."""

    def format(self, record: logging.LogRecord) -> str:
        msg = record.msg
        if isinstance(msg, dict):
            text = msg.get("message") or msg.get("event", "")
        else:
            text = record.getMessage()
        return f"{record.levelname}: {text}"


_system_logger: logging.Logger | None = None
_system_log_file: Path | None = None


def get_system_logger() -> logging.Logger:
    """Return the process-wide system logger, creating it on first use.

    Example:
        >>> get_system_logger().warning({"event": "oracle_unavailable", "message": "..."})
    """
    global _system_logger

    if _system_logger is None:
        logger = logging.getLogger(SYSTEM_LOGGER_NAME)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.INFO)
        logger.propagate = False

        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ConsoleFormatter())
        logger.addHandler(console)
        _system_logger = logger

    return _system_logger


def set_system_log_level(level: str) -> None:
    """Apply a config level name ("DEBUG", "INFO", ...); unknown names mean INFO."""
    get_system_logger().setLevel(getattr(logging, level.upper(), logging.INFO))


def configure_system_logger_file(log_path: Path) -> None:
    """Attach the system.jsonl handler. Later calls are ignored.

    An unwritable path is reported on stderr and the logger stays
    console-only; the server still starts.
    """
    global _system_log_file

    if _system_log_file is not None:
        return

    logger = get_system_logger()
    try:
        handler = logging.FileHandler(prepare_log_file(log_path), mode="a", encoding="utf-8")
    except OSError as e:
        logger.warning({"event": "system_log_file_unavailable", "message": str(e)})
        return

    handler.setLevel(logging.WARNING)
    handler.setFormatter(ISO8601Formatter())
    logger.addHandler(handler)
    _system_log_file = log_path
