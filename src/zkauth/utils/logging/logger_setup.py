"""File-backed JSONL loggers for zkauth.

The audit trail (auth.jsonl) and the system issue log (system.jsonl) both
go through here. Log files hold hashed account identifiers and operational
detail, so the directory is created owner-only and the file is opened 0600.
"""

from __future__ import annotations

__all__ = ["prepare_log_file", "setup_jsonl_logger"]

import logging
import os
import sys
from pathlib import Path

from zkauth.utils.logging.iso_formatter import ISO8601Formatter

_POSIX = sys.platform != "win32"


def prepare_log_file(log_file: Path) -> Path:
    """Create the log directory and file with owner-only permissions.

    Returns the path unchanged so callers can chain it.

    Raises:
        OSError: The directory or file cannot be created (PermissionError
            included). The message names the offending path.
    """
    directory = log_file.parent
    try:
        directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd = os.open(log_file, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o600)
        os.close(fd)
    except OSError as e:
        raise type(e)(f"Cannot prepare log file {log_file}: {e}") from e

    if _POSIX:
        # mkdir mode is masked by umask and ignored for existing paths
        for path, mode in ((directory, 0o700), (log_file, 0o600)):
            try:
                path.chmod(mode)
            except OSError:
                pass
    return log_file


def _detach_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_jsonl_logger(
    logger_name: str,
    log_file: Path,
    log_level: int = logging.INFO,
) -> logging.Logger:
    """Return a non-propagating logger that appends JSONL to log_file.

    Calling again with the same name replaces the previous file handler,
    so tests and config reloads can point a logger at a new path.

    Args:
        logger_name: e.g. "zkauth.audit.auth".
        log_file: Destination file; parents are created.
        log_level: Threshold for both logger and handler.

    Raises:
        OSError: The log file cannot be prepared.
    """
    prepare_log_file(log_file)

    logger = logging.getLogger(logger_name)
    _detach_handlers(logger)
    logger.setLevel(log_level)
    logger.propagate = False

    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setLevel(log_level)
    handler.setFormatter(ISO8601Formatter())
    logger.addHandler(handler)
    return logger
