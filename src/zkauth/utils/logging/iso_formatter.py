"""JSONL formatter shared by the audit and system log files.

Every line is a JSON object whose first key is ``time`` (UTC, millisecond
precision, ``Z`` suffix). Values stored under credential-bearing keys are
masked before serialization so that identity tokens, salts, and session
tokens never reach disk even if a caller passes them by mistake.
"""

from __future__ import annotations

__all__ = ["ISO8601Formatter", "REDACTED", "SECRET_KEYS", "format_utc_timestamp", "redact_secrets"]

import json
import logging
from datetime import datetime, timezone
from typing import Any

REDACTED = "[redacted]"

# Matched case-insensitively against dict keys at any depth
SECRET_KEYS: frozenset[str] = frozenset(
    {
        "jwt",
        "id_token",
        "salt",
        "user_salt",
        "usersalt",
        "access_token",
        "accesstoken",
        "refresh_token",
        "refreshtoken",
        "signing_secret",
        "authorization",
    }
)


def format_utc_timestamp(created: float) -> str:
    """Render a LogRecord.created value as ``2026-10-18T10:48:37.123Z``."""
    moment = datetime.fromtimestamp(created, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def redact_secrets(value: Any) -> Any:
    """Return a copy of value with secret-bearing dict entries masked."""
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SECRET_KEYS else redact_secrets(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_secrets(item) for item in value]
    return value


class ISO8601Formatter(logging.Formatter):
    """Format structured (dict) log records as one JSON object per line.

    Non-dict messages are wrapped as ``{"message": str(msg)}``.
    """

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            payload = redact_secrets(record.msg)
        else:
            payload = {"message": record.getMessage()}

        return json.dumps({"time": format_utc_timestamp(record.created), **payload}, default=str)
