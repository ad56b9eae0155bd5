"""Helpers that turn audit events into log payloads.

Audit lines must let an operator follow one account through
issue/refresh/revoke without the log itself identifying the person, so
personal identifiers are replaced by short stable digests.
"""

from __future__ import annotations

__all__ = [
    "PERSONAL_FIELDS",
    "hash_auth_event_ids",
    "hash_sensitive_id",
    "serialize_audit_event",
]

import hashlib
from typing import Any

from pydantic import BaseModel

PERSONAL_FIELDS: tuple[str, ...] = ("subject_id", "account_id", "email", "wallet_address")


def serialize_audit_event(event: BaseModel) -> dict[str, Any]:
    """JSON-mode dump without ``time`` (the formatter stamps it) or unset fields."""
    return event.model_dump(mode="json", exclude={"time"}, exclude_none=True)


def hash_sensitive_id(value: str, prefix_length: int = 8) -> str:
    """Return ``sha256:<first prefix_length hex chars>`` of value.

    Deterministic, so two lines about the same account share a digest.
    Empty input yields ``sha256:empty``.

    Example:
        >>> hash_sensitive_id("google|1234")[:7]
        'sha256:'
    """
    if not value:
        return "sha256:empty"
    return "sha256:" + hashlib.sha256(value.encode("utf-8")).hexdigest()[:prefix_length]


def hash_auth_event_ids(event_data: dict[str, Any]) -> dict[str, Any]:
    """Copy of event_data with every non-empty PERSONAL_FIELDS value digested."""
    return {
        key: hash_sensitive_id(str(value)) if key in PERSONAL_FIELDS and value else value
        for key, value in event_data.items()
    }
