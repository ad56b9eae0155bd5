"""Pydantic models for the authentication audit log (audit/auth.jsonl).

The 'time' field is None when an event is created; ISO8601Formatter adds the
timestamp during log serialization, so there is a single source of truth for
timestamps.
"""

from __future__ import annotations

__all__ = [
    "AuthEvent",
    "AuthEventType",
]

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

AuthEventType = Literal[
    "session_issued",
    "session_rejected",
    "session_refreshed",
    "session_revoked",
    "token_invalid",
]


class AuthEvent(BaseModel):
    """One authentication log entry.

    Identity fields (subject_id, account_id, email, wallet_address) are
    hashed by AuthLogger before the event is written.
    """

    # --- core ---
    time: str | None = Field(
        None,
        description="ISO 8601 timestamp, added by formatter during serialization",
    )
    event_type: AuthEventType
    status: Literal["Success", "Failure"]
    message: str | None = None

    # --- identity (hashed before writing) ---
    subject_id: str | None = None
    account_id: str | None = None
    email: str | None = None
    wallet_address: str | None = None

    # --- outcome ---
    created: bool | None = None  # session_issued: new account vs. login
    revoke_all: bool | None = None  # session_revoked: logout-all
    revoked_count: int | None = None

    # --- errors / extra details ---
    reason: str | None = None  # RejectedReason value
    error_type: str | None = None  # e.g. "ExpiredTokenError"
    error_message: str | None = None
    details: dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")
