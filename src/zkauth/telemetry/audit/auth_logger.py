"""Authentication audit logger.

Logs session lifecycle events to audit/auth.jsonl:
- Session issued (account created or logged in)
- Session rejected (typed reason)
- Session refreshed (rotation)
- Session revoked (single device or all devices)
- Access token invalid

Successful access-token verifications are not logged; they fire on every
request and only create noise.

Audit logging never breaks a request: if the audit file cannot be written the
event goes to the system logger instead.
"""

from __future__ import annotations

__all__ = [
    "AuthLogger",
    "create_auth_logger",
]

import logging
from pathlib import Path

from zkauth.constants import APP_NAME
from zkauth.exceptions import SessionRejected
from zkauth.telemetry.models.audit import AuthEvent
from zkauth.telemetry.system.system_logger import get_system_logger
from zkauth.utils.logging.logger_setup import setup_jsonl_logger
from zkauth.utils.logging.logging_helpers import (
    hash_auth_event_ids,
    serialize_audit_event,
)

_system_logger = get_system_logger()

AUTH_LOGGER_NAME = f"{APP_NAME}.audit.auth"


class AuthLogger:
    """Audit logger for authentication events.

    Usage:
        auth_logger = create_auth_logger(log_dir / "audit" / "auth.jsonl")
        auth_logger.log_session_issued(account_id=..., subject_id=..., created=True)
    """

    def __init__(self, logger: logging.Logger) -> None:
        """Initialize auth logger.

        Args:
            logger: Configured JSONL logger.
        """
        self._logger = logger

    def _log_event(self, event: AuthEvent) -> bool:
        """Log an auth event, falling back to the system logger.

        Args:
            event: The auth event to log.

        Returns:
            True if logged to the audit log, False if the fallback was used.
        """
        event_data = hash_auth_event_ids(serialize_audit_event(event))
        try:
            self._logger.info(event_data)
            return True
        except Exception as e:
            _system_logger.error(
                {
                    "event": "audit_log_failed",
                    "message": f"Auth audit write failed: {type(e).__name__}",
                    "source_file": "auth.jsonl",
                    "audit_event": event_data,
                }
            )
            return False

    def log_session_issued(
        self,
        *,
        account_id: str,
        subject_id: str,
        created: bool,
        message: str | None = None,
    ) -> bool:
        """Log a successful session issuance.

        Args:
            account_id: Account the session belongs to.
            subject_id: Identity provider subject.
            created: True if the account was created by this issuance.
            message: Optional human-readable message.

        Returns:
            True if logged successfully.
        """
        event = AuthEvent(
            event_type="session_issued",
            status="Success",
            account_id=account_id,
            subject_id=subject_id,
            created=created,
            message=message or ("Account created" if created else "Login successful"),
        )
        return self._log_event(event)

    def log_session_rejected(
        self,
        error: SessionRejected,
        *,
        subject_id: str | None = None,
        account_id: str | None = None,
        message: str | None = None,
    ) -> bool:
        """Log a rejected issuance or refresh.

        Args:
            error: The rejection (reason and message are recorded).
            subject_id: Subject, if claims were parseable.
            account_id: Account, if resolved before rejection.
            message: Optional human-readable message.

        Returns:
            True if logged successfully.
        """
        event = AuthEvent(
            event_type="session_rejected",
            status="Failure",
            subject_id=subject_id,
            account_id=account_id,
            reason=error.reason.value,
            error_type=type(error).__name__,
            error_message=error.message,
            message=message,
        )
        return self._log_event(event)

    def log_session_refreshed(self, *, account_id: str, message: str | None = None) -> bool:
        """Log a successful refresh token rotation."""
        event = AuthEvent(
            event_type="session_refreshed",
            status="Success",
            account_id=account_id,
            message=message,
        )
        return self._log_event(event)

    def log_session_revoked(
        self,
        *,
        account_id: str,
        revoke_all: bool,
        revoked_count: int,
        message: str | None = None,
    ) -> bool:
        """Log a logout.

        Args:
            account_id: Account whose tokens were revoked.
            revoke_all: True for logout from all devices.
            revoked_count: Number of refresh tokens removed.
            message: Optional human-readable message.

        Returns:
            True if logged successfully.
        """
        event = AuthEvent(
            event_type="session_revoked",
            status="Success",
            account_id=account_id,
            revoke_all=revoke_all,
            revoked_count=revoked_count,
            message=message,
        )
        return self._log_event(event)

    def log_token_invalid(
        self,
        error: SessionRejected,
        *,
        account_id: str | None = None,
        message: str | None = None,
    ) -> bool:
        """Log failed access or refresh token verification."""
        event = AuthEvent(
            event_type="token_invalid",
            status="Failure",
            account_id=account_id,
            reason=error.reason.value,
            error_type=type(error).__name__,
            error_message=error.message,
            message=message,
        )
        return self._log_event(event)


def create_auth_logger(log_path: Path | None) -> AuthLogger:
    """Create an auth logger writing JSONL to log_path.

    Args:
        log_path: Path to auth.jsonl. None disables the audit file (events
            are discarded), which is what tests and the in-memory setup use.

    Returns:
        AuthLogger: Configured logger for authentication events.
    """
    if log_path is not None:
        try:
            return AuthLogger(setup_jsonl_logger(AUTH_LOGGER_NAME, log_path, logging.INFO))
        except OSError as e:
            _system_logger.warning(
                {
                    "event": "audit_log_unavailable",
                    "message": f"Cannot open auth audit log {log_path}: {e}",
                }
            )

    logger = logging.getLogger(f"{AUTH_LOGGER_NAME}.disabled")
    logger.propagate = False
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return AuthLogger(logger)
