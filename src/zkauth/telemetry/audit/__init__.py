"""Audit logging for authentication events."""

from zkauth.telemetry.audit.auth_logger import (
    AuthLogger,
    create_auth_logger,
)

__all__ = [
    "AuthLogger",
    "create_auth_logger",
]
