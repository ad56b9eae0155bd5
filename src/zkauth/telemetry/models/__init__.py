"""Pydantic models for telemetry logs."""

from zkauth.telemetry.models.audit import AuthEvent, AuthEventType

__all__ = [
    "AuthEvent",
    "AuthEventType",
]
