"""Tests for the authentication audit logger."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from zkauth.exceptions import ExpiredTokenError, WalletAddressMismatchError
from zkauth.telemetry.audit.auth_logger import AuthLogger, create_auth_logger
from zkauth.telemetry.models.audit import AuthEvent
from zkauth.utils.logging.logging_helpers import hash_sensitive_id


def _read_events(path: Path) -> list[dict]:
    for handler in logging.getLogger("zkauth.audit.auth").handlers:
        handler.flush()
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "audit" / "auth.jsonl"


class TestAuthLoggerFile:
    """Events written to auth.jsonl."""

    def test_session_issued_is_written_with_hashed_ids(self, log_path: Path) -> None:
        # Arrange
        auth_logger = create_auth_logger(log_path)

        # Act
        assert auth_logger.log_session_issued(account_id="acc-1", subject_id="u1", created=True)

        # Assert
        [event] = _read_events(log_path)
        assert event["event_type"] == "session_issued"
        assert event["status"] == "Success"
        assert event["created"] is True
        assert event["message"] == "Account created"
        assert event["account_id"] == hash_sensitive_id("acc-1")
        assert event["subject_id"] == hash_sensitive_id("u1")
        assert event["time"].endswith("Z")

    def test_rejection_records_reason(self, log_path: Path) -> None:
        auth_logger = create_auth_logger(log_path)

        auth_logger.log_session_rejected(WalletAddressMismatchError(), subject_id="u1")

        [event] = _read_events(log_path)
        assert event["reason"] == "WalletAddressMismatch"
        assert event["error_type"] == "WalletAddressMismatchError"
        assert event["status"] == "Failure"
        assert "account_id" not in event

    def test_revocation_and_token_invalid(self, log_path: Path) -> None:
        auth_logger = create_auth_logger(log_path)

        auth_logger.log_session_revoked(account_id="acc-1", revoke_all=True, revoked_count=3)
        auth_logger.log_token_invalid(ExpiredTokenError())

        revoked, invalid = _read_events(log_path)
        assert revoked["revoke_all"] is True
        assert revoked["revoked_count"] == 3
        assert invalid["event_type"] == "token_invalid"
        assert invalid["reason"] == "ExpiredToken"


class TestAuthLoggerFallback:
    def test_disabled_logger_discards_events(self) -> None:
        auth_logger = create_auth_logger(None)

        assert auth_logger.log_session_refreshed(account_id="acc-1") is True

    def test_write_failure_falls_back_to_system_logger(self) -> None:
        broken = MagicMock(spec=logging.Logger)
        broken.info.side_effect = OSError("disk full")
        auth_logger = AuthLogger(broken)

        with patch("zkauth.telemetry.audit.auth_logger._system_logger") as system_logger:
            assert auth_logger.log_session_refreshed(account_id="acc-1") is False

        payload = system_logger.error.call_args[0][0]
        assert payload["event"] == "audit_log_failed"
        assert payload["audit_event"]["account_id"] == hash_sensitive_id("acc-1")

    def test_unwritable_path_falls_back_to_disabled(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        auth_logger = create_auth_logger(blocker / "auth.jsonl")

        assert auth_logger.log_session_refreshed(account_id="acc-1") is True


class TestAuthEventModel:
    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            AuthEvent(event_type="session_issued", status="Success", password="x")

    def test_rejects_unknown_event_type(self) -> None:
        with pytest.raises(ValidationError):
            AuthEvent(event_type="login", status="Success")
