"""Tests for logging helpers, formatters, and JSONL logger setup."""

from __future__ import annotations

import json
import logging
import stat
import sys
from pathlib import Path

import pytest

from zkauth.telemetry.models.audit import AuthEvent
from zkauth.telemetry.system.system_logger import ConsoleFormatter
from zkauth.utils.logging.iso_formatter import REDACTED, ISO8601Formatter
from zkauth.utils.logging.logger_setup import prepare_log_file, setup_jsonl_logger
from zkauth.utils.logging.logging_helpers import (
    hash_auth_event_ids,
    hash_sensitive_id,
    serialize_audit_event,
)


def _record(msg: object, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("test", level, __file__, 1, msg, None, None)


class TestHashing:
    def test_hash_is_deterministic_and_prefixed(self):
        first = hash_sensitive_id("google|1234")

        assert first == hash_sensitive_id("google|1234")
        assert first.startswith("sha256:")
        assert len(first) == len("sha256:") + 8

    def test_empty_value(self):
        assert hash_sensitive_id("") == "sha256:empty"

    def test_hash_auth_event_ids_does_not_mutate_input(self):
        original = {"account_id": "acc-1", "email": "a@b.c", "reason": "ExpiredToken"}

        hashed = hash_auth_event_ids(original)

        assert original["account_id"] == "acc-1"
        assert hashed["account_id"] == hash_sensitive_id("acc-1")
        assert hashed["email"] == hash_sensitive_id("a@b.c")
        assert hashed["reason"] == "ExpiredToken"


class TestSerializeAuditEvent:
    def test_excludes_time_and_none(self):
        event = AuthEvent(event_type="session_refreshed", status="Success", account_id="acc-1")

        data = serialize_audit_event(event)

        assert data == {"event_type": "session_refreshed", "status": "Success", "account_id": "acc-1"}


class TestFormatters:
    def test_iso_formatter_dict_message(self):
        line = ISO8601Formatter().format(_record({"event": "x", "message": "hello"}))

        data = json.loads(line)
        assert data["event"] == "x"
        assert data["time"].endswith("Z")

    def test_iso_formatter_plain_string(self):
        data = json.loads(ISO8601Formatter().format(_record("plain text")))

        assert data["message"] == "plain text"

    def test_console_formatter_prefers_message(self):
        formatted = ConsoleFormatter().format(_record({"event": "e", "message": "m"}, logging.WARNING))

        assert formatted == "WARNING: m"

    def test_console_formatter_falls_back_to_event(self):
        assert ConsoleFormatter().format(_record({"event": "e"})) == "INFO: e"

    def test_iso_formatter_masks_credentials_at_any_depth(self):
        msg = {
            "event": "login_failed",
            "request": {"jwt": "eyJ...", "userSalt": "s1", "walletAddress": "0xab"},
            "tokens": [{"refresh_token": "rt"}],
        }

        data = json.loads(ISO8601Formatter().format(_record(msg)))

        assert data["request"] == {"jwt": REDACTED, "userSalt": REDACTED, "walletAddress": "0xab"}
        assert data["tokens"] == [{"refresh_token": REDACTED}]
        assert msg["request"]["jwt"] == "eyJ..."


class TestSetupJsonlLogger:
    def test_creates_owner_only_file_and_writes_jsonl(self, tmp_path: Path):
        log_file = tmp_path / "nested" / "x.jsonl"

        logger = setup_jsonl_logger("zkauth.test.jsonl", log_file)
        logger.info({"event": "hello"})
        for handler in logger.handlers:
            handler.flush()

        assert json.loads(log_file.read_text())["event"] == "hello"
        if sys.platform != "win32":
            assert stat.S_IMODE(log_file.stat().st_mode) == 0o600

    def test_reconfiguring_replaces_handler(self, tmp_path: Path):
        setup_jsonl_logger("zkauth.test.reconfigure", tmp_path / "a.jsonl")

        logger = setup_jsonl_logger("zkauth.test.reconfigure", tmp_path / "b.jsonl")

        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_prepare_log_file_reports_path(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("")

        with pytest.raises(OSError, match="Cannot prepare log file"):
            prepare_log_file(blocker / "x.jsonl")
