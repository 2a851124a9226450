"""
Structured logging tests - message format and redaction of credentials.
"""

import logging

from mission_control.util.logging import StructuredLogger, sanitize_payload


class TestSanitizePayload:
    """Test payload sanitization."""

    def test_redacts_sensitive_keys(self):
        payload = {"apikey": "secret-value", "Authorization": "Bearer x", "table": "ops_steps"}

        sanitized = sanitize_payload(payload)

        assert sanitized["apikey"] == "[REDACTED]"
        assert sanitized["Authorization"] == "[REDACTED]"
        assert sanitized["table"] == "ops_steps"

    def test_truncates_long_strings(self):
        sanitized = sanitize_payload({"error": "e" * 150})
        assert sanitized["error"] == "e" * 100 + "..."

    def test_nested_structures(self):
        sanitized = sanitize_payload({"items": [{"token": "t"}, "ok"]})
        assert sanitized == {"items": [{"token": "[REDACTED]"}, "ok"]}

    def test_reveal_sensitive(self):
        assert sanitize_payload({"token": "t"}, reveal_sensitive=True) == {"token": "t"}


class TestStructuredLogger:
    """Test structured log lines."""

    def test_operation_format(self, caplog):
        log = StructuredLogger("mission_control.test")

        with caplog.at_level(logging.INFO, logger="mission_control.test"):
            log.log_operation("heartbeat", "success", {"processed": 3})

        assert "Operation: heartbeat, Status: success, Details: {'processed': 3}" in caplog.text

    def test_failed_step_logs_warning(self, caplog):
        log = StructuredLogger("mission_control.test")

        with caplog.at_level(logging.INFO, logger="mission_control.test"):
            log.log_step_transition("s1", "standup", "failed", {"error": "boom"})

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert "'step_id': 's1'" in record.getMessage()

    def test_heartbeat_duration(self, caplog):
        log = StructuredLogger("mission_control.test")

        with caplog.at_level(logging.INFO, logger="mission_control.test"):
            log.log_heartbeat(1.0, 1.25, "success")

        assert "'duration_ms': 250.0" in caplog.text
