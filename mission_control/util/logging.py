"""
Structured logging for the ops kernel.
Every kernel operation is logged as `Operation: <name>, Status: <status>, Details: {...}`.
"""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['apikey', 'authorization', 'secret', 'password', 'service_role_key', 'token']


class StructuredLogger:
    """Structured logger for store calls, proposals, steps and heartbeats."""

    def __init__(self, name: str = "mission_control"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_store_request(self, method: str, table: str, status_code: int, duration_ms: float):
        """Log a row store round trip."""
        details = {"table": table, "status_code": status_code, "duration_ms": round(duration_ms, 2)}
        status = "success" if 200 <= status_code < 300 else "failed"
        level = logging.DEBUG if status == "success" else logging.WARNING
        self.log_operation(f"store.{method.lower()}", status, details, level=level)

    def log_proposal(self, proposal_id: str, trigger: str, status: str, details: Dict[str, Any] = None):
        """Log a proposal transition (pending, approved or rejected)."""
        log_details = {"proposal_id": proposal_id, "trigger": trigger}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation("proposal", status, log_details)

    def log_step_transition(self, step_id: str, kind: str, status: str, details: Dict[str, Any] = None):
        """Log a step status change."""
        log_details = {"step_id": step_id, "kind": kind}
        if details:
            log_details.update(sanitize_payload(details))

        level = logging.WARNING if status == "failed" else logging.INFO
        self.log_operation("step", status, log_details, level=level)

    def log_trigger(self, trigger: str, status: str, reason: str = None):
        """Log a trigger evaluation outcome."""
        log_details = {"trigger": trigger}
        if reason:
            log_details["reason"] = reason

        self.log_operation("trigger", status, log_details)

    def log_heartbeat(self, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log a heartbeat pass with its duration."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)

        self.log_operation("heartbeat", status, log_details)

    def log_policy_fallback(self, key: str, value: Any):
        """Log a stored policy value that was replaced by its default."""
        self.log_operation("policy.fallback", "defaulted", {
            "key": key,
            "stored_type": type(value).__name__,
        }, level=logging.WARNING)

    def log_summary(self, summary_type: str, window_hours: int, recorded: bool):
        """Log generation of a standup or briefing."""
        self.log_operation(f"summary.{summary_type}", "generated", {
            "window_hours": window_hours,
            "recorded": recorded,
        })


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for logging: truncate long strings and redact secret-like keys."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or str(k).lower() not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
