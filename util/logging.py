"""
Structured logging for the community data layer.
Every store mutation, lifecycle transition and rejected write is logged as an operation record.
"""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['email', 'phone', 'password', 'secret', 'token']


class StructuredLogger:
    """Structured logger for store, uniqueness and lifecycle operations."""

    def __init__(self, name: str = "community"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_level(self, level: str) -> None:
        """Set the level by name; unknown names fall back to INFO."""
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None,
                      level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_store_operation(self, store: str, operation: str, key: Any, status: str = "success",
                            modification_count: int = None):
        """Log a keyed store operation."""
        details = {"key": key}
        if modification_count is not None:
            details["modification_count"] = modification_count

        # Store traffic is high volume; keep it at debug
        self.log_operation(f"{store}.{operation}", status, details, level=logging.DEBUG)

    def log_transition(self, key: str, from_status: str, to_status: str, operation: str):
        """Log a completed service request state transition."""
        log_details = {
            "key": key,
            "from": from_status,
            "to": to_status,
        }
        self.log_operation(f"lifecycle.{operation}", "transitioned", log_details)

    def log_transition_rejected(self, key: str, from_status: str, to_status: str, operation: str):
        """Log a transition refused by the state table."""
        log_details = {
            "key": key,
            "from": from_status,
            "to": to_status,
        }
        self.log_operation(f"lifecycle.{operation}", "rejected", log_details, level=logging.WARNING)

    def log_uniqueness_violation(self, constraint: str, value: Any, candidate_key: Any):
        """Log a write blocked by a uniqueness constraint."""
        log_details = {
            "constraint": constraint,
            "value": sanitize_payload(value) if constraint not in SENSITIVE_FIELDS else "[REDACTED]",
            "candidate_key": "[REDACTED]" if isinstance(candidate_key, str) and "@" in candidate_key else candidate_key,
        }
        self.log_operation("uniqueness.violation", "rejected", log_details, level=logging.WARNING)

    def log_scheduling_conflict(self, key: str, reason: str, details: Dict[str, Any] = None):
        """Log a scheduling attempt that failed validation."""
        log_details = {"key": key, "reason": reason}
        if details:
            log_details.update(details)

        self.log_operation("lifecycle.schedule", "conflict", log_details, level=logging.WARNING)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None,
                sensitive_fields: List[str] = None):
    """General audit event logging with privacy controls."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload, sensitive_fields=sensitive_fields)

    if event_type.startswith("resident"):
        operation = "residents"
    elif event_type.startswith("service"):
        operation = "services"
    else:
        operation = event_type.replace(".", "_")

    logger.log_operation(f"{operation}.{event_type}", "audit", log_details)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, (list, tuple)):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
