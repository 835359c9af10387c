"""Keyward security logging.

This module keeps credentials out of logs and records authentication
events:
- API keys masked to their first six characters, passwords removed
- One-line security events with per-request correlation ids

Example usage:
    from keyward.audit import SecurityEventType, SecurityLogger, install_log_redaction

    install_log_redaction()

    security = SecurityLogger()
    security.log_event(
        SecurityEventType.AUTH_FAILED,
        endpoint="/api/auth/me",
        status=401,
        reason="Unauthorized",
    )
"""

from __future__ import annotations

from .logger import (
    SecurityEvent,
    SecurityEventType,
    SecurityLogger,
    current_request_id,
    is_suspicious_user_agent,
    request_id_scope,
)
from .redaction import (
    ApiKeyRedactingFilter,
    Redactor,
    get_redactor,
    install_log_redaction,
    redact,
    redact_string,
)

__all__ = [
    # Logger
    "SecurityEvent",
    "SecurityEventType",
    "SecurityLogger",
    "current_request_id",
    "is_suspicious_user_agent",
    "request_id_scope",
    # Redaction
    "ApiKeyRedactingFilter",
    "Redactor",
    "get_redactor",
    "install_log_redaction",
    "redact",
    "redact_string",
]
