"""Credential redaction for logs.

API keys are masked (first six characters kept) wherever they show up in log
output, so logs stay safe to share. Passwords are removed outright.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ..auth.keys import mask_api_key


@dataclass
class RedactionPattern:
    """A pattern whose ``secret`` group gets masked."""

    name: str
    pattern: re.Pattern
    description: str = ""


_REDACTION_PATTERNS: list[RedactionPattern] = [
    RedactionPattern(
        "api_key",
        re.compile(r"(?P<secret>\bak_[0-9a-zA-Z]{6,})"),
        "Generated API key",
    ),
    RedactionPattern(
        "api_key_header",
        re.compile(r"(?i)x-api-key[\"']?\s*[:=]\s*[\"']?(?P<secret>[^\s\"',}]+)"),
        "X-API-KEY header value",
    ),
    RedactionPattern(
        "password",
        re.compile(r"(?i)password[\"']?\s*[:=]\s*[\"']?(?P<secret>[^\s\"',}]{3,})"),
        "Password field",
    ),
]

SENSITIVE_KEY_NAMES = (
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "x-api-key",
    "credential",
)


@dataclass
class RedactionConfig:
    """Configuration for the redaction engine."""

    custom_patterns: list[RedactionPattern] = field(default_factory=list)

    # Maximum depth for nested structure redaction
    max_depth: int = 10


class Redactor:
    """Masks credentials in text and structured data."""

    def __init__(self, config: RedactionConfig | None = None):
        self.config = config or RedactionConfig()
        self._patterns = [*_REDACTION_PATTERNS, *self.config.custom_patterns]

    @staticmethod
    def _mask_match(match: re.Match) -> str:
        text = match.group(0)
        secret = match.group("secret")
        start = match.start("secret") - match.start(0)
        if "password" in text[:start].lower():
            masked = "[REDACTED]"
        else:
            masked = mask_api_key(secret)
        return text[:start] + masked + text[start + len(secret) :]

    def redact_string(self, text: str) -> str:
        """Mask credentials inside a string."""
        if not text or not isinstance(text, str):
            return text

        result = text
        for pattern in self._patterns:
            result = pattern.pattern.sub(self._mask_match, result)
        return result

    def redact_value(self, value: Any, depth: int = 0) -> Any:
        """Recursively redact strings, dicts and sequences."""
        if depth > self.config.max_depth:
            return "[MAX_DEPTH_EXCEEDED]"

        if value is None or isinstance(value, (int, float, bool)):
            return value

        if isinstance(value, str):
            return self.redact_string(value)

        if isinstance(value, dict):
            return self._redact_dict(value, depth)

        if isinstance(value, (list, tuple)):
            return type(value)(self.redact_value(item, depth + 1) for item in value)

        return self.redact_string(str(value))

    def _redact_dict(self, data: dict, depth: int) -> dict:
        result = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if isinstance(value, str) and any(name in key_lower for name in SENSITIVE_KEY_NAMES):
                result[key] = "[REDACTED]" if "pass" in key_lower else mask_api_key(value)
            else:
                result[key] = self.redact_value(value, depth + 1)
        return result


class ApiKeyRedactingFilter(logging.Filter):
    """Logging filter that masks credentials in every record it sees.

    The record's message is rendered once, redacted, and stored back with
    its args cleared, so later handlers format the safe text.
    """

    def __init__(self, redactor: Redactor | None = None):
        super().__init__()
        self.redactor = redactor or get_redactor()

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        redacted = self.redactor.redact_string(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def install_log_redaction(logger: logging.Logger | None = None) -> ApiKeyRedactingFilter:
    """Attach a redacting filter to every handler of ``logger`` (root by default).

    Idempotent: handlers that already carry the filter are skipped.
    """
    target = logger or logging.getLogger()
    log_filter = ApiKeyRedactingFilter()
    for handler in target.handlers:
        if not any(isinstance(f, ApiKeyRedactingFilter) for f in handler.filters):
            handler.addFilter(log_filter)
    return log_filter


# Global redactor instance
_default_redactor: Redactor | None = None


def get_redactor(config: RedactionConfig | None = None) -> Redactor:
    """Get the global redactor instance.

    Args:
        config: Optional config to use (creates new instance if provided)
    """
    global _default_redactor

    if config is not None:
        return Redactor(config)

    if _default_redactor is None:
        _default_redactor = Redactor()

    return _default_redactor


def redact(value: Any) -> Any:
    """Convenience function to redact sensitive data."""
    return get_redactor().redact_value(value)


def redact_string(text: str) -> str:
    """Convenience function to redact a string."""
    return get_redactor().redact_string(text)


# Exports
__all__ = [
    "ApiKeyRedactingFilter",
    "RedactionConfig",
    "RedactionPattern",
    "Redactor",
    "get_redactor",
    "install_log_redaction",
    "redact",
    "redact_string",
]
