"""Log sanitization for Orgo and Anthropic credentials.

Error messages from the Orgo API, the Anthropic SDK and requests can echo
request headers or URLs. Everything that reaches a log line, the console or a
JSON response goes through LogSanitizer first.

Design Philosophy:
- Security first: err on side of over-redaction
- Pattern-based: not brittle keyword matching
"""

import re
from re import Pattern
from typing import Any


class LogSanitizer:
    """Sanitize API keys and bearer tokens from logs and error messages.

    All methods are class methods and can be called without instantiation.
    """

    REDACTED = "[REDACTED]"

    # Order matters: more specific patterns come first
    SECRET_PATTERNS: dict[str, Pattern] = {
        "authorization_bearer": re.compile(r"(Authorization:?\s*Bearer\s+)([^\s\"',]+)", re.IGNORECASE),
        "bearer_token": re.compile(r"(Bearer\s+)([A-Za-z0-9._\-]{8,})"),
        "anthropic_key": re.compile(r"()(sk-ant-[A-Za-z0-9_\-]+)"),
        "orgo_key": re.compile(r"()(sk_(?:live|test)_[A-Za-z0-9_\-]+)"),
        "x_api_key_header": re.compile(r"(x-api-key[\"']?\s*[:=]\s*[\"']?)([^\s\"',]+)", re.IGNORECASE),
        "api_key_assignment": re.compile(
            r"((?:ORGO_|ANTHROPIC_)?api[_-]?key[\"']?\s*[:=]\s*[\"']?)([^\s\"'&,\)]+)",
            re.IGNORECASE,
        ),
        "token_assignment": re.compile(
            r"([^a-zA-Z]token[\"']?\s*[:=]\s*[\"']?)([^\s\"'&,\)]+)", re.IGNORECASE
        ),
    }

    SENSITIVE_KEYS = ("api_key", "apikey", "token", "secret", "authorization", "password")

    @classmethod
    def sanitize(cls, message: Any) -> str:
        """Redact credentials from a message.

        Examples:
            >>> LogSanitizer.sanitize("Authorization: Bearer abc123def456")
            'Authorization: Bearer [REDACTED]'
            >>> LogSanitizer.sanitize("ORGO_API_KEY=sk_live_1")
            'ORGO_API_KEY=[REDACTED]'
        """
        if not isinstance(message, str):
            message = str(message)

        result = message
        for pattern in cls.SECRET_PATTERNS.values():
            result = pattern.sub(r"\1" + cls.REDACTED, result)
        return result

    @classmethod
    def create_safe_error_message(cls, error: BaseException, context: str = "") -> str:
        """Create error message with secrets sanitized.

        Examples:
            >>> err = ValueError("rejected api_key=abc123")
            >>> LogSanitizer.create_safe_error_message(err, "Connect")
            'Connect: rejected api_key=[REDACTED]'
        """
        sanitized_msg = cls.sanitize(str(error) or error.__class__.__name__)
        if context:
            return f"{context}: {sanitized_msg}"
        return sanitized_msg

    @classmethod
    def sanitize_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Sanitize dictionary values recursively.

        Values under sensitive keys are replaced entirely; other strings are
        passed through sanitize().
        """
        result: dict[str, Any] = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(word in key_lower for word in cls.SENSITIVE_KEYS):
                result[key] = cls.REDACTED
            elif isinstance(value, dict):
                result[key] = cls.sanitize_dict(value)
            elif isinstance(value, str):
                result[key] = cls.sanitize(value)
            else:
                result[key] = value
        return result


__all__ = ["LogSanitizer"]
