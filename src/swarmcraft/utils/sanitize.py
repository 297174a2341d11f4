"""Error message sanitization to prevent credential leakage."""

from __future__ import annotations

import os
import re

_SECRET_PATTERNS = (
    (r"sk-ant-[a-zA-Z0-9_-]+", "[REDACTED_KEY]"),
    (r"sk-[a-zA-Z0-9_-]{20,}", "[REDACTED_KEY]"),
    (r"Bearer\s+\S+", "Bearer [REDACTED]"),
    (r"x-api-key:\s*\S+", "x-api-key: [REDACTED]"),
    (r"Authorization:\s*\S+", "Authorization: [REDACTED]"),
)


def sanitize_error(message: str, max_length: int = 2000) -> str:
    """Redact API keys and home paths from backend error messages, then truncate."""
    if not message:
        return message

    sanitized = message
    for pattern, replacement in _SECRET_PATTERNS:
        sanitized = re.sub(pattern, replacement, sanitized)

    home = os.environ.get("HOME") or os.environ.get("USERPROFILE") or ""
    if home:
        sanitized = sanitized.replace(home, "[USER_HOME]")

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "... [truncated]"
    return sanitized
