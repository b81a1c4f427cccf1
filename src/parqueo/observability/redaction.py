"""Redaction helpers for safe logging.

User identifiers are opaque strings supplied by clients (often student or
staff numbers, sometimes emails) and are masked before reaching the logs.
"""

import re
from typing import Any

_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")

_REDACTED = "[REDACTED]"

# Keys whose values are always masked, whatever they look like
_MASKED_KEYS = frozenset({"user_id", "occupant_user_id"})


def mask_identifier(value: Any) -> str:
    """Keep only the last two characters of an identifier."""
    text = str(value)
    if len(text) <= 2:
        return "*" * len(text)
    return "*" * (len(text) - 2) + text[-2:]


def redact_string(value: str) -> str:
    """Replace emails and phone numbers in free text."""
    return _PHONE_PATTERN.sub(_REDACTED, _EMAIL_PATTERN.sub(_REDACTED, value))


def redact_value(value: Any) -> Any:
    """Make a single value safe to log.

    Numbers, booleans and None pass through; strings are scrubbed; anything
    else is reduced to its type name.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return redact_string(value)
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, Any]:
    """Build an extra_fields dict safe for logging."""
    return {
        key: mask_identifier(value) if key in _MASKED_KEYS and value is not None else redact_value(value)
        for key, value in kwargs.items()
    }
