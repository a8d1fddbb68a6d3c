"""
Masking and truncation helpers shared by the context collector and the
stack trace formatter.

Copyright (c) 2025 Graziano Labs Corp.
"""

from typing import Any, Dict, Mapping

# Case-insensitive substrings that mark a key as sensitive
SENSITIVE_KEYS = (
    "password",
    "passwd",
    "pass",
    "pwd",
    "secret",
    "key",
    "token",
    "auth",
    "authorization",
    "api_key",
    "apikey",
    "access_token",
    "refresh_token",
    "private_key",
    "public_key",
    "salt",
    "hash",
    "signature",
    "csrf_token",
    "xsrf_token",
    "_token",
    "cookie",
    "session_id",
    "sessid",
    "credential",
)

HIDDEN = "[HIDDEN]"
MAX_ITEMS = 50
OVERFLOW_KEY = "..."


def is_sensitive_key(key: Any) -> bool:
    """True if the key name contains any sensitive vocabulary term."""
    lowered = str(key).lower()
    return any(term in lowered for term in SENSITIVE_KEYS)


def mask_value(value: Any) -> str:
    """
    Mask a sensitive value while keeping its presence visible.

    Strings of up to 4 characters become all asterisks; longer strings keep
    their first 2 and last 2 characters. Anything else becomes [HIDDEN].
    """
    if isinstance(value, str):
        value = str(value)
        if len(value) <= 4:
            return "*" * len(value)
        return value[:2] + "*" * (len(value) - 4) + value[-2:]
    return HIDDEN


def truncate_string(value: str, max_length: int) -> str:
    """Cut strings longer than max_length, ending them with an ellipsis."""
    value = str(value)
    if len(value) <= max_length:
        return value
    return value[:max_length - 3] + "..."


def overflow_marker(remaining: int) -> str:
    return f"... {remaining} more items"


def sanitize_mapping(
    data: Mapping[Any, Any], max_length: int, max_items: int = MAX_ITEMS
) -> Dict[str, Any]:
    """
    Mask sensitive keys, truncate long strings and cap item counts,
    recursing into nested mappings and sequences.

    Args:
        data: Raw key/value data
        max_length: String truncation length
        max_items: Items kept per mapping before the overflow marker

    Returns:
        New dictionary safe to display
    """
    sanitized: Dict[str, Any] = {}
    items = list(data.items())
    for key, value in items[:max_items]:
        key = str(key)
        if is_sensitive_key(key):
            sanitized[key] = mask_value(value)
        else:
            sanitized[key] = _sanitize_value(value, max_length, max_items)

    if len(items) > max_items:
        sanitized[OVERFLOW_KEY] = overflow_marker(len(items) - max_items)
    return sanitized


def _sanitize_value(value: Any, max_length: int, max_items: int) -> Any:
    if isinstance(value, Mapping):
        return sanitize_mapping(value, max_length, max_items)
    if isinstance(value, (list, tuple)):
        kept = [_sanitize_value(v, max_length, max_items) for v in value[:max_items]]
        if len(value) > max_items:
            kept.append(overflow_marker(len(value) - max_items))
        return kept
    if isinstance(value, str):
        return truncate_string(value, max_length)
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return truncate_string(str(value), max_length)
