"""
Recursive output sanitization for report data.

Every string reaching the template goes through here. Only HighlightedHtml
is trusted (the highlighter produces it after its own allow-list pass).
Other Markup is shown as the text it stands for, and plain strings are
escaped and become Markup so the template's autoescaping does not escape
them a second time.

Copyright (c) 2025 Graziano Labs Corp.
"""

from collections.abc import Mapping, Set
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any

from markupsafe import Markup, escape

from ..source.highlight import HighlightedHtml


def sanitize(value: Any) -> Any:
    """
    Escape every string in a nested structure.

    Args:
        value: Report, dataclass, mapping, sequence or scalar

    Returns:
        The same shape with dataclasses turned into dicts, strings turned
        into escaped Markup and unknown objects into a type placeholder
    """
    if isinstance(value, HighlightedHtml):
        return value
    if isinstance(value, Markup):
        return escape(value.unescape())
    if isinstance(value, Enum):
        return sanitize(str(value.value))
    if isinstance(value, str):
        return escape(str(value))
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if is_dataclass(value) and not isinstance(value, type):
        return {
            _sanitize_key(f.name): sanitize(getattr(value, f.name))
            for f in fields(value)
        }
    if isinstance(value, Mapping):
        return {_sanitize_key(key): sanitize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, Set)):
        return [sanitize(item) for item in value]
    if type(value).__str__ is not object.__str__:
        return sanitize(str(value))
    return escape(f"[Object: {type(value).__name__}]")


def _sanitize_key(key: Any) -> Any:
    # Non-string keys (line numbers) stay usable for lookups
    if isinstance(key, Markup):
        return escape(key.unescape())
    if isinstance(key, str):
        return escape(str(key))
    return key
