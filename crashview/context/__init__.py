"""Request context collection and masking."""

from .collector import ContextCollector
from .masking import is_sensitive_key, mask_value

__all__ = ["ContextCollector", "is_sensitive_key", "mask_value"]
