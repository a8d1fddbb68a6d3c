"""Stack trace formatting."""

from .formatter import StackTraceFormatter, function_name

__all__ = ["StackTraceFormatter", "function_name"]
