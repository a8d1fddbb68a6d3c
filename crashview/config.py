"""
crashview Configuration Module

Centralized configuration for the error-rendering pipeline.
Loads settings from environment variables with sensible defaults and
clamps every numeric setting into its supported range.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

# Bounds shared by programmatic and environment configuration
CONTEXT_LINES_RANGE = (0, 50)
MAX_STRING_LENGTH_RANGE = (100, 10000)
DEFAULT_CONTEXT_BUDGET = 1024 * 1024

_TRUE_VALUES = ("true", "1", "yes", "on")


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, int(value)))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


@dataclass
class DebugConfig:
    """Configuration for the debug error renderer.

    All collaborators (extractor, collector, formatter, renderer) receive an
    instance of this class through their constructors. The process-wide
    default is resolved once from the environment by get_default_config().
    """

    show_source: bool = True
    """Show source code windows around the error site and application frames"""

    context_lines: int = 10
    """Lines shown before and after the error line.

    Clamped to 0-50.
    """

    max_string_length: int = 1000
    """Maximum length of any string value in context data and frame arguments.

    Clamped to 100-10000. Longer strings are truncated with an ellipsis.
    """

    hide_vendor_frames: bool = True
    """Drop third-party frames from the formatted stack trace"""

    frame_context_lines: int = 5
    """Lines shown around each application frame (smaller than the error site).

    Clamped to 0-50.
    """

    project_root: str = field(default_factory=os.getcwd)
    """Directory source files must live under to be displayed"""

    context_budget_bytes: int = DEFAULT_CONTEXT_BUDGET
    """Serialized-size ceiling for the collected request context (1 MB)"""

    def __post_init__(self):
        self.context_lines = _clamp(self.context_lines, CONTEXT_LINES_RANGE)
        self.frame_context_lines = _clamp(self.frame_context_lines, CONTEXT_LINES_RANGE)
        self.max_string_length = _clamp(self.max_string_length, MAX_STRING_LENGTH_RANGE)
        self.project_root = str(self.project_root)

    @classmethod
    def from_env(cls) -> "DebugConfig":
        """Load configuration from environment variables.

        Environment variables:
          DEBUG_SHOW_SOURCE - Show source windows (true/false)
          DEBUG_CONTEXT_LINES - Context lines around the error (0-50)
          DEBUG_MAX_STRING_LENGTH - String truncation length (100-10000)
          DEBUG_HIDE_VENDOR - Hide vendor frames (true/false)
          DEBUG_FRAME_CONTEXT_LINES - Context lines around each frame (0-50)
          DEBUG_PROJECT_ROOT - Root directory for source display
          DEBUG_CONTEXT_BUDGET - Context size budget in bytes

        Returns:
            DebugConfig instance with values from environment
        """
        return cls(
            show_source=_env_bool("DEBUG_SHOW_SOURCE", True),
            context_lines=_env_int("DEBUG_CONTEXT_LINES", 10),
            max_string_length=_env_int("DEBUG_MAX_STRING_LENGTH", 1000),
            hide_vendor_frames=_env_bool("DEBUG_HIDE_VENDOR", True),
            frame_context_lines=_env_int("DEBUG_FRAME_CONTEXT_LINES", 5),
            project_root=os.getenv("DEBUG_PROJECT_ROOT") or os.getcwd(),
            context_budget_bytes=_env_int("DEBUG_CONTEXT_BUDGET", DEFAULT_CONTEXT_BUDGET),
        )

    def validate(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.context_budget_bytes <= 0:
            raise ValueError(
                f"context_budget_bytes must be positive, got {self.context_budget_bytes}"
            )

        if not self.project_root.strip():
            raise ValueError("project_root must not be empty")

    def get_summary(self) -> str:
        """Get human-readable configuration summary.

        Returns:
            Formatted string describing current configuration
        """
        lines = [
            "crashview Configuration Summary",
            "=" * 50,
            "",
            "Source display:",
            f"  Show source: {'Enabled' if self.show_source else 'Disabled'}",
            f"  Context lines: {self.context_lines}",
            f"  Frame context lines: {self.frame_context_lines}",
            f"  Project root: {self.project_root}",
            "",
            "Stack traces:",
            f"  Vendor frames: {'Hidden' if self.hide_vendor_frames else 'Shown'}",
            "",
            "Request context:",
            f"  Max string length: {self.max_string_length}",
            f"  Context budget: {self.context_budget_bytes} bytes",
        ]
        return "\n".join(lines)


# Default configuration instance (lazy-loaded from environment)
_default_config: Optional[DebugConfig] = None


def get_default_config() -> DebugConfig:
    """Get default configuration instance (singleton pattern).

    Returns:
        Default DebugConfig loaded from environment
    """
    global _default_config
    if _default_config is None:
        _default_config = DebugConfig.from_env()
        _default_config.validate()
    return _default_config


def reset_default_config() -> None:
    """Forget the cached default configuration (used by tests)."""
    global _default_config
    _default_config = None
