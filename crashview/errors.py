"""
Error taxonomy for the crashview pipeline.

These errors are raised inside components and caught at component seams:
they become field-level error strings or the fallback document and never
escape ReportRenderer.render().

Error code ranges:
- E001-E099: Template and rendering errors
- E010-E019: Security violations (traversal, paths outside the root)
- E100-E199: Source extraction errors

Copyright (c) 2025 Graziano Labs Corp.
"""


class CrashViewError(Exception):
    """Base class for all crashview errors."""

    def __init__(
        self,
        code: str,
        message: str,
        loc: tuple[str, int] | None = None,
        hint: str | None = None
    ):
        """
        Initialize crashview error.

        Args:
            code: Error code (e.g., "E001")
            message: Human-readable error message
            loc: Optional (file, line) location
            hint: Optional suggestion for fixing the error
        """
        self.code = code
        self.message = message
        self.loc = loc
        self.hint = hint
        super().__init__(f"[{code}] {message}")


class TemplateError(CrashViewError):
    """Template rendering errors (E001-E099)."""
    pass


class SecurityError(CrashViewError):
    """Security violations (E010-E019)."""
    pass


class SourceError(CrashViewError):
    """Source extraction errors (E100-E199)."""
    pass


# Specific error codes documentation:
#
# E001: Template name rejected or template missing
# E002: Exception raised while assembling or rendering the report
# E003: Template does not compile (loc is the template file and line)
# E010: Path contains a parent-directory segment
# E011: Path resolves outside the allowed root
# E100: File not found or not readable
# E101: No lines in the requested range
