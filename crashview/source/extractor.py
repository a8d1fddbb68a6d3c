"""
Source window extraction around error locations.

Reads a bounded, validated slice of a source file and highlights each line.
Every rejection (display disabled, traversal, outside the project root,
unreadable file) is reported through SourceWindow.error; extract() never
raises.

Copyright (c) 2025 Graziano Labs Corp.
"""

import itertools
import logging
import os
import re
from pathlib import Path
from typing import List, Optional

from ..config import CONTEXT_LINES_RANGE, DebugConfig, get_default_config
from ..errors import SecurityError, SourceError
from ..models import LineRecord, SourceWindow
from .highlight import SyntaxHighlighter

logger = logging.getLogger(__name__)

# File size policy
MAX_FILE_SIZE = 10 * 1024 * 1024
SMALL_FILE_SIZE = 100 * 1024
TOO_LARGE_PLACEHOLDER = "[File too large to display]"

_SEPARATORS = re.compile(r"[\\/]")


class SourceExtractor:
    """Extract highlighted source windows from files under the project root."""

    def __init__(
        self,
        config: Optional[DebugConfig] = None,
        highlighter: Optional[SyntaxHighlighter] = None,
    ):
        self.config = config or get_default_config()
        self.highlighter = highlighter or SyntaxHighlighter()

    def extract(
        self, file: str, line: int, context_lines: Optional[int] = None
    ) -> SourceWindow:
        """
        Extract the lines around a target line.

        Args:
            file: Path of the source file
            line: Target (error) line, 1-based
            context_lines: Lines before and after; defaults to configuration

        Returns:
            SourceWindow with highlighted lines, or with error set
        """
        line = max(1, int(line or 1))

        if not self.config.show_source:
            return _rejected("Source code display is disabled", line)

        if context_lines is None:
            context_lines = self.config.context_lines
        low, high = CONTEXT_LINES_RANGE
        context_lines = max(low, min(high, int(context_lines)))

        start = max(1, line - context_lines)
        end = line + context_lines

        try:
            path = self._validate_path(file)
            contents = self._read_lines(path, start, end)
        except (SecurityError, SourceError) as e:
            logger.debug("Source window for %r rejected: %s", file, e)
            return _rejected(e.message, line, start, end)

        window = SourceWindow(
            start_line=start,
            end_line=min(end, start + len(contents) - 1),
            highlighted_line=line,
        )
        for number, content in enumerate(contents, start=start):
            window.lines[number] = LineRecord(
                number=number,
                raw_content=content,
                highlighted_html=self.highlighter.highlight(content, filename=str(path)),
                is_highlighted=number == line,
            )
        return window

    def _validate_path(self, file: str) -> Path:
        """
        Resolve a path and make sure it is a readable file under the root.

        Raises:
            SecurityError: On traversal segments or paths outside the root
            SourceError: If the file does not exist or is not readable
        """
        if not file or ".." in _SEPARATORS.split(str(file)):
            raise SecurityError(
                code="E010",
                message="Path traversal is not allowed",
                hint="Frame paths must not contain '..' segments"
            )

        try:
            real = Path(file).resolve(strict=True)
            root = Path(self.config.project_root).resolve(strict=True)
        except (OSError, RuntimeError):
            raise SourceError(
                code="E100",
                message=f"File not found or not readable: {file}",
            )

        if real != root and root not in real.parents:
            raise SecurityError(
                code="E011",
                message="File is outside the project root",
                hint="Set DEBUG_PROJECT_ROOT to the directory holding your sources"
            )

        if not real.is_file() or not os.access(real, os.R_OK):
            raise SourceError(
                code="E100",
                message=f"File not found or not readable: {file}",
            )
        return real

    def _read_lines(self, path: Path, start: int, end: int) -> List[str]:
        try:
            size = path.stat().st_size
            if size > MAX_FILE_SIZE:
                return [TOO_LARGE_PLACEHOLDER]
            if size < SMALL_FILE_SIZE:
                lines = self._read_small(path, start, end)
            else:
                lines = self._read_large(path, start, end)
        except OSError as e:
            raise SourceError(code="E100", message=f"File not found or not readable: {path}") from e

        if not lines:
            raise SourceError(code="E101", message="Unable to read file contents")
        return lines

    @staticmethod
    def _read_small(path: Path, start: int, end: int) -> List[str]:
        content = path.read_text(encoding="utf-8", errors="replace")
        all_lines = content.split("\n")
        if content.endswith("\n"):
            all_lines.pop()
        return [text.rstrip("\r") for text in all_lines[start - 1:end]]

    @staticmethod
    def _read_large(path: Path, start: int, end: int) -> List[str]:
        # Skip to the window without loading the file
        with path.open("r", encoding="utf-8", errors="replace", newline="") as handle:
            return [
                text.rstrip("\r\n")
                for text in itertools.islice(handle, start - 1, end)
            ]


def _rejected(message: str, line: int, start: int = 1, end: int = 1) -> SourceWindow:
    return SourceWindow(
        start_line=start,
        end_line=end,
        highlighted_line=line,
        lines={},
        error=message,
    )
