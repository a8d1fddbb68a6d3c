"""Source window extraction and syntax highlighting."""

from .extractor import SourceExtractor
from .highlight import HighlightedHtml, SyntaxHighlighter, sanitize_highlighted

__all__ = ["HighlightedHtml", "SourceExtractor", "SyntaxHighlighter", "sanitize_highlighted"]
