"""
Syntax highlighting with an HTML allow-list.

Source lines are tokenized with Pygments and the resulting markup is passed
through bleach so that only span/code/pre tags with a plain class attribute
survive. HighlightedHtml, produced only by SyntaxHighlighter.highlight(),
is the one pre-sanitized markup type in the pipeline; everything else,
including Markup handed in by the host, is escaped by the renderer.

Copyright (c) 2025 Graziano Labs Corp.
"""

import logging
import re
from typing import Optional

import bleach
from markupsafe import Markup, escape
from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, get_lexer_for_filename
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

# Per-line input limit before highlighting
MAX_LINE_LENGTH = 50000
TRUNCATION_MARKER = " ... [truncated]"

ALLOWED_TAGS = frozenset({"span", "code", "pre"})
_CLASS_VALUE = re.compile(r"[A-Za-z0-9_\-\s]*")
_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)

_LEXER_OPTIONS = {"stripnl": False, "ensurenl": False, "stripall": False}


class HighlightedHtml(Markup):
    """Markup that went through the highlighter's allow-list."""

    __slots__ = ()


def _allow_attribute(tag: str, name: str, value: str) -> bool:
    return name == "class" and _CLASS_VALUE.fullmatch(value) is not None


def sanitize_highlighted(html: str) -> str:
    """
    Reduce highlighted markup to the allow-list.

    Script blocks are removed together with their content; every other
    disallowed tag is stripped (its text stays, escaped). Only a class
    attribute made of letters, digits, underscores, dashes and whitespace is
    kept, so event handlers and style attributes never survive.

    Args:
        html: Markup produced by the tokenizer (or escaped text)

    Returns:
        Sanitized HTML string
    """
    html = _SCRIPT_BLOCK.sub("", html)
    return bleach.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=_allow_attribute,
        protocols=[],
        strip=True,
        strip_comments=True,
    )


class SyntaxHighlighter:
    """Highlight single source lines for display."""

    def __init__(self, css_class: str = "source-code"):
        self.css_class = css_class
        self._formatter = HtmlFormatter(nowrap=True)

    def highlight(
        self,
        code: str,
        language: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> HighlightedHtml:
        """
        Highlight one line of code.

        Args:
            code: Source text
            language: Pygments lexer alias (e.g. "php", "python")
            filename: Used to pick a lexer when language is not given

        Returns:
            Sanitized highlighted HTML wrapped in HighlightedHtml
        """
        if code.strip() == "":
            return HighlightedHtml(escape(code))

        if len(code) > MAX_LINE_LENGTH:
            code = code[:MAX_LINE_LENGTH] + TRUNCATION_MARKER

        try:
            lexer = self._lexer_for(code, language, filename)
            if lexer is None:
                html = str(escape(code))
            else:
                html = pygments_highlight(code, lexer, self._formatter).rstrip("\n")
        except Exception as e:
            # Tokenizer failures must never break the report
            logger.debug("Highlighting failed, using escaped text: %s", e)
            html = str(escape(code))

        return HighlightedHtml(sanitize_highlighted(html))

    def _lexer_for(self, code: str, language: Optional[str], filename: Optional[str]):
        # PHP source is highlighted line by line, so most lines lack "<?php"
        options = dict(_LEXER_OPTIONS, startinline="<?" not in code)
        try:
            if language:
                return get_lexer_by_name(language, **options)
            if filename:
                return get_lexer_for_filename(filename, **options)
        except ClassNotFound:
            logger.debug("No lexer for language=%r filename=%r", language, filename)
        return None

    def stylesheet(self) -> str:
        """CSS for the source window layout and the highlight classes."""
        scope = f".{self.css_class}"
        layout = f"""
{scope} {{ font-family: "Monaco", "Menlo", "Ubuntu Mono", monospace; font-size: 14px;
  line-height: 1.5; background: #f8f9fa; border: 1px solid #e9ecef; border-radius: 4px;
  overflow-x: auto; }}
{scope} .source-line {{ display: flex; min-height: 21px; }}
{scope} .source-line.highlighted {{ background-color: #fff3cd; border-left: 4px solid #ffc107; }}
{scope} .line-number {{ background: #f1f3f4; color: #666; padding: 0 8px; text-align: right;
  min-width: 40px; user-select: none; border-right: 1px solid #e9ecef; }}
{scope} .line-content {{ padding: 0 12px; flex: 1; white-space: pre; }}
"""
        return layout + self._formatter.get_style_defs(scope)
