"""
HTML minification for rendered reports.

Copyright (c) 2025 Graziano Labs Corp.
"""

import re

# Regions whose whitespace is significant, and comments other than
# conditional comments (<!--[if IE]>); whichever starts first wins
_TOKEN = re.compile(
    r"(?P<keep><(pre|code|textarea|script)\b[^>]*>.*?</\2\s*>)"
    r"|<!--(?!\[if).*?-->",
    re.IGNORECASE | re.DOTALL,
)
_BETWEEN_TAGS = re.compile(r">\s+<")
_WHITESPACE_RUN = re.compile(r"\s{2,}")


def minify_html(html: str) -> str:
    """
    Strip comments and collapse whitespace outside preserved regions.

    The document is scanned once; text between preserved regions is
    collapsed and the regions are copied through by position, so no
    content of the document is ever substituted back into it.

    Args:
        html: Rendered document

    Returns:
        Minified document; <pre>, <code>, <textarea> and <script> contents
        are returned untouched
    """
    chunks = []
    pending = []
    position = 0
    for match in _TOKEN.finditer(html):
        pending.append(html[position:match.start()])
        if match.group("keep"):
            chunks.append(_collapse("".join(pending)))
            chunks.append(match.group("keep"))
            pending = []
        position = match.end()
    pending.append(html[position:])
    chunks.append(_collapse("".join(pending)))
    return "".join(chunks).strip()


def _collapse(text: str) -> str:
    text = _BETWEEN_TAGS.sub("><", text)
    return _WHITESPACE_RUN.sub(" ", text)
