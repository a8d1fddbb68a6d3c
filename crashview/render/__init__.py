"""Report assembly, sanitization and rendering."""

from .minify import minify_html
from .renderer import ReportRenderer, as_descriptor
from .sanitize import sanitize

__all__ = ["ReportRenderer", "as_descriptor", "minify_html", "sanitize"]
