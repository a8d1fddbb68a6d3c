"""
Report rendering.

ReportRenderer drives the pipeline for one error: collect request context,
format frames, extract source windows, classify, suggest, then sanitize the
assembled Report and render it through a Jinja2 template. Any failure along
the way is contained here and answered with a minimal static page, so
render() never raises.

Copyright (c) 2025 Graziano Labs Corp.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, TemplateSyntaxError
from markupsafe import Markup, escape

from ..analysis.classifier import ErrorClassifier
from ..analysis.suggestions import SuggestionEngine
from ..config import DebugConfig, get_default_config
from ..context.collector import ContextCollector
from ..errors import CrashViewError, TemplateError
from ..models import (
    ClassifiedError,
    Document,
    ErrorDescriptor,
    FormattedFrame,
    RawRequest,
    Report,
    RequestSnapshot,
    SourceWindow,
)
from ..source.extractor import SourceExtractor
from ..source.highlight import SyntaxHighlighter
from ..trace.formatter import StackTraceFormatter
from .minify import minify_html
from .sanitize import sanitize

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "report.html.j2"
TEMPLATES_DIR = Path(__file__).parent / "templates"

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

_SEPARATORS = re.compile(r"[\\/]")

ErrorLike = Union[ErrorDescriptor, BaseException]
RequestLike = Union[RequestSnapshot, RawRequest, None]


class ReportRenderer:
    """Render error reports as HTML or text documents."""

    def __init__(
        self,
        config: Optional[DebugConfig] = None,
        extractor: Optional[SourceExtractor] = None,
        collector: Optional[ContextCollector] = None,
        formatter: Optional[StackTraceFormatter] = None,
        classifier: Optional[ErrorClassifier] = None,
        suggestion_engine: Optional[SuggestionEngine] = None,
        template_name: str = DEFAULT_TEMPLATE,
        templates_dir: Optional[Union[str, Path]] = None,
        routes: Iterable[Any] = (),
    ):
        """
        Args:
            config: Debug configuration (defaults to the environment)
            extractor: Source window extractor
            collector: Request context collector
            formatter: Stack trace formatter
            classifier: Error classifier
            suggestion_engine: Suggestion engine
            template_name: Template file inside templates_dir
            templates_dir: Directory holding the report templates
            routes: Route table used by the default classifier and
                suggestion engine
        """
        self.config = config or get_default_config()
        routes = list(routes or ())

        self.extractor = extractor or SourceExtractor(self.config)
        self.collector = collector or ContextCollector(self.config)
        self.formatter = formatter or StackTraceFormatter(self.config)
        self.classifier = classifier or ErrorClassifier(routes)
        self.suggestion_engine = suggestion_engine or SuggestionEngine(routes)
        self.highlighter = getattr(self.extractor, "highlighter", None) or SyntaxHighlighter()

        self.template_name = template_name
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, error: ErrorLike, request: RequestLike = None) -> Document:
        """
        Render the full HTML report for an error.

        Args:
            error: ErrorDescriptor or live exception
            request: RequestSnapshot (used as is), RawRequest (collected)
                or None (server and environment facts only)

        Returns:
            HTML Document; the fallback page if anything goes wrong
        """
        try:
            descriptor = as_descriptor(error)
            report = self.build_report(descriptor, request)
            template = self._load_template()
            content = self._render_template(template, report, descriptor)
            return Document(content=minify_html(content))
        except CrashViewError as e:
            where = f" at {e.loc[0]}:{e.loc[1]}" if e.loc else ""
            logger.warning("Report rendering failed, serving fallback page: %s%s", e, where)
        except Exception as e:
            logger.warning(
                "Report rendering failed, serving fallback page: [E002] %s: %s", type(e).__name__, e
            )
        return self.render_basic(error)

    def build_report(self, error: ErrorLike, request: RequestLike = None) -> Report:
        """
        Run the pipeline up to report assembly.

        Args:
            error: ErrorDescriptor or live exception
            request: See render()

        Returns:
            Unsanitized Report
        """
        error = as_descriptor(error)
        context = self._collect(request)
        frames, classified = self.analyze(error)

        source = None
        if self.config.show_source:
            windows: Dict[Tuple[str, int, int], SourceWindow] = {}
            source = self._window(windows, error.file, error.line, self.config.context_lines)
            for frame in frames:
                if frame.is_application and frame.file and frame.line:
                    frame.source = self._window(
                        windows, frame.file, frame.line, self.config.frame_context_lines
                    )

        return Report(
            error=error.view(),
            frames=frames,
            context=context,
            classified=classified,
            source=source,
        )

    def render_basic(self, error: Any) -> Document:
        """
        Minimal static page with only the escaped type, message, file and line.

        Never touches the template engine or the file system.
        """
        kind, message, file, line = _basic_fields(error)
        content = (
            "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
            f"<title>{escape(kind)}</title></head><body>"
            f"<h1>{escape(kind)}</h1>"
            f"<p>{escape(message)}</p>"
            f"<p>in {escape(file)} on line {escape(line)}</p>"
            "</body></html>"
        )
        return Document(content=content, fallback=True)

    def render_text(self, error: ErrorLike) -> Document:
        """
        Plain-text report for terminals and logs.

        Contains the summary, the cause chain, the formatted frames and the
        suggestions; no request context and no source.
        """
        try:
            descriptor = as_descriptor(error)
            frames, classified = self.analyze(descriptor)
        except Exception as e:
            logger.warning("Text report failed, using summary line: %s", e)
            kind, message, file, line = _basic_fields(error)
            content = f"{kind}: {message} in {file} on line {line}\n"
            return Document(content=content, content_type=TEXT_CONTENT_TYPE, fallback=True)

        return Document(
            content=_text_report(descriptor, frames, classified),
            content_type=TEXT_CONTENT_TYPE,
        )

    def summary_line(self, error: ErrorLike) -> str:
        """One-line summary for the host's log writer."""
        return as_descriptor(error).summary_line()

    def _collect(self, request: RequestLike) -> RequestSnapshot:
        if isinstance(request, RequestSnapshot):
            return request
        if request is None:
            request = RawRequest(environ=os.environ)
        return self.collector.collect(request)

    def analyze(self, error: ErrorDescriptor) -> Tuple[List[FormattedFrame], ClassifiedError]:
        """Format frames, classify and attach suggestions (no I/O)."""
        frames = self.formatter.format(error.frames)
        classified = self.classifier.classify(error)
        classified.suggestions = self.suggestion_engine.suggest(classified, error)
        return frames, classified

    def _window(self, windows, file: str, line: int, context_lines: int) -> SourceWindow:
        # Frames often repeat the error site; extract each window once per report
        key = (file, line, context_lines)
        if key not in windows:
            windows[key] = self.extractor.extract(file, line, context_lines)
        return windows[key]

    def _render_template(self, template, report: Report, descriptor: ErrorDescriptor) -> str:
        """
        Render the sanitized report.

        Raises:
            TemplateError: E002 with the template location of the failure
        """
        try:
            return template.render(
                report=sanitize(report),
                text_report=sanitize(_text_report(descriptor, report.frames, report.classified)),
                stylesheet=Markup(self.highlighter.stylesheet()),
                css_class=self.highlighter.css_class,
            )
        except Exception as e:
            raise TemplateError(
                code="E002",
                message=f"Exception while rendering report: {type(e).__name__}: {e}",
                loc=_template_location(e, template.filename),
            ) from e

    def _load_template(self):
        """
        Resolve the configured template inside the templates directory.

        Raises:
            TemplateError: If the name is unsafe or the template is missing
        """
        name = self.template_name
        if not name or ".." in name or os.path.isabs(name):
            raise TemplateError(
                code="E001",
                message=f"Invalid template path: {name!r}",
                hint="Template names must be relative to the templates directory"
            )

        root = self.templates_dir.resolve()
        path = (root / name).resolve()
        if root not in path.parents:
            raise TemplateError(
                code="E001",
                message=f"Template path is outside the templates directory: {name!r}",
            )

        try:
            return self.env.get_template("/".join(_SEPARATORS.split(name)))
        except TemplateNotFound:
            raise TemplateError(
                code="E001",
                message=f"Template not found: {name!r}",
                hint=f"Looked in {root}"
            )
        except TemplateSyntaxError as e:
            raise TemplateError(
                code="E003",
                message=f"Template does not compile: {e.message}",
                loc=(e.filename or name, e.lineno),
            ) from e


def as_descriptor(error: ErrorLike) -> ErrorDescriptor:
    """Accept an ErrorDescriptor or a live exception."""
    if isinstance(error, ErrorDescriptor):
        return error
    if isinstance(error, BaseException):
        return ErrorDescriptor.from_exception(error)
    raise TypeError(f"Cannot describe {type(error).__name__} as an error")


def _basic_fields(error: Any) -> Tuple[str, str, str, Any]:
    if isinstance(error, ErrorDescriptor):
        return error.kind, error.message, error.file, error.line
    if isinstance(error, BaseException):
        frames = []
        tb = error.__traceback__
        while tb is not None:
            frames.append(tb)
            tb = tb.tb_next
        file, line = "unknown", 0
        if frames:
            file = frames[-1].tb_frame.f_code.co_filename
            line = frames[-1].tb_lineno
        return type(error).__name__, str(error), file, line
    return type(error).__name__, str(error), "unknown", 0


def _text_frame(frame: FormattedFrame) -> str:
    location = frame.short_file or "[internal]"
    if frame.line:
        location = f"{location}:{frame.line}"
    marker = "  " if frame.is_vendor else "* "
    return f"{marker}#{frame.index} {frame.function_name} at {location}"


def _text_report(
    descriptor: ErrorDescriptor,
    frames: List[FormattedFrame],
    classified: ClassifiedError,
) -> str:
    lines = [descriptor.summary_line(), f"Category: {classified.category.value}"]

    cause = descriptor.cause
    while cause is not None:
        lines.append(f"Caused by: {cause.summary_line()}")
        cause = cause.cause

    if frames:
        lines.append("")
        lines.append("Stack trace:")
        lines.extend(_text_frame(frame) for frame in frames)

    if classified.suggestions:
        lines.append("")
        lines.append("Suggestions:")
        lines.extend(f"  - {suggestion}" for suggestion in classified.suggestions)

    return "\n".join(lines) + "\n"


def _template_location(exc: BaseException, filename: Optional[str]) -> Optional[Tuple[str, int]]:
    """Innermost (file, line) inside the template, from Jinja's rewritten traceback."""
    location = None
    tb = exc.__traceback__
    while tb is not None:
        if filename and tb.tb_frame.f_code.co_filename == filename:
            location = (filename, tb.tb_lineno)
        tb = tb.tb_next
    return location
