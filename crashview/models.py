"""
Data model for the error-rendering pipeline.

ErrorDescriptor and RawFrame describe a failure as captured at the failure
site. SourceWindow, RequestSnapshot, FormattedFrame and ClassifiedError are
produced by the pipeline components and merged into a Report, the single
value the renderer serializes.

Copyright (c) 2025 Graziano Labs Corp.
"""

import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from markupsafe import Markup

# Causes followed by ErrorDescriptor.from_exception
MAX_CAUSE_DEPTH = 5


@dataclass(frozen=True)
class RawFrame:
    """Single call-stack frame as produced by the runtime's stack capture"""
    file: Optional[str] = None
    line: Optional[int] = None
    function: str = "unknown"
    class_name: Optional[str] = None
    call_type: Optional[str] = None  # "static" | "instance"
    args: Tuple[Any, ...] = ()
    arg_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ErrorDescriptor:
    """Immutable description of one error: type, message, site and stack"""
    kind: str
    message: str
    file: str
    line: int
    code: int = 0
    frames: Tuple[RawFrame, ...] = ()
    cause: Optional["ErrorDescriptor"] = None

    @classmethod
    def from_exception(
        cls, exc: BaseException, max_cause_depth: int = MAX_CAUSE_DEPTH
    ) -> "ErrorDescriptor":
        """
        Capture a live exception.

        Frames are ordered innermost first. For SyntaxError the reported
        site is the offending file and line rather than the frame that
        triggered the compile.

        Args:
            exc: Exception to describe
            max_cause_depth: How many chained causes to follow

        Returns:
            ErrorDescriptor for the exception
        """
        frames = tuple(reversed([
            _raw_frame(frame, lineno)
            for frame, lineno in traceback.walk_tb(exc.__traceback__)
        ]))

        file, line = "", 0
        if frames:
            file, line = frames[0].file or "", frames[0].line or 0
        if isinstance(exc, SyntaxError) and exc.filename:
            file, line = exc.filename, exc.lineno or 0

        cause = None
        chained = exc.__cause__
        if chained is None and not exc.__suppress_context__:
            chained = exc.__context__
        if chained is not None and max_cause_depth > 0:
            cause = cls.from_exception(chained, max_cause_depth - 1)

        return cls(
            kind=_exception_kind(exc),
            message=str(exc),
            file=file,
            line=line,
            code=_exception_code(exc),
            frames=frames,
            cause=cause,
        )

    @classmethod
    def from_stack(
        cls, kind: str, message: str, file: str, line: int, skip: int = 0
    ) -> "ErrorDescriptor":
        """
        Describe a non-exception error (e.g. a trapped warning) using the
        current call stack.

        Args:
            kind: Error type name
            message: Error message
            file: File the error was reported for
            line: Line the error was reported for
            skip: Extra innermost frames to drop besides this method

        Returns:
            ErrorDescriptor with the caller's stack, innermost first
        """
        stack = list(traceback.walk_stack(sys._getframe(1)))
        frames = tuple(_raw_frame(frame, lineno) for frame, lineno in stack[skip:])
        return cls(kind=kind, message=message, file=file, line=line, frames=frames)

    def view(self) -> Dict[str, Any]:
        """Display fields without raw frames (their arguments are summarized
        by the stack trace formatter instead)."""
        return {
            "type": self.kind,
            "message": self.message,
            "file": self.file,
            "line": self.line,
            "code": self.code,
            "cause": self.cause.view() if self.cause is not None else None,
        }

    def summary_line(self) -> str:
        """One-line summary for the host's log writer."""
        message = " ".join(self.message.split())
        return f"{self.kind}: {message} in {self.file} on line {self.line}"


_BUILTIN_MODULE = "builtins"


def _exception_kind(exc: BaseException) -> str:
    exc_type = type(exc)
    if exc_type.__module__ == _BUILTIN_MODULE:
        return exc_type.__qualname__
    return f"{exc_type.__module__}.{exc_type.__qualname__}"


def _exception_code(exc: BaseException) -> int:
    for attr in ("code", "errno"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return 0


def _raw_frame(frame, lineno: int) -> RawFrame:
    code = frame.f_code
    local_vars = frame.f_locals

    class_name = None
    call_type = None
    if "self" in local_vars and code.co_argcount and code.co_varnames[0] == "self":
        class_name = type(local_vars["self"]).__qualname__
        call_type = "instance"
    elif "cls" in local_vars and code.co_argcount and code.co_varnames[0] == "cls":
        owner = local_vars["cls"]
        class_name = getattr(owner, "__qualname__", type(owner).__qualname__)
        call_type = "static"

    count = code.co_argcount + code.co_kwonlyargcount
    names = [
        name for name in code.co_varnames[:count]
        if name not in ("self", "cls") and name in local_vars
    ]

    return RawFrame(
        file=code.co_filename,
        line=lineno,
        function=code.co_name,
        class_name=class_name,
        call_type=call_type,
        args=tuple(local_vars[name] for name in names),
        arg_names=tuple(names),
    )


@dataclass
class LineRecord:
    """One source line: raw text and its sanitized, highlighted HTML"""
    number: int
    raw_content: str
    highlighted_html: Markup
    is_highlighted: bool = False


@dataclass
class SourceWindow:
    """Bounded slice of a source file around a target line"""
    start_line: int
    end_line: int
    highlighted_line: int
    lines: Dict[int, LineRecord] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class FileMeta:
    """Uploaded-file metadata (never the file contents)"""
    name: str
    type: str = "application/octet-stream"
    size: int = 0
    error: int = 0


@dataclass
class RawRequest:
    """Raw request sources supplied by the host's request layer.

    session is None when no session is active.
    """
    method: str = "UNKNOWN"
    uri: str = ""
    host: str = "localhost"
    https: bool = False
    headers: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)
    files: Dict[str, FileMeta] = field(default_factory=dict)
    server: Dict[str, Any] = field(default_factory=dict)
    environ: Mapping[str, str] = field(default_factory=dict)
    session: Optional[Dict[str, Any]] = None


@dataclass
class RequestSnapshot:
    """Masked, bounded snapshot of request, server, environment and session"""
    method: str = "UNKNOWN"
    url: str = ""
    headers: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)
    files: Dict[str, Any] = field(default_factory=dict)
    server: Dict[str, Any] = field(default_factory=dict)
    env: Dict[str, Any] = field(default_factory=dict)
    session: Dict[str, Any] = field(default_factory=dict)

    def as_sections(self) -> Dict[str, Dict[str, Any]]:
        """Group fields into the sections used for display and budgeting."""
        return {
            "request": {
                "method": self.method,
                "url": self.url,
                "headers": self.headers,
                "get": self.query,
                "post": self.body,
                "files": self.files,
            },
            "server": self.server,
            "environment": self.env,
            "session": self.session,
        }

    @classmethod
    def from_sections(cls, sections: Mapping[str, Mapping[str, Any]]) -> "RequestSnapshot":
        request = sections.get("request", {})
        return cls(
            method=request.get("method", "UNKNOWN"),
            url=request.get("url", ""),
            headers=dict(request.get("headers", {})),
            query=dict(request.get("get", {})),
            body=dict(request.get("post", {})),
            files=dict(request.get("files", {})),
            server=dict(sections.get("server", {})),
            env=dict(sections.get("environment", {})),
            session=dict(sections.get("session", {})),
        )


@dataclass
class ArgPreview:
    """Display-safe summary of one frame argument"""
    type: str
    preview: str
    value: Any = None
    name: Optional[str] = None


@dataclass
class FormattedFrame:
    """Normalized, classified stack frame"""
    index: int
    file: Optional[str]
    short_file: Optional[str]
    line: Optional[int]
    function_name: str
    is_vendor: bool
    is_application: bool
    args: List[ArgPreview] = field(default_factory=list)
    source: Optional[SourceWindow] = None


class Category(str, Enum):
    SYNTAX = "syntax"
    DATABASE = "database"
    NOT_FOUND = "notFound"
    VALIDATION = "validation"
    CUSTOM = "custom"
    GENERAL = "general"


@dataclass
class ClassifiedError:
    """Error category plus category-specific structured detail"""
    category: Category
    detail: Dict[str, Any] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Route:
    """One entry of the host's route table"""
    method: str
    path: str
    handler: Any = None

    @classmethod
    def coerce(cls, route) -> "Route":
        """Accept a Route or a (method, path[, handler]) sequence."""
        if isinstance(route, Route):
            return route
        method, path, *rest = route
        return cls(str(method), str(path), rest[0] if rest else None)

    def handler_name(self) -> str:
        handler = self.handler
        if handler is None:
            return ""
        if isinstance(handler, (tuple, list)) and len(handler) == 2:
            owner, method = handler
            owner_name = getattr(owner, "__qualname__", str(owner))
            return f"{owner_name}::{method}"
        return getattr(handler, "__qualname__", str(handler))


@dataclass
class Report:
    """Everything the renderer serializes for one error.

    error is ErrorDescriptor.view(), not the descriptor itself.
    """
    error: Dict[str, Any]
    frames: List[FormattedFrame]
    context: RequestSnapshot
    classified: ClassifiedError
    source: Optional[SourceWindow] = None


@dataclass
class Document:
    """Serialized report returned to the host"""
    content: str
    content_type: str = "text/html; charset=utf-8"
    fallback: bool = False
