"""
Stack trace formatting.

Normalizes raw frames, classifies each as vendor or application code,
shortens paths and summarizes arguments without serializing containers or
objects in full.

Copyright (c) 2025 Graziano Labs Corp.
"""

import io
import os
import socket
from collections.abc import Mapping, Set
from typing import Any, Iterable, List, Optional

from ..config import DebugConfig, get_default_config
from ..context.masking import is_sensitive_key, mask_value, truncate_string
from ..models import ArgPreview, FormattedFrame, RawFrame

VENDOR_PATTERNS = (
    "/vendor/",
    "/node_modules/",
    "/composer/",
    "/pear/",
    "/lib/php/",
    "/usr/share/php/",
    "/site-packages/",
    "/dist-packages/",
    "/lib/python",
    "<frozen",
    "/System/Library/",
    "/Library/WebServer/",
)

APPLICATION_PATTERNS = (
    "/src/",
    "/app/",
    "/controllers/",
    "/models/",
    "/views/",
    "/routes/",
    "/config/",
)

CALL_SEPARATORS = {"static": "::", "instance": "->"}


class StackTraceFormatter:
    """Turn RawFrames into FormattedFrames."""

    def __init__(self, config: Optional[DebugConfig] = None, cwd: Optional[str] = None):
        self.config = config or get_default_config()
        self.cwd = cwd if cwd is not None else os.getcwd()

    def format(self, frames: Iterable[RawFrame]) -> List[FormattedFrame]:
        """
        Format a whole trace.

        Vendor frames are dropped entirely when hide_vendor_frames is set;
        indices keep each frame's position in the raw trace.
        """
        formatted = []
        for index, frame in enumerate(frames):
            entry = self.format_frame(frame, index)
            if self.config.hide_vendor_frames and entry.is_vendor:
                continue
            formatted.append(entry)
        return formatted

    def format_frame(self, frame: RawFrame, index: int = 0) -> FormattedFrame:
        file = _normalize(frame.file)
        is_vendor = self.is_vendor_file(file)
        return FormattedFrame(
            index=index,
            file=frame.file,
            short_file=self.short_path(frame.file),
            line=frame.line,
            function_name=function_name(frame),
            is_vendor=is_vendor,
            is_application=not is_vendor and self.is_application_file(file),
            args=self.format_arguments(frame),
        )

    @staticmethod
    def is_vendor_file(file: Optional[str]) -> bool:
        if not file:
            return False
        return any(pattern in file for pattern in VENDOR_PATTERNS)

    def is_application_file(self, file: Optional[str]) -> bool:
        if not file:
            return False
        lowered = file.lower()
        if any(pattern in lowered for pattern in APPLICATION_PATTERNS):
            return True
        cwd = _normalize(self.cwd)
        return bool(cwd) and file.startswith(cwd.rstrip("/") + "/")

    def short_path(self, file: Optional[str]) -> Optional[str]:
        """Path relative to the working directory, else the last 3 segments."""
        if file is None:
            return None
        normalized = _normalize(file)
        cwd = _normalize(self.cwd).rstrip("/")
        if cwd and normalized.startswith(cwd + "/"):
            return normalized[len(cwd) + 1:]

        parts = normalized.split("/")
        if len(parts) > 3:
            return ".../" + "/".join(parts[-3:])
        return file

    def format_arguments(self, frame: RawFrame) -> List[ArgPreview]:
        names = list(frame.arg_names) + [None] * (len(frame.args) - len(frame.arg_names))
        previews = []
        for name, arg in zip(names, frame.args):
            if name is not None and is_sensitive_key(name):
                masked = mask_value(arg)
                previews.append(ArgPreview(type=_type_name(arg), preview=masked, name=name))
            else:
                preview = self.format_argument(arg)
                preview.name = name
                previews.append(preview)
        return previews

    def format_argument(self, arg: Any) -> ArgPreview:
        """Summarize one argument; only scalars keep their value."""
        max_length = self.config.max_string_length

        if arg is None:
            return ArgPreview(type="null", preview="null")
        if isinstance(arg, str):
            text = truncate_string(arg, max_length)
            return ArgPreview(type="string", preview=text, value=text)
        if isinstance(arg, (bool, int, float)):
            return ArgPreview(type=_type_name(arg), preview=repr(arg), value=arg)
        if isinstance(arg, (bytes, bytearray)):
            return ArgPreview(type="bytes", preview=f"{type(arg).__name__}({len(arg)})")
        if isinstance(arg, (list, tuple, Mapping, Set)):
            return ArgPreview(type="array", preview=f"{type(arg).__name__}({len(arg)})")

        resource = _resource_kind(arg)
        if resource is not None:
            return ArgPreview(type="resource", preview=f"resource({resource})")

        arg_type = type(arg)
        return ArgPreview(type="object", preview=f"{arg_type.__module__}.{arg_type.__qualname__}")


def function_name(frame: RawFrame) -> str:
    """Class::method, Class->method or the bare function name."""
    name = frame.function or "unknown"
    if frame.class_name:
        separator = CALL_SEPARATORS.get(frame.call_type or "", "::")
        return f"{frame.class_name}{separator}{name}"
    return name


def _normalize(path: Optional[str]) -> str:
    return (path or "").replace("\\", "/")


def _type_name(arg: Any) -> str:
    if isinstance(arg, bool):
        return "boolean"
    if isinstance(arg, int):
        return "integer"
    if isinstance(arg, float):
        return "double"
    if isinstance(arg, str):
        return "string"
    return type(arg).__name__


def _resource_kind(arg: Any) -> Optional[str]:
    if isinstance(arg, io.IOBase):
        return "stream"
    if isinstance(arg, socket.socket):
        return "socket"
    return None
