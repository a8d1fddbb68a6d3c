"""
Request context collection.

Builds a RequestSnapshot from the raw request sources handed over by the
host (method, URI, headers, query/body maps, uploads, server and
environment variables, session). The collector is a pure function of its
inputs: it reads no ambient globals and keeps no state between calls.

Copyright (c) 2025 Graziano Labs Corp.
"""

import json
import logging
import platform
import re
import sys
from dataclasses import asdict
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

from markupsafe import escape

from ..config import DebugConfig, get_default_config
from ..models import FileMeta, RawRequest, RequestSnapshot
from .masking import HIDDEN, is_sensitive_key, sanitize_mapping, truncate_string

logger = logging.getLogger(__name__)

SERVER_KEYS = (
    "SERVER_SOFTWARE",
    "SERVER_NAME",
    "SERVER_PORT",
    "DOCUMENT_ROOT",
    "SCRIPT_NAME",
    "SCRIPT_FILENAME",
    "REQUEST_TIME",
    "REQUEST_TIME_FLOAT",
    "REMOTE_ADDR",
    "REMOTE_HOST",
    "REMOTE_PORT",
    "HTTP_HOST",
    "HTTP_USER_AGENT",
    "HTTP_ACCEPT",
    "HTTP_ACCEPT_LANGUAGE",
    "HTTP_ACCEPT_ENCODING",
    "HTTP_CONNECTION",
    "HTTPS",
    "SERVER_PROTOCOL",
    "GATEWAY_INTERFACE",
    "PATH_INFO",
)

ENVIRONMENT_KEYS = (
    "APP_ENV",
    "APP_DEBUG",
    "APP_NAME",
    "PATH_INFO",
    "QUERY_STRING",
    "VIRTUAL_ENV",
)

# Shrink order when the snapshot exceeds its budget
SECTION_PRIORITY = ("request", "server", "environment", "session")
BUDGET_TARGET_RATIO = 0.8
SECTION_TRUNCATED = "[section truncated due to size]"

MAX_HOST_LENGTH = 255
MAX_URI_LENGTH = 2000
URI_TRUNCATED = "... [truncated]"

_HOST_CHARS = re.compile(r"[^a-zA-Z0-9\-.:]")


def estimate_size(value: Any) -> int:
    """Serialized size estimate used for context budgeting."""
    return len(json.dumps(value, default=str))


class ContextCollector:
    """Snapshot request, server, environment and session state."""

    def __init__(self, config: Optional[DebugConfig] = None):
        self.config = config or get_default_config()

    def collect(self, raw: Optional[RawRequest] = None) -> RequestSnapshot:
        """
        Collect the masked, size-bounded context for one request.

        Args:
            raw: Raw request sources; None collects an empty request

        Returns:
            RequestSnapshot safe to display
        """
        raw = raw or RawRequest()
        sections = {
            "request": self._request_data(raw),
            "server": self._server_data(raw),
            "environment": self._environment_data(raw),
            "session": self._session_data(raw),
        }
        return RequestSnapshot.from_sections(self._limit_context(sections))

    def _sanitize(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        return sanitize_mapping(data, self.config.max_string_length)

    def _request_data(self, raw: RawRequest) -> Dict[str, Any]:
        headers = raw.headers or _headers_from_server(raw.server)
        files = {
            name: asdict(meta) if isinstance(meta, FileMeta) else meta
            for name, meta in raw.files.items()
        }
        return {
            "method": truncate_string(str(raw.method or "UNKNOWN"), 16),
            "url": self._current_url(raw),
            "headers": self._sanitize(headers),
            "get": self._sanitize(raw.query),
            "post": self._sanitize(raw.body),
            "files": self._sanitize(files),
        }

    def _server_data(self, raw: RawRequest) -> Dict[str, Any]:
        selected = {key: raw.server[key] for key in SERVER_KEYS if key in raw.server}
        return self._sanitize(selected)

    def _environment_data(self, raw: RawRequest) -> Dict[str, Any]:
        selected = {key: raw.environ[key] for key in ENVIRONMENT_KEYS if key in raw.environ}
        if "QUERY_STRING" in selected:
            selected["QUERY_STRING"] = _mask_query(str(selected["QUERY_STRING"]))
        selected["PYTHON_VERSION"] = platform.python_version()
        selected["PYTHON_IMPLEMENTATION"] = platform.python_implementation()
        selected["PLATFORM"] = sys.platform
        return self._sanitize(selected)

    def _session_data(self, raw: RawRequest) -> Dict[str, Any]:
        if not raw.session:
            return {}
        return self._sanitize(raw.session)

    def _current_url(self, raw: RawRequest) -> str:
        scheme = "https://" if raw.https else "http://"
        host = raw.host or raw.server.get("SERVER_NAME") or "localhost"
        host = _HOST_CHARS.sub("", str(host))[:MAX_HOST_LENGTH]
        return escape(scheme + host + _sanitize_uri(raw.uri))

    def _limit_context(self, sections: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        """
        Keep the snapshot under the context budget.

        Sections are shrunk in priority order, each to an equal share of
        80% of the budget, until the whole snapshot fits that target.
        """
        budget = self.config.context_budget_bytes
        if estimate_size(sections) <= budget:
            return sections

        target = int(budget * BUDGET_TARGET_RATIO)
        share = target // len(SECTION_PRIORITY)
        for name in SECTION_PRIORITY:
            sections[name] = limit_section(sections[name], share)
            logger.debug("Context section %r shrunk to %d bytes", name, share)
            if estimate_size(sections) <= target:
                break
        return sections


_MARKER_SIZE = estimate_size({"...": SECTION_TRUNCATED})


def limit_section(section: Dict[str, Any], max_bytes: int) -> Dict[str, Any]:
    """
    Copy a section keeping entries while they fit max_bytes.

    Single pass: entry sizes are summed instead of re-serializing the
    partial result. Nested mappings are limited with the space left.
    Stops with a truncation marker once an entry does not fit.
    """
    if estimate_size(section) <= max_bytes:
        return section

    limited: Dict[str, Any] = {}
    used = 2
    for key, value in section.items():
        if isinstance(value, dict):
            room = max_bytes - used - _MARKER_SIZE - estimate_size(key) - 4
            if room <= _MARKER_SIZE + 2:
                limited["..."] = SECTION_TRUNCATED
                break
            value = limit_section(value, room)

        entry = estimate_size({key: value})
        if used + entry + _MARKER_SIZE > max_bytes:
            limited["..."] = SECTION_TRUNCATED
            break
        limited[key] = value
        used += entry
    return limited


def _headers_from_server(server: Mapping[str, Any]) -> Dict[str, Any]:
    headers = {}
    for key, value in server.items():
        if key.startswith("HTTP_"):
            name = "-".join(part.capitalize() for part in key[5:].split("_"))
            headers[name] = value
    return headers


def _sanitize_uri(uri: str) -> str:
    """Hide sensitive query parameters and bound the URI length."""
    uri = str(uri or "")
    parts = urlsplit(uri)
    if parts.query:
        query = _mask_query(parts.query)
        uri = parts.path + (f"?{query}" if query else "")

    if len(uri) > MAX_URI_LENGTH:
        uri = uri[:MAX_URI_LENGTH] + URI_TRUNCATED
    return uri


def _mask_query(query: str) -> str:
    params = [
        (name, HIDDEN if is_sensitive_key(name) else value)
        for name, value in parse_qsl(query, keep_blank_values=True)
    ]
    return urlencode(params, safe="[]")
