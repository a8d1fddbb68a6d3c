"""
Error classification.

Assigns one category per error (first match wins: syntax, database,
not-found, validation, custom, general) and extracts category-specific
detail such as SQL state codes or near-match routes. Detail extraction never
raises; a pattern that does not match simply leaves its field out.

Copyright (c) 2025 Graziano Labs Corp.
"""

import logging
import re
from typing import Any, Dict, Iterable, Mapping, Optional

from ..models import Category, ClassifiedError, ErrorDescriptor
from .routes import coerce_routes, extract_url, find_similar_routes, format_routes

logger = logging.getLogger(__name__)

SQLSTATE_DESCRIPTIONS = {
    "23000": "Integrity constraint violation",
    "23505": "Integrity constraint violation",
    "42000": "Syntax error or access violation",
    "42S02": "Base table or view not found",
    "42S22": "Column not found",
    "08006": "Connection failure",
    "28000": "Connection failure",
    "22001": "String data, right truncated",
}
UNKNOWN_SQLSTATE = "Unknown database error"

SYNTAX_TYPES = ("ParseError", "SyntaxError", "IndentationError", "TabError")
SYNTAX_MESSAGES = ("syntax error", "invalid syntax")

DATABASE_TYPES = (
    "PDO",
    "OperationalError",
    "IntegrityError",
    "ProgrammingError",
    "DatabaseError",
    "InterfaceError",
    "DataError",
    "sqlite3",
    "psycopg",
)
DATABASE_MESSAGES = ("database", "SQL", "SQLSTATE")

NOT_FOUND_MESSAGES = ("404", "Not Found", "Route not found")

CUSTOM_TYPE_MARKERS = ("Auth", "Permission", "Authorization", "NotFound")

# Generic types that are never treated as application-specific
BUILTIN_TYPES = frozenset({
    "Exception",
    "BaseException",
    "Error",
    "RuntimeError",
    "ValueError",
    "TypeError",
    "KeyError",
    "IndexError",
    "LookupError",
    "AttributeError",
    "NameError",
    "UnboundLocalError",
    "ArithmeticError",
    "ZeroDivisionError",
    "OverflowError",
    "AssertionError",
    "NotImplementedError",
    "RecursionError",
    "MemoryError",
    "OSError",
    "IOError",
    "FileNotFoundError",
    "TimeoutError",
    "ConnectionError",
    "ConnectionRefusedError",
    "ImportError",
    "ModuleNotFoundError",
    "UnicodeError",
    "UnicodeDecodeError",
    "UnicodeEncodeError",
    "StopIteration",
    "RuntimeException",
    "LogicException",
    "ParseError",
})

_SQL_QUERY = re.compile(r"\(SQL: (.+?)\)")
_SQL_ERROR = re.compile(r"SQLSTATE\[[^\]]+\]: (.+?)(?:\s+\(SQL:|$)", re.DOTALL)
_SQLSTATE = re.compile(r"SQLSTATE\[([0-9A-Z]{5})\]")
_PHP_SYNTAX = re.compile(r"syntax error, (.+?) in (.+?) on line (\d+)")
_PY_SYNTAX = re.compile(r"^(?P<description>.+?) \((?P<file>[^,()]+), line (?P<line>\d+)\)")
_FAILED_FIELD = re.compile(r"Field '([^']+)' (.+?)(?:\.|$)", re.MULTILINE)


def short_type(kind: str) -> str:
    """Class name without its module or namespace."""
    return re.split(r"[.\\]", kind or "")[-1]


def sqlstate_description(code: str) -> str:
    return SQLSTATE_DESCRIPTIONS.get(code, UNKNOWN_SQLSTATE)


class ErrorClassifier:
    """Categorize errors and attach structured detail."""

    def __init__(
        self,
        routes: Iterable[Any] = (),
        database_info: Optional[Mapping[str, Any]] = None,
    ):
        """
        Args:
            routes: Route table as Route objects or (method, path[, handler])
            database_info: Optional connection facts from the host
                (driver, host, database); credentials are never copied
        """
        self.routes = coerce_routes(routes)
        self.database_info = dict(database_info or {})

    def detect_category(self, error: ErrorDescriptor) -> Category:
        kind = error.kind or ""
        message = error.message or ""

        if any(t in kind for t in SYNTAX_TYPES) or any(m in message for m in SYNTAX_MESSAGES):
            return Category.SYNTAX

        if any(t in kind for t in DATABASE_TYPES) or any(m in message for m in DATABASE_MESSAGES):
            return Category.DATABASE

        if any(m in message for m in NOT_FOUND_MESSAGES):
            return Category.NOT_FOUND

        if "Validation" in kind or "validation" in message.lower():
            return Category.VALIDATION

        if any(m in kind for m in CUSTOM_TYPE_MARKERS) or short_type(kind) not in BUILTIN_TYPES:
            return Category.CUSTOM

        return Category.GENERAL

    def classify(self, error: ErrorDescriptor) -> ClassifiedError:
        """
        Classify an error and extract its detail.

        Args:
            error: Error to classify

        Returns:
            ClassifiedError with empty suggestions (filled by the
            suggestion engine)
        """
        category = self.detect_category(error)
        handlers = {
            Category.SYNTAX: self._syntax_detail,
            Category.DATABASE: self._database_detail,
            Category.NOT_FOUND: self._not_found_detail,
            Category.VALIDATION: self._validation_detail,
            Category.CUSTOM: self._custom_detail,
        }

        detail: Dict[str, Any] = {}
        handler = handlers.get(category)
        if handler is not None:
            try:
                handler(error, detail)
            except Exception as e:
                # Keep whatever was extracted before the failure
                logger.debug("Detail extraction for %s failed: %s", category.value, e)

        return ClassifiedError(category=category, detail=detail)

    def _syntax_detail(self, error: ErrorDescriptor, detail: Dict[str, Any]) -> None:
        message = error.message or ""
        match = _PHP_SYNTAX.search(message)
        if match:
            detail["description"] = match.group(1)
            detail["file"] = match.group(2)
            detail["line"] = int(match.group(3))
            return

        match = _PY_SYNTAX.search(message)
        if match:
            detail["description"] = match.group("description")
            detail["file"] = match.group("file")
            detail["line"] = int(match.group("line"))

    def _database_detail(self, error: ErrorDescriptor, detail: Dict[str, Any]) -> None:
        message = error.message or ""

        match = _SQL_QUERY.search(message)
        if match:
            detail["sql_query"] = match.group(1)

        match = _SQL_ERROR.search(message)
        if match:
            detail["sql_error"] = match.group(1).strip()

        match = _SQLSTATE.search(message)
        if match:
            detail["sqlstate"] = match.group(1)
            detail["error_description"] = sqlstate_description(match.group(1))

        if self.database_info:
            detail["connection"] = {
                key: str(self.database_info.get(key, "unknown"))
                for key in ("driver", "host", "database")
            }

    def _not_found_detail(self, error: ErrorDescriptor, detail: Dict[str, Any]) -> None:
        detail["available_routes"] = format_routes(self.routes)
        url = extract_url(error.message)
        if url:
            detail["requested_url"] = url
            detail["similar_routes"] = find_similar_routes(url, self.routes)

    def _validation_detail(self, error: ErrorDescriptor, detail: Dict[str, Any]) -> None:
        failed = [
            {"field": field, "error": problem}
            for field, problem in _FAILED_FIELD.findall(error.message or "")
        ]
        if failed:
            detail["failed_fields"] = failed

    def _custom_detail(self, error: ErrorDescriptor, detail: Dict[str, Any]) -> None:
        detail["exception_class"] = error.kind
