"""
Remediation suggestions for classified errors.

Each category has its own generator keyed on message substrings or
classifier detail; a second pass matches the message against generic
operational patterns. The result is de-duplicated (first occurrence wins)
and capped at MAX_SUGGESTIONS.

Copyright (c) 2025 Graziano Labs Corp.
"""

from typing import Any, Iterable, List

from ..models import Category, ClassifiedError, ErrorDescriptor
from .routes import coerce_routes, extract_url, find_similar_routes

MAX_SUGGESTIONS = 8

GENERIC_PATTERNS = {
    "memory limit": [
        "Increase the process memory limit",
        "Optimize code to use less memory",
        "Process data in smaller chunks",
    ],
    "maximum execution time": [
        "Increase the request execution time limit",
        "Optimize slow database queries",
        "Use background job processing for long tasks",
    ],
    "file not found": [
        "Check if the file path is correct",
        "Verify file permissions",
        "Ensure the file exists in the expected location",
    ],
    "connection refused": [
        "Check if the service is running",
        "Verify host and port configuration",
        "Check firewall settings",
    ],
    "timeout": [
        "Increase timeout settings",
        "Check network connectivity",
        "Optimize slow operations",
    ],
    "timed out": [
        "Increase timeout settings",
        "Check network connectivity",
    ],
    "curl error": [
        "Check network connectivity",
        "Verify SSL certificates",
        "Check API endpoint availability",
    ],
    "network": [
        "Check network connectivity",
        "Check API endpoint availability",
    ],
}

SQLSTATE_SUGGESTIONS = {
    ("23000", "23505"): [
        "Check for duplicate values in unique or primary key columns",
        "Verify foreign key constraints are not violated",
        "Use an upsert (INSERT ... ON CONFLICT / ON DUPLICATE KEY UPDATE) where duplicates are expected",
    ],
    ("42S02",): [
        "Verify that the table exists in the database",
        "Run database migrations to create missing tables",
        "Check table name spelling and case sensitivity",
    ],
    ("42S22",): [
        "Check if the column name is spelled correctly",
        "Verify that the column exists in the table schema",
        "Run migrations to add missing columns",
    ],
    ("08006", "28000"): [
        "Check the database connection settings",
        "Verify database credentials (username, password)",
        "Ensure database server is running and accessible",
    ],
    ("22001",): [
        "Data is too long for the column - increase column size",
        "Truncate or validate input data before insertion",
    ],
}


def dedupe_and_cap(suggestions: Iterable[str], limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Drop repeats keeping first occurrences, then cap the list."""
    return list(dict.fromkeys(suggestions))[:limit]


class SuggestionEngine:
    """Generate remediation hints from a classified error."""

    def __init__(self, routes: Iterable[Any] = ()):
        self.routes = coerce_routes(routes)

    def suggest(self, classified: ClassifiedError, error: ErrorDescriptor) -> List[str]:
        """
        Suggestions for one error.

        Args:
            classified: Classifier output (category and detail)
            error: The error itself

        Returns:
            At most MAX_SUGGESTIONS unique suggestions
        """
        generators = {
            Category.SYNTAX: self._syntax,
            Category.DATABASE: self._database,
            Category.NOT_FOUND: self._not_found,
            Category.VALIDATION: self._validation,
            Category.CUSTOM: self._custom,
            Category.GENERAL: self._general,
        }
        message = error.message or ""
        suggestions = generators[classified.category](classified, error, message)
        suggestions.extend(self._pattern_based(message))
        return dedupe_and_cap(suggestions)

    def _syntax(self, classified, error, message: str) -> List[str]:
        suggestions = []
        if "unexpected '}'" in message:
            suggestions.append("Check for a missing opening brace { before this line")
            suggestions.append("Verify that all control structures have proper opening braces")
        elif "unexpected '{'" in message:
            suggestions.append("Check for a missing semicolon ; before the opening brace")
            suggestions.append("Verify proper syntax for function or class declarations")
        elif "unexpected ';'" in message:
            suggestions.append("Check for an extra semicolon in control structures")
            suggestions.append("Verify that the previous line has proper syntax")

        if "expecting ')'" in message or "was never closed" in message:
            suggestions.append("Check for a missing closing parenthesis )")
            suggestions.append("Count opening and closing parentheses to ensure they match")
        elif "expecting ';'" in message:
            suggestions.append("Add the missing semicolon ; at the end of the statement")
            suggestions.append("Check if the previous line needs a semicolon")

        if "unmatched" in message:
            suggestions.append("Remove the unmatched closing bracket or add its opening pair")
        if "expected ':'" in message:
            suggestions.append("Add the missing colon : at the end of the block header")
        if "indent" in message:
            suggestions.append("Check the indentation of this block (tabs and spaces must not be mixed)")
        if "unterminated string" in message or "EOL while scanning" in message:
            suggestions.append("Close the string literal with a matching quote")

        suggestions.append("Use a code editor with syntax highlighting to spot errors")
        suggestions.append("Check for proper indentation and code structure")
        suggestions.append("Verify that all strings are properly quoted")
        return suggestions

    def _database(self, classified, error, message: str) -> List[str]:
        sqlstate = classified.detail.get("sqlstate", "")
        for codes, hints in SQLSTATE_SUGGESTIONS.items():
            if sqlstate in codes:
                return list(hints)

        suggestions = []
        if "Connection refused" in message:
            suggestions.append("Database server may be down - check if it's running")
            suggestions.append("Verify database host and port configuration")
        if "Access denied" in message:
            suggestions.append("Check database username and password")
            suggestions.append("Verify user has proper permissions for the database")

        suggestions.append("Check the SQL query syntax for errors")
        suggestions.append("Verify database connection configuration")
        suggestions.append("Check database server logs for more details")
        return suggestions

    def _not_found(self, classified, error, message: str) -> List[str]:
        suggestions = [
            "Check if the URL is spelled correctly",
            "Verify that the route is registered with the router",
            "Make sure the HTTP method (GET, POST, etc.) matches the route",
        ]

        similar = classified.detail.get("similar_routes")
        if similar is None:
            url = extract_url(message)
            similar = find_similar_routes(url, self.routes) if url else []
        if similar:
            paths = ", ".join(route["path"] for route in similar)
            suggestions.append(f"Did you mean one of these routes: {paths}")

        suggestions.append("Check if the route requires authentication or middleware")
        suggestions.append("Verify that the handler for the route exists")
        return suggestions

    def _validation(self, classified, error, message: str) -> List[str]:
        suggestions = []
        if "required" in message:
            suggestions.append("Ensure all required fields are provided in the request")
            suggestions.append("Check form inputs and API request body")

        if "email" in message:
            suggestions.append("Verify email format is valid (user@domain.com)")
            suggestions.append("Check for proper email validation rules")

        if "numeric" in message or "integer" in message:
            suggestions.append("Ensure numeric fields contain only numbers")
            suggestions.append("Check data type conversion and validation")

        if "length" in message or "min" in message or "max" in message:
            suggestions.append("Check field length requirements and limits")
            suggestions.append("Verify input data meets size constraints")

        suggestions.append("Review the validation rules for this input")
        suggestions.append("Check client-side validation to prevent invalid submissions")
        return suggestions

    def _custom(self, classified, error, message: str) -> List[str]:
        kind = error.kind or ""
        suggestions = []

        if "Auth" in kind:
            suggestions.append("Check user authentication status")
            suggestions.append("Verify login credentials and session")
            suggestions.append("Ensure proper authentication middleware is applied")

        if "Permission" in kind or "Authorization" in kind:
            suggestions.append("Check user permissions and roles")
            suggestions.append("Verify authorization policies")
            suggestions.append("Ensure user has required access level")

        if "NotFound" in kind:
            suggestions.append("Verify that the requested resource exists")
            suggestions.append("Check resource ID or identifier")
            suggestions.append("Ensure proper error handling for missing resources")

        suggestions.append("Check the custom exception documentation")
        suggestions.append("Review the code that raises this exception")
        return suggestions

    def _general(self, classified, error, message: str) -> List[str]:
        lowered = message.lower()
        suggestions = []

        if "undefined" in lowered or "not defined" in lowered:
            if "variable" in lowered or "name" in lowered:
                suggestions.append("Check if the variable is properly declared and initialized")
                suggestions.append("Verify variable scope and availability")
            if "function" in lowered:
                suggestions.append("Check if the function is properly defined")
                suggestions.append("Verify function name spelling and case")
                suggestions.append("Ensure required modules are imported")

        if "undefined method" in lowered or "has no attribute" in lowered:
            suggestions.append("Check if the method or attribute exists on the object")
            suggestions.append("Verify method name spelling and case")
            suggestions.append("Ensure the object is properly instantiated")

        if ("class" in lowered and "not found" in lowered) or "no module named" in lowered \
                or "cannot import name" in lowered:
            suggestions.append("Check if the module is installed and importable")
            suggestions.append("Verify import statements and package names")
            suggestions.append("Ensure the module search path is set up correctly")

        if "permission denied" in lowered:
            suggestions.append("Check file and directory permissions")
            suggestions.append("Ensure the server process has proper access rights")

        if "memory" in lowered and ("exhausted" in lowered or error.kind == "MemoryError"):
            suggestions.append("Increase the process memory limit")
            suggestions.append("Optimize code to use less memory")
            suggestions.append("Process data in smaller chunks")

        if "execution time" in lowered and "exceeded" in lowered:
            suggestions.append("Increase the request execution time limit")
            suggestions.append("Optimize slow database queries")
            suggestions.append("Use background job processing for long tasks")

        if not suggestions:
            suggestions.append("Check application logs for more details")
            suggestions.append("Review recent code changes that might have caused this error")
        return suggestions

    @staticmethod
    def _pattern_based(message: str) -> List[str]:
        lowered = message.lower()
        suggestions = []
        for pattern, hints in GENERIC_PATTERNS.items():
            if pattern in lowered:
                suggestions.extend(hints)
        return suggestions
