"""
Tests for error classification, route matching and suggestions.

Copyright (c) 2025 Graziano Labs Corp.
"""

import pytest
from crashview.analysis.classifier import ErrorClassifier, short_type, sqlstate_description
from crashview.analysis.routes import extract_url, find_similar_routes, levenshtein
from crashview.analysis.suggestions import MAX_SUGGESTIONS, SuggestionEngine, dedupe_and_cap
from crashview.models import Category, ClassifiedError, ErrorDescriptor, Route

ROUTES = [
    ("GET", "/users", ("UserController", "index")),
    ("GET", "/users/{id}", ("UserController", "show")),
    ("POST", "/orders", None),
]


def _error(kind, message):
    return ErrorDescriptor(kind=kind, message=message, file="/srv/app/x.py", line=1)


def _classify(kind, message, **kwargs):
    return ErrorClassifier(**kwargs).classify(_error(kind, message))


# Route matching

@pytest.mark.parametrize("a, b, expected", [
    ("", "", 0),
    ("abc", "", 3),
    ("/user", "/users", 1),
    ("kitten", "sitting", 3),
    ("/orders", "/orders", 0),
])
def test_levenshtein(a, b, expected):
    """Edit distance counts single-character edits."""
    assert levenshtein(a, b) == expected
    assert levenshtein(b, a) == expected


def test_extract_url():
    """First path-like token is taken from the message."""
    assert extract_url("Route not found: GET /user/profile") == "/user/profile"
    assert extract_url("nothing here") is None


def test_similar_routes_ranked():
    """Closest route ranks first; containment also counts."""
    routes = [Route.coerce(r) for r in ROUTES]
    similar = find_similar_routes("/user", routes)
    assert similar[0]["path"] == "/users"
    assert similar[0]["distance"] == 1
    assert [s["path"] for s in similar] == ["/users", "/users/{id}"]


def test_similar_routes_limit():
    """At most three similar routes are returned."""
    routes = [Route("GET", f"/item{i}") for i in range(10)]
    assert len(find_similar_routes("/item", routes)) == 3


def test_route_handler_names():
    """Controller tuples render as Owner::method."""
    route = Route.coerce(ROUTES[0])
    assert route.handler_name() == "UserController::index"
    assert Route.coerce(ROUTES[2]).handler_name() == ""


# Category detection

@pytest.mark.parametrize("kind, message, expected", [
    ("SyntaxError", "invalid syntax", Category.SYNTAX),
    ("ParseError", "syntax error, unexpected '}' in /a.php on line 3", Category.SYNTAX),
    ("sqlite3.OperationalError", "no such table: users", Category.DATABASE),
    ("RuntimeError", "SQLSTATE[HY000]: General error", Category.DATABASE),
    ("NotFoundHttpException", "Route not found: GET /user", Category.NOT_FOUND),
    ("pydantic.ValidationError", "1 validation error for User", Category.VALIDATION),
    ("ValueError", "Validation failed for input", Category.VALIDATION),
    ("myapp.errors.PaymentDeclined", "card declined", Category.CUSTOM),
    ("PermissionError", "access denied", Category.CUSTOM),
    ("KeyError", "'timeout'", Category.GENERAL),
    ("TypeError", "unsupported operand", Category.GENERAL),
])
def test_detect_category(kind, message, expected):
    """Categories are checked in priority order."""
    assert ErrorClassifier().detect_category(_error(kind, message)) == expected


def test_syntax_takes_priority_over_database():
    """A syntax error mentioning SQL is still a syntax error."""
    assert _classify("SyntaxError", "bad SQL literal").category == Category.SYNTAX


def test_short_type():
    """Namespaces and modules are stripped from type names."""
    assert short_type("myapp.errors.PaymentDeclined") == "PaymentDeclined"
    assert short_type("App\\Exceptions\\Oops") == "Oops"


# Detail extraction

def test_sqlstate_detail():
    """SQLSTATE codes are extracted and described."""
    message = (
        "SQLSTATE[42S02]: Base table or view not found: 1146 Table 'shop.users' "
        "doesn't exist (SQL: select * from users)"
    )
    result = _classify("PDOException", message)
    assert result.category == Category.DATABASE
    assert result.detail["sqlstate"] == "42S02"
    assert result.detail["error_description"] == "Base table or view not found"
    assert result.detail["sql_query"] == "select * from users"
    assert result.detail["sql_error"].startswith("Base table or view not found: 1146")


def test_unknown_sqlstate_description():
    """Unmapped codes get a generic description."""
    assert sqlstate_description("99999") == "Unknown database error"
    assert sqlstate_description("23505") == "Integrity constraint violation"


def test_database_connection_info():
    """Connection facts are copied without credentials."""
    info = {"driver": "pgsql", "host": "db", "database": "shop", "password": "pw"}
    result = _classify("sqlite3.OperationalError", "database is locked", database_info=info)
    assert result.detail["connection"] == {"driver": "pgsql", "host": "db", "database": "shop"}


def test_database_without_sqlstate():
    """Messages without SQL markers leave those fields out."""
    result = _classify("sqlite3.OperationalError", "no such table: users")
    assert "sqlstate" not in result.detail
    assert "sql_query" not in result.detail


def test_php_syntax_detail():
    """Classic parser messages yield description, file and line."""
    result = _classify("ParseError", "syntax error, unexpected '}' in /srv/app/x.php on line 12")
    assert result.detail == {
        "description": "unexpected '}'",
        "file": "/srv/app/x.php",
        "line": 12,
    }


def test_python_syntax_detail():
    """Python-style syntax messages are parsed too."""
    result = _classify("SyntaxError", "invalid syntax (views.py, line 4)")
    assert result.detail["description"] == "invalid syntax"
    assert result.detail["file"] == "views.py"
    assert result.detail["line"] == 4


def test_not_found_detail():
    """Not-found errors list routes and near matches."""
    result = _classify("NotFoundHttpException", "Route not found: GET /user", routes=ROUTES)
    assert result.category == Category.NOT_FOUND
    assert result.detail["requested_url"] == "/user"
    assert result.detail["similar_routes"][0]["path"] == "/users"
    assert result.detail["available_routes"][1] == {
        "method": "GET", "path": "/users/{id}", "handler": "UserController::show",
    }


def test_validation_detail():
    """Field failures are collected from the message."""
    message = "Field 'email' must be a valid address.\nField 'age' is required."
    result = _classify("ValidationError", message)
    assert result.detail["failed_fields"] == [
        {"field": "email", "error": "must be a valid address"},
        {"field": "age", "error": "is required"},
    ]


def test_custom_detail():
    """Custom errors record their class."""
    result = _classify("myapp.errors.PaymentDeclined", "card declined")
    assert result.detail == {"exception_class": "myapp.errors.PaymentDeclined"}


def test_general_has_no_detail():
    """General errors carry no detail."""
    result = _classify("KeyError", "'x'")
    assert result.category == Category.GENERAL
    assert result.detail == {}
    assert result.suggestions == []


# Suggestions

def _suggest(kind, message, routes=()):
    error = _error(kind, message)
    classified = ErrorClassifier(routes).classify(error)
    return SuggestionEngine(routes).suggest(classified, error)


def test_dedupe_and_cap():
    """Duplicates are dropped before the cap is applied."""
    items = ["a", "b", "a", "c", "b"] + [f"x{i}" for i in range(20)]
    result = dedupe_and_cap(items)
    assert result[:3] == ["a", "b", "c"]
    assert len(result) == MAX_SUGGESTIONS
    assert len(set(result)) == len(result)


@pytest.mark.parametrize("kind, message", [
    ("RuntimeError", "memory limit timeout connection refused network curl error file not found"),
    ("SyntaxError", "'(' was never closed"),
    ("PDOException", "SQLSTATE[23000]: Integrity constraint violation (SQL: insert)"),
    ("myapp.AuthPermissionNotFound", "denied"),
    ("ValidationError", "email is required and must meet min length"),
])
def test_suggestions_capped_and_unique(kind, message):
    """Every category respects the cap and uniqueness."""
    suggestions = _suggest(kind, message)
    assert 0 < len(suggestions) <= MAX_SUGGESTIONS
    assert len(set(suggestions)) == len(suggestions)


def test_sqlstate_suggestions():
    """Known SQLSTATE codes get targeted hints."""
    suggestions = _suggest("PDOException", "SQLSTATE[42S22]: Column not found: 1054 Unknown column")
    assert suggestions[0] == "Check if the column name is spelled correctly"


def test_route_suggestion():
    """Not-found suggestions name the closest routes."""
    suggestions = _suggest("NotFoundHttpException", "Route not found: GET /user", routes=ROUTES)
    assert "Did you mean one of these routes: /users, /users/{id}" in suggestions


def test_syntax_suggestions():
    """Unclosed brackets get a parenthesis hint."""
    suggestions = _suggest("SyntaxError", "'(' was never closed")
    assert suggestions[0] == "Check for a missing closing parenthesis )"


def test_general_fallback_suggestions():
    """Unrecognized general errors still get something to do."""
    suggestions = _suggest("KeyError", "'timeoutx'")
    assert "Check application logs for more details" in suggestions


def test_attribute_error_suggestions():
    """Missing attributes point at the object."""
    suggestions = _suggest("AttributeError", "'NoneType' object has no attribute 'id'")
    assert "Check if the method or attribute exists on the object" in suggestions


def test_pattern_suggestions_appended():
    """Generic operational patterns add their hints."""
    suggestions = _suggest("TimeoutError", "operation timed out")
    assert "Increase timeout settings" in suggestions


def test_suggest_uses_existing_similar_routes():
    """Precomputed similar routes are reused."""
    classified = ClassifiedError(
        category=Category.NOT_FOUND,
        detail={"similar_routes": [{"method": "GET", "path": "/help", "distance": 2}]},
    )
    suggestions = SuggestionEngine().suggest(classified, _error("NotFound", "Route not found: /hlp"))
    assert "Did you mean one of these routes: /help" in suggestions
