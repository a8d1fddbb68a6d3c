"""Error classification and remediation suggestions."""

from .classifier import ErrorClassifier
from .routes import find_similar_routes, levenshtein
from .suggestions import MAX_SUGGESTIONS, SuggestionEngine

__all__ = [
    "ErrorClassifier",
    "SuggestionEngine",
    "MAX_SUGGESTIONS",
    "find_similar_routes",
    "levenshtein",
]
