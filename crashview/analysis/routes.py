"""
Route table helpers for not-found diagnostics.

Copyright (c) 2025 Graziano Labs Corp.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..models import Route

MAX_SIMILAR_ROUTES = 3
MAX_EDIT_DISTANCE = 3

_URL_IN_MESSAGE = re.compile(r"/[^\s'\"]*")


def levenshtein(a: str, b: str) -> int:
    """Minimum number of single-character edits turning a into b."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def extract_url(message: str) -> Optional[str]:
    """First path-like substring of a message, if any."""
    match = _URL_IN_MESSAGE.search(message or "")
    return match.group(0) if match else None


def coerce_routes(routes: Iterable[Any]) -> List[Route]:
    coerced = []
    for route in routes or ():
        try:
            coerced.append(Route.coerce(route))
        except (TypeError, ValueError):
            continue
    return coerced


def find_similar_routes(
    url: str, routes: Sequence[Route], limit: int = MAX_SIMILAR_ROUTES
) -> List[Dict[str, Any]]:
    """
    Routes close to a requested URL.

    A route is similar when its edit distance is at most 3 or either path
    contains the other. Results are ordered by ascending distance (stable
    for ties) and capped at limit.
    """
    similar = []
    for route in routes:
        distance = levenshtein(url, route.path)
        if distance <= MAX_EDIT_DISTANCE or url in route.path or route.path in url:
            similar.append({"method": route.method, "path": route.path, "distance": distance})
    similar.sort(key=lambda entry: entry["distance"])
    return similar[:limit]


def format_routes(routes: Sequence[Route]) -> List[Dict[str, str]]:
    return [
        {"method": route.method, "path": route.path, "handler": route.handler_name()}
        for route in routes
    ]
