"""FastAPI integration."""

from .handlers import ErrorPayload, install, raw_request_from, routes_from_app

__all__ = ["ErrorPayload", "install", "raw_request_from", "routes_from_app"]
