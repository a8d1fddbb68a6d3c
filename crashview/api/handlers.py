"""
FastAPI integration for crashview.

install() registers exception handlers that answer unhandled errors with
the full report in debug mode and with a generic page otherwise. The
one-line summary of every unhandled error goes to the standard logger.

Copyright (c) 2025 Graziano Labs Corp.
"""

import logging
import os
import time
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import get_default_config
from ..models import ErrorDescriptor, RawRequest, Route
from ..render.renderer import ReportRenderer

logger = logging.getLogger(__name__)

GENERIC_ERROR_PAGE = (
    "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
    "<title>Server Error</title></head><body>"
    "<h1>500 Internal Server Error</h1>"
    "<p>Something went wrong. Please try again later.</p>"
    "</body></html>"
)

NOT_FOUND_KIND = "NotFoundHttpException"
DEFAULT_NOT_FOUND_DETAIL = "Not Found"


class ErrorPayload(BaseModel):
    type: str
    message: str
    file: Optional[str] = None
    line: Optional[int] = None
    category: str = "general"
    suggestions: List[str] = Field(default_factory=list)


def install(
    app: FastAPI,
    renderer: Optional[ReportRenderer] = None,
    debug: bool = True,
    routes: Optional[Iterable[Any]] = None,
) -> None:
    """
    Register crashview exception handlers on a FastAPI app.

    Args:
        app: Application to instrument
        renderer: Renderer to use; created on first error when omitted
        debug: Serve full reports (True) or a generic error page (False)
        routes: Route table for not-found suggestions; defaults to the
            app's own routes, read when the renderer is first created
    """
    state: Dict[str, Optional[ReportRenderer]] = {"renderer": renderer}

    def get_renderer() -> ReportRenderer:
        if state["renderer"] is None:
            table = list(routes) if routes is not None else routes_from_app(app)
            state["renderer"] = ReportRenderer(get_default_config(), routes=table)
        return state["renderer"]

    async def handle_exception(request: Request, exc: Exception):
        renderer = get_renderer()
        descriptor = ErrorDescriptor.from_exception(exc)
        logger.error("%s", renderer.summary_line(descriptor))

        if not debug:
            if _wants_json(request):
                payload = ErrorPayload(type="InternalServerError", message="Internal Server Error")
                return JSONResponse(payload.model_dump(), status_code=500)
            return HTMLResponse(GENERIC_ERROR_PAGE, status_code=500)

        return await _debug_response(renderer, request, descriptor, status_code=500)

    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if not debug or exc.status_code != 404:
            return await http_exception_handler(request, exc)

        renderer = get_renderer()
        detail = exc.detail or DEFAULT_NOT_FOUND_DETAIL
        if detail == DEFAULT_NOT_FOUND_DETAIL:
            message = f"Route not found: {request.method} {request.url.path}"
        else:
            message = f"Not Found: {request.method} {request.url.path} ({detail})"

        descriptor = replace(
            ErrorDescriptor.from_exception(exc),
            kind=NOT_FOUND_KIND,
            message=message,
            code=404,
        )
        return await _debug_response(renderer, request, descriptor, status_code=404)

    app.add_exception_handler(Exception, handle_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)


async def _debug_response(
    renderer: ReportRenderer,
    request: Request,
    descriptor: ErrorDescriptor,
    status_code: int,
):
    if _wants_json(request):
        try:
            _, classified = renderer.analyze(descriptor)
            category, suggestions = classified.category.value, classified.suggestions
        except Exception as e:
            logger.warning("Error analysis failed: %s", e)
            category, suggestions = "general", []

        payload = ErrorPayload(
            type=descriptor.kind,
            message=descriptor.message,
            file=descriptor.file,
            line=descriptor.line,
            category=category,
            suggestions=suggestions,
        )
        return JSONResponse(payload.model_dump(), status_code=status_code)

    # File reads and highlighting stay off the event loop
    document = await run_in_threadpool(renderer.render, descriptor, raw_request_from(request))
    return HTMLResponse(
        document.content,
        status_code=status_code,
        media_type=document.content_type.split(";")[0],
    )


def _wants_json(request: Request) -> bool:
    """True when application/json is preferred over text/html."""
    accept = request.headers.get("accept", "")
    json_pos = accept.find("application/json")
    html_pos = accept.find("text/html")
    return json_pos != -1 and (html_pos == -1 or json_pos < html_pos)


def raw_request_from(request: Request, body: Optional[Dict[str, Any]] = None) -> RawRequest:
    """
    Convert a Starlette request into raw request sources.

    The body stream is not read here (it may already be consumed by the
    time an exception handler runs); pass parsed form or JSON data as body
    when it is available.

    Args:
        request: Incoming request
        body: Parsed request body, if any

    Returns:
        RawRequest for the context collector
    """
    url = request.url
    uri = url.path + (f"?{url.query}" if url.query else "")

    server: Dict[str, Any] = {
        "REQUEST_METHOD": request.method,
        "PATH_INFO": url.path,
        "QUERY_STRING": url.query,
        "SCRIPT_NAME": request.scope.get("root_path", ""),
        "SERVER_PROTOCOL": f"HTTP/{request.scope.get('http_version', '1.1')}",
        "REQUEST_TIME": int(time.time()),
        "REQUEST_TIME_FLOAT": time.time(),
        "HTTPS": "on" if url.scheme == "https" else "off",
    }
    server_addr = request.scope.get("server")
    if server_addr:
        server["SERVER_NAME"], server["SERVER_PORT"] = server_addr[0], server_addr[1]
    if request.client:
        server["REMOTE_ADDR"], server["REMOTE_PORT"] = request.client.host, request.client.port
    for name, value in request.headers.items():
        server["HTTP_" + name.upper().replace("-", "_")] = value

    environ = dict(os.environ)
    environ["PATH_INFO"] = url.path
    environ["QUERY_STRING"] = url.query

    return RawRequest(
        method=request.method,
        uri=uri,
        host=request.headers.get("host", url.netloc),
        https=url.scheme == "https",
        headers=dict(request.headers),
        query=dict(request.query_params),
        body=dict(body or {}),
        server=server,
        environ=environ,
        session=dict(request.scope["session"]) if "session" in request.scope else None,
    )


def routes_from_app(app: FastAPI) -> List[Route]:
    """Route table of an app: one entry per (method, path)."""
    table = []
    for route in app.routes:
        methods = getattr(route, "methods", None)
        path = getattr(route, "path", None)
        if not methods or path is None:
            continue
        endpoint = getattr(route, "endpoint", None)
        for method in sorted(methods):
            table.append(Route(method=method, path=path, handler=endpoint))
    return table
