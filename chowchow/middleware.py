"""
Optional middleware for chowchow applications.

These are the helpers toggled by HelperOptions: request body parsing,
CORS and trusting a reverse proxy.
"""

import json
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .config import HelperOptions
from .http import make_response
from .logging import http_logger


class BodyParserMiddleware(BaseHTTPMiddleware):
    """
    Middleware that parses request bodies into ``request.state.body``.

    JSON bodies are parsed when ``json_body`` is set and url-encoded form
    bodies when ``url_encoded_body`` is set. A malformed JSON body is
    answered with a 400 before it reaches any route.
    """

    def __init__(self, app: ASGIApp, json_body: bool = False, url_encoded_body: bool = False):
        super().__init__(app)
        self.json_body = json_body
        self.url_encoded_body = url_encoded_body

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_type = request.headers.get("content-type", "").split(";")[0].strip()

        if self.json_body and content_type == "application/json":
            raw = await request.body()
            if raw:
                try:
                    request.state.body = json.loads(raw)
                except ValueError:
                    http_logger.debug("Rejected malformed JSON body on %s", request.url.path)
                    return make_response(400, {"message": "Malformed JSON body"})

        elif self.url_encoded_body and content_type == "application/x-www-form-urlencoded":
            form = await request.form()
            request.state.body = dict(form)

        return await call_next(request)


def add_helpers(server: FastAPI, options: HelperOptions) -> None:
    """
    Install the middleware enabled in ``options`` on ``server``.

    Args:
        server: The FastAPI application to configure
        options: Which helpers to enable
    """
    if options.json_body or options.url_encoded_body:
        server.add_middleware(
            BodyParserMiddleware,
            json_body=options.json_body,
            url_encoded_body=options.url_encoded_body,
        )

    if options.cors_hosts:
        server.add_middleware(
            CORSMiddleware,
            allow_origins=list(options.cors_hosts),
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if options.trust_proxy:
        server.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    http_logger.debug("Applied helpers: %s", options)
