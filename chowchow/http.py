"""
HTTP helpers for chowchow routes.

Routes can return plain values, an HttpResponse carrying an explicit
status and headers, or write through the ResponseWriter on ``ctx.res``.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from .exceptions import ChowChowError

ROUTE_METHODS = ("get", "post", "put", "patch", "delete")


def make_response(
    status: int, body: Any = None, headers: Mapping[str, str] | None = None
) -> Response:
    """
    Render a body into a Starlette response.

    ``str`` becomes text, ``bytes`` are sent raw, ``None`` is an empty body
    and anything else is encoded as JSON.
    """
    headers = dict(headers or {})
    if body is None:
        return Response(status_code=status, headers=headers)
    if isinstance(body, bytes):
        return Response(content=body, status_code=status, headers=headers)
    if isinstance(body, str):
        return PlainTextResponse(body, status_code=status, headers=headers)
    return JSONResponse(body, status_code=status, headers=headers)


class HttpResponse:
    """
    A route result with an explicit status, body and headers.

    Example:
        return HttpResponse(201, {"id": user_id}, {"location": f"/users/{user_id}"})
    """

    def __init__(self, status: int, body: Any = None, headers: Mapping[str, str] | None = None):
        self.status = status
        self.body = body
        self.headers = dict(headers or {})

    def to_response(self) -> Response:
        return make_response(self.status, self.body, self.headers)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status!r}, body={self.body!r})"


class HttpMessage(HttpResponse):
    """A JSON message response, e.g. for returning errors."""

    def __init__(self, status: int, message: str):
        super().__init__(status, {"message": message})


class HttpRedirect(HttpResponse):
    """A response redirecting the client somewhere else."""

    def __init__(self, location: str, permanent: bool = False):
        super().__init__(301 if permanent else 302, "", {"location": location})
        self.location = location


class ResponseAlreadySentError(ChowChowError):
    """Raised when a ResponseWriter is sent twice."""

    pass


class ResponseWriter:
    """
    A mutable response, available to routes and error handlers as ``ctx.res``.

    The same writer is shared between a route and the error handlers that
    run if it fails, so a handler can tell whether something was sent.

    Example:
        def route(ctx):
            ctx.res.status(201).set("x-created", "yes").send({"ok": True})
    """

    def __init__(self) -> None:
        self.status_code = 200
        self.headers: dict[str, str] = {}
        self._response: Response | None = None

    @property
    def sent(self) -> bool:
        """Whether a response has been sent."""
        return self._response is not None

    def status(self, code: int) -> "ResponseWriter":
        self.status_code = code
        return self

    def set(self, name: str | Mapping[str, str], value: str | None = None) -> "ResponseWriter":
        """Set one header, or several from a mapping."""
        if isinstance(name, str):
            self.headers[name] = "" if value is None else value
        else:
            self.headers.update(name)
        return self

    def send(self, body: Any = None) -> None:
        if self.sent:
            raise ResponseAlreadySentError("Response has already been sent")
        self._response = make_response(self.status_code, body, self.headers)

    def json(self, data: Any) -> None:
        if self.sent:
            raise ResponseAlreadySentError("Response has already been sent")
        self._response = JSONResponse(data, status_code=self.status_code, headers=self.headers)

    def redirect(self, location: str, status: int = 302) -> None:
        self.status(status).set("location", location).send("")

    def to_response(self) -> Response | None:
        """The response that was sent, or None."""
        return self._response


@dataclass
class ChowRequest:
    """A plain snapshot of the incoming request."""

    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None


async def create_request(request: Request) -> ChowRequest:
    """
    Snapshot a Starlette request.

    The body is the parsed body left by the body parsing helper when there
    is one, otherwise the raw bytes.
    """
    if hasattr(request.state, "body"):
        body = request.state.body
    else:
        body = await request.body()

    return ChowRequest(
        params=dict(request.path_params),
        headers=dict(request.headers),
        query=dict(request.query_params),
        body=body,
    )


def render_result(result: Any, res: ResponseWriter) -> Response:
    """Turn whatever a route returned into a native response."""
    if res.sent:
        return res.to_response()  # type: ignore[return-value]
    if isinstance(result, Response):
        return result
    if isinstance(result, HttpResponse):
        return result.to_response()
    res.send(result)
    return res.to_response()  # type: ignore[return-value]
