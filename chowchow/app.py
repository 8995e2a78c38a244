"""
Application - the chowchow module registry and lifecycle.

The Application owns the modules, the FastAPI server handle, the queues
of routes and error handlers waiting for startup, and the event bus. It
drives modules through check, setup, server extension and teardown.
"""

import asyncio
import dataclasses
import socket
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from functools import partial
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from starlette.responses import PlainTextResponse, Response

from ._async import maybe_await
from .config import HelperOptions, StartOptions
from .context import Context, ContextExtension, compose_context
from .events import ErrorReporter, EventBus, EventHandler, Listener
from .exceptions import (
    ChowChowError,
    EnvironmentCheckError,
    LifecycleError,
    ModuleFailure,
    RegistrationError,
    RouteError,
    SetupError,
)
from .http import ROUTE_METHODS, HttpMessage, ResponseWriter, create_request, render_result
from .logging import app_logger, configure_logging, http_logger, module_logger, step_logger
from .middleware import add_helpers as install_helpers
from .module import Module

ChowChowRoute = Callable[[Context], Any]
NativeEndpoint = Callable[[Request], Awaitable[Response]]
RouteWrapper = Callable[[ChowChowRoute], NativeEndpoint]
RouterFn = Callable[[FastAPI, RouteWrapper], None]
ErrorHandler = Callable[[Exception, Context], Any]

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


class State(str, Enum):
    """Lifecycle states of an Application."""

    STOPPED = "stopped"
    SETUP = "setup"
    RUNNING = "running"


def _add_single_route(
    method: str, path: str, handler: ChowChowRoute, server: FastAPI, wrap: RouteWrapper
) -> None:
    server.add_api_route(path, wrap(handler), methods=[method.upper()])


def _not_found(ctx: Context) -> HttpMessage:
    return HttpMessage(404, "Not found")


def _next_function(errors: list[Exception]) -> Callable[..., None]:
    def next_(error: Exception | None = None) -> None:
        if error is not None:
            errors.append(error)

    return next_


class Application:
    """
    A chowchow application, composed from modules via use(module).

    Routes and error handlers are queued and only bound to the server
    during start(). Routes registered by modules while they are set up
    are bound before the routes registered beforehand.

    Example:
        app = Application()
        app.use(DatabaseModule()).use(GreeterModule())

        def routes(server, wrap):
            server.get("/hello")(wrap(lambda ctx: {"message": ctx.greet("geoff")}))

        app.apply_routes(routes)
        app.apply_error_handler(lambda error, ctx: ctx.res.status(500).send())

        await app.start(port=3000)
        ...
        await app.stop()
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        context_factory: ContextExtension | None = None,
        on_event_error: ErrorReporter | None = None,
        log_level: int | None = None,
    ):
        """
        Initialize the Application.

        Args:
            env: Values copied into every context as ``ctx.env``.
            context_factory: An extension applied before any module's.
            on_event_error: Reporter for event failures, logs by default.
            log_level: If set, configure the chowchow logger at this level.
        """
        if log_level is not None:
            configure_logging(level=log_level)

        self.env = dict(env or {})
        self.context_factory = context_factory
        self.events = EventBus(build_context=self._make_event_context, on_error=on_event_error)

        self._state = State.STOPPED
        self._modules: list[Module] = []
        self._tags: dict[str, Module] = {}
        self._server = self._create_server()
        self._routes_to_apply: list[RouterFn] = []
        self._error_handlers: list[ErrorHandler] = []
        self._active_error_handlers: tuple[ErrorHandler, ...] = ()
        self._log_errors = True

        self._uvicorn: uvicorn.Server | None = None
        self._serve_task: asyncio.Task | None = None
        self._socket: socket.socket | None = None
        self._port: int | None = None

    @classmethod
    def create(cls, **kwargs: Any) -> "Application":
        """Create an application, useful for chaining."""
        return cls(**kwargs)

    def __repr__(self) -> str:
        return f"<Application state={self._state.value} modules={len(self._modules)}>"

    @property
    def state(self) -> State:
        """Current lifecycle state."""
        return self._state

    @property
    def server(self) -> FastAPI:
        """The underlying FastAPI application, replaced on every stop."""
        return self._server

    @property
    def modules(self) -> list[Module]:
        """Registered modules, in registration order."""
        return self._modules.copy()

    @property
    def port(self) -> int | None:
        """The port being listened on while running."""
        return self._port

    @property
    def url(self) -> str | None:
        """The local url of the server while running."""
        if self._port is None:
            return None
        return f"http://localhost:{self._port}"

    #
    # Module registry
    #

    def use(self, module: Module, tag: str | None = None) -> "Application":
        """
        Register a module. Call order matters: modules are set up in
        registration order and cleared in reverse.

        Args:
            module: The module to register
            tag: Optional key for has() and get_module()

        Returns:
            self (for method chaining)

        Raises:
            RegistrationError: If the module can't be registered
        """
        if not isinstance(module, Module):
            raise RegistrationError(f"{module!r} is not a chowchow Module")
        if self._state is not State.STOPPED:
            raise RegistrationError("Cannot add modules once started")
        if module.app is not None:
            raise RegistrationError(
                f"{module.metadata.name} is already registered with an application"
            )
        if tag is not None and tag in self._tags:
            raise RegistrationError(f"Module tag '{tag}' is already in use")

        module._attach(self)
        self._modules.append(module)
        if tag is not None:
            self._tags[tag] = module

        module_logger.info(
            "Registered module: %s (v%s)", module.metadata.name, module.metadata.version
        )
        return self

    def get_module(self, key: str | type[Module]) -> Module | None:
        """
        Find a registered module.

        ``key`` is either a tag given to use(), a module name, or a module
        class. The first match in registration order wins.
        """
        if isinstance(key, str):
            if key in self._tags:
                return self._tags[key]
            for module in self._modules:
                if module.metadata.name == key:
                    return module
            return None

        for module in self._modules:
            if isinstance(module, key):
                return module
        return None

    def has(self, key: str | type[Module]) -> bool:
        """Whether a module matching ``key`` is registered."""
        return self.get_module(key) is not None

    #
    # Context
    #

    def _context_extensions(self) -> list[ContextExtension]:
        extensions: list[ContextExtension] = []
        if self.context_factory is not None:
            extensions.append(self.context_factory)
        extensions.extend(module.extend_context for module in self._modules)
        return extensions

    def make_context(self, base: Mapping[str, Any]) -> Context:
        """Compose a context from ``base`` and every module's contribution."""
        return compose_context(base, self._context_extensions())

    def base_context(self, **fields: Any) -> dict[str, Any]:
        """The fields every context starts with, plus ``fields``."""
        return {"env": dict(self.env), "emit": self.emit, **fields}

    def _make_event_context(self, base: Mapping[str, Any]) -> Context:
        return self.make_context(self.base_context(**base))

    async def _route_base(
        self, request: Request, res: ResponseWriter, next_: Callable[..., None]
    ) -> dict[str, Any]:
        return self.base_context(
            req=request, res=res, next=next_, request=await create_request(request)
        )

    #
    # Events
    #

    def event(self, event_name: str, handler: EventHandler) -> Listener:
        """Listen for ``event_name``, see EventBus.on."""
        return self.events.on(event_name, handler)

    def emit(self, event_name: str, payload: Any = None) -> None:
        """Emit ``event_name`` to its listeners, see EventBus.emit."""
        self.events.emit(event_name, payload)

    async def wait_for_events(self) -> None:
        """Wait until every emitted event has been handled."""
        await self.events.drain()

    #
    # Server configuration
    #

    def apply(self, *fns: Callable[["Application"], None]) -> None:
        """Call each function with this application, in order."""
        for fn in fns:
            fn(self)

    def apply_middleware(self, fn: Callable[[FastAPI], None]) -> None:
        """Configure the current server handle directly."""
        fn(self._server)

    def add_helpers(self, options: HelperOptions | None = None, **overrides: Any) -> None:
        """Install body parsing, CORS or proxy support on the current server."""
        options = dataclasses.replace(options or HelperOptions(), **overrides)
        install_helpers(self._server, options)

    def apply_routes(self, fn: RouterFn) -> None:
        """
        Queue a router, called with ``(server, wrap)`` during start().

        ``wrap(route)`` turns a context-based route into a native endpoint.

        Raises:
            RegistrationError: If the application is already running
        """
        if self._state is State.RUNNING:
            raise RegistrationError("Cannot add routes once running")
        self._routes_to_apply.append(fn)

    def route(self, method: str, path: str, handler: ChowChowRoute) -> None:
        """Queue a single route, e.g. route("get", "/users/{id}", get_user)."""
        if method.lower() not in ROUTE_METHODS:
            raise ValueError(f"Unsupported method '{method}'")
        self.apply_routes(partial(_add_single_route, method, path, handler))

    def apply_error_handler(self, fn: ErrorHandler) -> None:
        """
        Queue an error handler, called with ``(error, ctx)`` when a route fails.

        Raises:
            RegistrationError: If the application is already running
        """
        if self._state is State.RUNNING:
            raise RegistrationError("Cannot add error handlers once running")
        self._error_handlers.append(fn)

    #
    # Lifecycle
    #

    async def start(self, options: StartOptions | None = None, **overrides: Any) -> None:
        """
        Check and set up every module, bind routes and error handlers,
        then start listening.

        Args:
            options: Start options, read from the environment if omitted
            **overrides: Fields to replace on ``options``

        Raises:
            LifecycleError: If the application is not stopped
            EnvironmentCheckError: If any module fails check_environment
            SetupError: If a module fails setup_module
            OSError: If the listen socket can't be bound

        If setup or binding fails, the modules already set up are cleared in
        reverse order and the application is left in the setup state, to be
        discarded.
        """
        if self._state is not State.STOPPED:
            raise LifecycleError(f"Cannot start from state '{self._state.value}'")

        options = dataclasses.replace(options or StartOptions.from_env(), **overrides)
        log = step_logger(options.verbose)

        self._state = State.SETUP

        log("Checking environment")
        failures: list[ModuleFailure] = []
        for module in self._modules:
            try:
                module.check_environment()
                log(" ✓ %s", module.metadata.name)
            except Exception as e:
                failures.append(ModuleFailure(module.metadata.name, str(e)))

        if failures:
            for failure in failures:
                app_logger.error(" ✗ %s", failure)
            self._state = State.STOPPED
            raise EnvironmentCheckError(failures)

        # Routes queued by modules from here on are bound first
        pre_registered = self._routes_to_apply
        self._routes_to_apply = []

        log("Setting up modules")
        ready: list[Module] = []
        try:
            for module in self._modules:
                try:
                    await maybe_await(module.setup_module())
                except Exception as e:
                    raise SetupError(
                        f"Failed to set up {module.metadata.name}",
                        module=module,
                        original_error=e,
                    ) from e
                ready.append(module)
                log(" ✓ %s", module.metadata.name)

            await self._bind(options, pre_registered, log)
        except Exception:
            await self._clear_modules(ready)
            raise

        self._state = State.RUNNING

        if options.output_url:
            app_logger.info("Listening on %s", self.url)

    async def _bind(
        self, options: StartOptions, pre_registered: list[RouterFn], log: Callable[..., None]
    ) -> None:
        """Extend the server, bind routes and error handlers, then listen."""
        log("Extending server")
        for module in self._modules:
            module.extend_server(self._server)
            log(" ✓ %s", module.metadata.name)

        log("Adding routes")
        routes = self._routes_to_apply + pre_registered
        self._routes_to_apply = []
        for fn in routes:
            fn(self._server, self._wrap_route)

        if options.handle_404s:
            self._server.add_api_route(
                "/{path:path}",
                self._wrap_route(_not_found),
                methods=ALL_METHODS,
                include_in_schema=False,
            )

        log("Adding error handler")
        self._active_error_handlers = tuple(self._error_handlers)
        self._error_handlers = []
        self._log_errors = options.log_errors
        self._server.add_exception_handler(RouteError, self._handle_route_error)

        await self._start_server(options)

    async def stop(self) -> None:
        """
        Clear modules in reverse order, stop the server and reset it.

        Does nothing unless the application is running.
        """
        if self._state is not State.RUNNING:
            app_logger.debug("stop() ignored, application is %s", self._state.value)
            return

        app_logger.debug("Waiting for %d event(s)", self.events.pending)
        await self.events.drain()

        await self._clear_modules(self._modules)

        await self._stop_server()

        self._server = self._create_server()
        self._active_error_handlers = ()
        self._state = State.STOPPED
        app_logger.debug("Stopped")

    async def _clear_modules(self, modules: list[Module]) -> None:
        """Clear ``modules`` in reverse order, logging failures."""
        app_logger.debug("Clearing modules")
        for module in reversed(modules):
            try:
                await maybe_await(module.clear_module())
            except Exception as e:
                module_logger.warning(
                    "Error during clear_module for %s: %s",
                    module.metadata.name,
                    e,
                    exc_info=True,
                )

    #
    # Dispatch
    #

    def _wrap_route(self, route: ChowChowRoute) -> NativeEndpoint:
        async def endpoint(request: Request) -> Response:
            res = ResponseWriter()
            request.state.chowchow_res = res
            forwarded: list[Exception] = []
            try:
                ctx = self.make_context(
                    await self._route_base(request, res, _next_function(forwarded))
                )
                result = await maybe_await(route(ctx))
                if forwarded:
                    raise forwarded[0]
                return render_result(result, res)
            except Exception as e:
                raise RouteError(e) from e

        return endpoint

    async def _handle_route_error(self, request: Request, exc: RouteError) -> Response:
        error = exc.original_error
        if self._log_errors:
            http_logger.error(
                "Error handling %s %s: %s",
                request.method,
                request.url.path,
                error,
                exc_info=error,
            )

        res = getattr(request.state, "chowchow_res", None) or ResponseWriter()

        if self._active_error_handlers:
            try:
                ctx = self.make_context(await self._route_base(request, res, _next_function([])))
            except Exception as e:
                http_logger.error("Could not create an error handler context: %s", e, exc_info=True)
            else:
                for handler in self._active_error_handlers:
                    try:
                        await maybe_await(handler(error, ctx))
                    except Exception as handler_error:
                        http_logger.error(
                            "Error handler %r failed: %s", handler, handler_error, exc_info=True
                        )

        if res.sent:
            return res.to_response()  # type: ignore[return-value]
        return PlainTextResponse("Internal Server Error", status_code=500)

    #
    # Server
    #

    def _create_server(self) -> FastAPI:
        return FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    async def _start_server(self, options: StartOptions) -> None:
        """Bind the listen socket and serve until stopped."""
        family = socket.AF_INET6 if ":" in options.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((options.host, options.port))
        except OSError:
            sock.close()
            raise

        config = uvicorn.Config(
            self._server,
            log_config=None,
            lifespan="off",
            timeout_graceful_shutdown=options.graceful_timeout,
        )
        server = uvicorn.Server(config)
        task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started:
            if task.done():
                sock.close()
                task.result()
                raise ChowChowError("HTTP server exited during startup")
            await asyncio.sleep(0.01)

        self._uvicorn = server
        self._serve_task = task
        self._socket = sock
        self._port = sock.getsockname()[1]
        http_logger.debug("Listening on %s:%d", options.host, self._port)

    async def _stop_server(self) -> None:
        """Stop accepting connections and wait for open ones to finish."""
        if self._uvicorn is None or self._serve_task is None:
            return

        self._uvicorn.should_exit = True
        try:
            await self._serve_task
        finally:
            if self._socket is not None:
                self._socket.close()
            self._uvicorn = None
            self._serve_task = None
            self._socket = None
            self._port = None
