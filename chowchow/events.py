"""
EventBus - in-process publish/subscribe for chowchow applications.

Emitting is synchronous and never raises to the emitter. Each listener
runs in its own task with a freshly composed context, and its failure is
reported without affecting other listeners.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ._async import maybe_await
from .context import Context
from .exceptions import EventHandlerError, EventNotHandledError
from .logging import event_logger

EventHandler = Callable[[Context], Awaitable[None] | None]
ContextBuilder = Callable[[Mapping[str, Any]], Context]
ErrorReporter = Callable[[Exception, str], None]


@dataclass(frozen=True)
class Listener:
    """A handler registered for one event name."""

    event_name: str
    handler: EventHandler


def report_event_error(error: Exception, event_name: str) -> None:
    """Default reporter, logs the failure."""
    event_logger.error(
        "Error handling '%s': %s",
        event_name,
        error,
        exc_info=getattr(error, "original_error", None) or error,
    )


class EventBus:
    """
    Listener table and dispatcher for named events.

    The bus doesn't know what a context holds: ``build_context`` is given
    the base fields (``emit`` and ``event``) and returns the full context.

    Example:
        bus = EventBus(build_context=lambda base: Context(base))
        bus.on("user-created", send_welcome_email)
        bus.emit("user-created", {"id": 42})
        await bus.drain()
    """

    def __init__(
        self,
        build_context: ContextBuilder,
        on_error: ErrorReporter | None = None,
    ):
        self.build_context = build_context
        self.on_error: ErrorReporter = on_error or report_event_error
        self._listeners: dict[str, list[Listener]] = {}
        self._pending: set[asyncio.Task] = set()

    def on(self, event_name: str, handler: EventHandler) -> Listener:
        """Register ``handler`` for ``event_name``, after existing listeners."""
        listener = Listener(event_name, handler)
        self._listeners.setdefault(event_name, []).append(listener)
        event_logger.debug("Listening for '%s'", event_name)
        return listener

    def listeners(self, event_name: str) -> list[Listener]:
        """Listeners for ``event_name`` in registration order."""
        return list(self._listeners.get(event_name, []))

    @property
    def pending(self) -> int:
        """Number of dispatches still running."""
        return len(self._pending)

    def emit(self, event_name: str, payload: Any = None) -> None:
        """
        Notify every listener of ``event_name``.

        Without a running event loop each listener is run to completion
        before this returns; otherwise they are scheduled as tasks.
        """
        listeners = self.listeners(event_name)
        if not listeners:
            self._report(EventNotHandledError(event_name), event_name)
            return

        event_logger.debug("Emitting '%s' to %d listener(s)", event_name, len(listeners))

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            for listener in listeners:
                asyncio.run(self._dispatch_and_drain(listener, payload))
            return

        for listener in listeners:
            task = loop.create_task(self._dispatch(listener, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every in-flight dispatch, including ones they emit."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _dispatch_and_drain(self, listener: Listener, payload: Any) -> None:
        await self._dispatch(listener, payload)
        await self.drain()

    async def _dispatch(self, listener: Listener, payload: Any) -> None:
        name = listener.event_name
        try:
            ctx = self.build_context({"event": {"type": name, "payload": payload}})
            await maybe_await(listener.handler(ctx))
        except Exception as e:
            self._report(EventHandlerError(name, e), name)

    def _report(self, error: Exception, event_name: str) -> None:
        try:
            self.on_error(error, event_name)
        except Exception as callback_error:
            event_logger.warning("Event error reporter failed: %s", callback_error)
