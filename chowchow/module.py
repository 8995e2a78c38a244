"""
Module base class for chowchow.

Modules are the plugins an Application is built from. Each one can
validate its environment, set itself up, attach middleware to the server
and contribute fields to every request or event context.
"""

import weakref
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from fastapi import FastAPI

    from .app import Application
    from .context import Context


@dataclass
class ModuleMetadata:
    """Metadata for a module."""

    name: str = ""
    description: str = ""
    version: str = "1.0.0"


def module(
    name: str = "", description: str = "", version: str = "1.0.0"
) -> Callable[[type], type]:
    """
    Decorator to add metadata to a module class.

    Example:
        @module(name="Database", description="Shared connection pool")
        class DatabaseModule(Module):
            ...
    """

    def decorator(cls: type) -> type:
        cls._module_metadata = ModuleMetadata(  # type: ignore[attr-defined]
            name=name or cls.__name__, description=description, version=version
        )
        return cls

    return decorator


class Module:
    """
    Base class for chowchow modules.

    Every hook has a do-nothing default, so subclasses only override what
    they need. Hooks run in registration order, except ``clear_module``
    which runs in reverse so a module is torn down before the modules it
    depends on.

    Each module gets a non-owning reference to its application via the
    ``app`` property once it is passed to ``Application.use``.

    Example:
        @module(name="Greeter")
        class GreeterModule(Module):
            async def setup_module(self) -> None:
                self.greeting = "Hello"

            def extend_context(self, ctx):
                return {"greet": lambda name: f"{self.greeting}, {name}"}
    """

    _module_metadata: ModuleMetadata = ModuleMetadata()

    def __init__(self) -> None:
        self._app_ref: weakref.ReferenceType["Application"] | None = None

    @property
    def app(self) -> Optional["Application"]:
        """The Application this module is registered with."""
        ref = getattr(self, "_app_ref", None)
        return ref() if ref is not None else None

    def _attach(self, app: "Application") -> None:
        self._app_ref = weakref.ref(app)

    @property
    def metadata(self) -> ModuleMetadata:
        """Module metadata (name, description, version)."""
        # Metadata isn't inherited from a decorated parent class
        metadata = type(self).__dict__.get("_module_metadata")
        if metadata is None or not metadata.name:
            return ModuleMetadata(name=type(self).__name__)
        return metadata

    def check_environment(self) -> None:
        """
        Validate the module's preconditions.

        Raise an exception with a readable message if something required
        is missing. Every module is checked before any failure is reported.
        """

    def setup_module(self) -> Any:
        """
        Initialise the module, may be a coroutine.

        Modules are set up one at a time, so a module can rely on the
        modules registered before it being ready.
        """

    def clear_module(self) -> Any:
        """Release whatever ``setup_module`` acquired, may be a coroutine."""

    def extend_server(self, server: "FastAPI") -> None:
        """Attach middleware or other native configuration to the server."""

    def extend_context(self, ctx: "Context") -> Mapping[str, Any]:
        """
        Return fields to merge into every request and event context.

        ``ctx`` holds the base fields plus whatever earlier modules added.
        """
        return {}
