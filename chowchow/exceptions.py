"""
Exception classes for the chowchow framework.

Startup problems surface to the caller of ``start``; route and event
failures are contained at their dispatch boundary and only reported.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .module import Module


class ChowChowError(Exception):
    """Base exception for all chowchow errors."""

    pass


@dataclass
class ModuleFailure:
    """A single module's failed environment check."""

    module_name: str
    reason: str

    def __str__(self) -> str:
        return f"{self.module_name}: {self.reason}"


class EnvironmentCheckError(ChowChowError):
    """
    Raised by ``start`` when one or more modules fail ``check_environment``.

    Every module is checked before this is raised, so ``failures`` holds
    all of them, in registration order.
    """

    def __init__(self, failures: list[ModuleFailure]):
        self.failures = list(failures)
        super().__init__(f"{len(self.failures)} module(s) failed the environment check")

    def __str__(self) -> str:
        parts = [super().__str__()]
        parts.extend(str(failure) for failure in self.failures)
        return " | ".join(parts)


class SetupError(ChowChowError):
    """
    Raised when a module's ``setup_module`` fails.

    Attributes:
        module: The module that failed.
        original_error: The exception it raised.
    """

    def __init__(
        self,
        message: str,
        module: Optional["Module"] = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.module = module
        self.original_error = original_error

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.module:
            parts.append(f"Module: {self.module.metadata.name}")
        if self.original_error:
            parts.append(f"Cause: {type(self.original_error).__name__}: {self.original_error}")
        return " | ".join(parts)


class RouteError(ChowChowError):
    """Carries an error raised by a route to the error handling chain."""

    def __init__(self, original_error: BaseException):
        super().__init__(str(original_error))
        self.original_error = original_error


class EventNotHandledError(ChowChowError):
    """An event was emitted with no listener registered for it."""

    def __init__(self, event_name: str):
        super().__init__(f"No listener for event '{event_name}'")
        self.event_name = event_name


class EventHandlerError(ChowChowError):
    """A single event listener failed."""

    def __init__(self, event_name: str, original_error: Exception):
        super().__init__(f"Listener for event '{event_name}' failed")
        self.event_name = event_name
        self.original_error = original_error

    def __str__(self) -> str:
        return " | ".join(
            [
                super().__str__(),
                f"Cause: {type(self.original_error).__name__}: {self.original_error}",
            ]
        )


class RegistrationError(ChowChowError):
    """Raised when modules, routes or error handlers can't be registered."""

    pass


class LifecycleError(ChowChowError):
    """Raised when start is called from the wrong state."""

    pass


class MissingVariablesError(ChowChowError):
    """Raised when required environment variables are not set."""

    def __init__(self, names: list[str]):
        self.names = list(names)
        super().__init__("Missing environment variables: " + ", ".join(self.names))
