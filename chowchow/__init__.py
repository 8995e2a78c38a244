"""
chowchow - Module-based orchestration for HTTP applications

Independent modules cooperatively build the context every request and
event handler receives, and are driven through an ordered lifecycle:
environment check, setup, server extension, routing, serving and
teardown.

Submodules:
    chowchow.http - Route results and the response writer
    chowchow.events - The in-process event bus
    chowchow.env - Environment variable helpers
"""

from .app import Application, State
from .config import HelperOptions, StartOptions
from .context import Context, compose_context
from .env import check_variables, make_env
from .events import EventBus, Listener
from .exceptions import (
    ChowChowError,
    EnvironmentCheckError,
    EventHandlerError,
    EventNotHandledError,
    LifecycleError,
    MissingVariablesError,
    ModuleFailure,
    RegistrationError,
    RouteError,
    SetupError,
)
from .http import ChowRequest, HttpMessage, HttpRedirect, HttpResponse, ResponseWriter
from .injector import InjectorModule
from .logging import configure_logging, get_logger
from .module import Module, ModuleMetadata, module

__all__ = [
    # Application
    "Application",
    "State",
    # Module system
    "Module",
    "module",
    "ModuleMetadata",
    "InjectorModule",
    # Context
    "Context",
    "compose_context",
    # HTTP
    "HttpResponse",
    "HttpMessage",
    "HttpRedirect",
    "ResponseWriter",
    "ChowRequest",
    # Events
    "EventBus",
    "Listener",
    # Configuration
    "StartOptions",
    "HelperOptions",
    "check_variables",
    "make_env",
    # Exceptions
    "ChowChowError",
    "EnvironmentCheckError",
    "ModuleFailure",
    "SetupError",
    "RouteError",
    "EventNotHandledError",
    "EventHandlerError",
    "RegistrationError",
    "LifecycleError",
    "MissingVariablesError",
    # Logging
    "configure_logging",
    "get_logger",
]

__version__ = "0.1.0"
