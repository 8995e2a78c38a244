"""
Context composition for chowchow.

A context is rebuilt for every request and every event: it starts from the
base fields the dispatcher provides and then folds in each extension's
contribution, in order. Later extensions overwrite earlier ones.
"""

from collections.abc import Callable, Iterable, Mapping
from functools import reduce
from typing import Any

from .logging import module_logger

ContextExtension = Callable[["Context"], Mapping[str, Any] | None]

# Fields provided by the dispatchers themselves
BASE_FIELDS = frozenset({"req", "res", "next", "request", "env", "emit", "event"})


class Context(dict):
    """
    A per-request or per-event mapping with attribute access.

    Example:
        ctx = Context(name="geoff")
        ctx["name"] == ctx.name
    """

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None


def _merge(ctx: Context, extension: ContextExtension) -> Context:
    contribution = extension(ctx)
    if not contribution:
        return ctx

    shadowed = BASE_FIELDS.intersection(contribution).intersection(ctx)
    if shadowed:
        module_logger.debug(
            "%r overrides base context field(s): %s",
            extension,
            ", ".join(sorted(shadowed)),
        )

    ctx.update(contribution)
    return ctx


def compose_context(
    base: Mapping[str, Any], extensions: Iterable[ContextExtension]
) -> Context:
    """
    Build a fresh context from ``base`` and an ordered list of extensions.

    Each extension receives the context built so far. Errors raised by an
    extension propagate to the caller.
    """
    return reduce(_merge, extensions, Context(base))
