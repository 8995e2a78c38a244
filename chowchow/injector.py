"""
InjectorModule - put a value into every context.

Example:
    async def connect():
        return {"db": await create_pool(os.environ["DATABASE_URL"])}

    app.use(InjectorModule(connect, env=["DATABASE_URL"]))
"""

from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from ._async import maybe_await
from .context import Context
from .env import check_variables
from .module import Module, module


@module(name="Injector", description="Injects a generated mapping into every context")
class InjectorModule(Module):
    """
    A module whose contribution is generated once, during setup.

    Args:
        generator: Returns (or resolves to) the mapping to inject
        env: Environment variables the generator needs
    """

    def __init__(
        self,
        generator: Callable[[], Mapping[str, Any] | Awaitable[Mapping[str, Any]]],
        env: Iterable[str] = (),
    ):
        super().__init__()
        self.generator = generator
        self.env = list(env)
        self.value: Mapping[str, Any] | None = None

    def check_environment(self) -> None:
        check_variables(self.env)

    async def setup_module(self) -> None:
        self.value = await maybe_await(self.generator())

    def clear_module(self) -> None:
        self.value = None

    def extend_context(self, ctx: Context) -> Mapping[str, Any]:
        return self.value or {}
