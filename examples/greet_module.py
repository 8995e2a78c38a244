"""
Greeter Module - Simple example of a module contributing to the context.

Checks its environment, sets itself up and adds a ``greet`` function to
every route and event context.
"""

import os

from chowchow import Context, Module, check_variables, module


@module(name="Greeter", description="Adds a greet() helper to every context", version="1.0.0")
class GreeterModule(Module):
    """
    A simple module that builds greeting messages.

    Example:
        app = Application()
        app.use(GreeterModule())

        app.route("get", "/hello/{name}", lambda ctx: {"message": ctx.greet(ctx.request.params["name"])})
    """

    def __init__(self, formal: bool = False):
        super().__init__()
        self.formal = formal
        self.greeting = ""

    def check_environment(self) -> None:
        check_variables(["GREETING"])

    def setup_module(self) -> None:
        self.greeting = os.environ["GREETING"]

    def clear_module(self) -> None:
        self.greeting = ""

    def extend_context(self, ctx: Context) -> dict:
        return {"greet": self.greet}

    def greet(self, name: str) -> str:
        if self.formal:
            return f"{self.greeting}, {name}. How may I assist you?"
        return f"{self.greeting}, {name}!"
