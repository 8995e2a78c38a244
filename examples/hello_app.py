"""
Example chowchow application.

Demonstrates:
- Module registration and context composition
- Queued routes and a structured response
- An error handler with access to the module context
- Events emitted from a route

Run with: GREETING=Hello python -m examples.hello_app
Visit: http://localhost:3000/hello/geoff
"""

import asyncio
import logging

from chowchow import (
    Application,
    HelperOptions,
    HttpMessage,
    HttpResponse,
    InjectorModule,
    StartOptions,
)
from examples.greet_module import GreeterModule

app = Application(log_level=logging.INFO)
app.use(GreeterModule()).use(InjectorModule(lambda: {"visits": []}))
app.add_helpers(HelperOptions(json_body=True))


def routes(server, wrap):
    @server.get("/hello/{name}")
    @wrap
    def hello(ctx):
        name = ctx.request.params["name"]
        ctx.visits.append(name)
        ctx.emit("greeted", {"name": name})
        return {"message": ctx.greet(name)}

    @server.get("/visits")
    @wrap
    def visits(ctx):
        return HttpResponse(200, {"visits": ctx.visits}, {"cache-control": "no-store"})

    @server.get("/broken")
    @wrap
    def broken(ctx):
        raise RuntimeError("Something went wrong")


async def on_error(error, ctx):
    if not ctx.res.sent:
        message = HttpMessage(500, str(error))
        ctx.res.status(message.status).send(message.body)


async def on_greeted(ctx):
    logging.getLogger("examples").info("Greeted %s", ctx.event["payload"]["name"])


app.apply_routes(routes)
app.apply_error_handler(on_error)
app.event("greeted", on_greeted)


async def main() -> None:
    await app.start(StartOptions(verbose=True, output_url=True, handle_404s=True))
    try:
        await asyncio.Event().wait()
    finally:
        await app.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
