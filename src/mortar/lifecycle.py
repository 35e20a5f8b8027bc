"""Request lifecycle wrapper.

``service_endpoint`` turns a user handler ``handler(ctx)`` into the
endpoint stored in the router. Around the handler it provides:

- a fresh ``Context`` per request;
- ``Cache-Control: no-store`` unless the handler says otherwise;
- a recovery barrier: anything raised, or an exception *returned*, goes
  to the app's error handler exactly once and never reaches the server;
- close handlers registered with ``ctx.close_on_end()``, run in
  registration order on every outcome;
- session persistence when the handler touched ``ctx.session``;
- in debug mode, the access log line and stack capture on faults.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from mortar._internal.invoke import as_error, invoke
from mortar.context import Context
from mortar.server.errors import dispatch_error, format_traceback, service_log

if TYPE_CHECKING:
    from mortar._internal.types import Endpoint, ServiceHandler
    from mortar.app import App
    from mortar.http.request import Request
    from mortar.http.writer import Writer


async def run_closers(ctx: Context) -> None:
    """Close every registered resource once, in registration order."""
    closers, ctx.closers = ctx.closers, []
    for closer in closers:
        try:
            await invoke(closer.close)
        except Exception:
            ctx.app.logger.exception("close handler %r failed", closer)


async def run_service(app: App, handler: ServiceHandler, ctx: Context) -> None:
    """Run *handler* for an existing context inside the recovery barrier."""
    try:
        err = as_error(await invoke(handler, ctx))
    except Exception as exc:
        if app.config.debug:
            app.logger.error("==> %s\n%s", exc, format_traceback(exc))
        err = exc

    try:
        if err is not None:
            await dispatch_error(app, ctx, err)
    finally:
        await run_closers(ctx)
        if ctx.session_started:
            app.sessions.commit(ctx.session, ctx.writer)


def service_endpoint(app: App, handler: ServiceHandler) -> Endpoint:
    """Wrap *handler* into a router endpoint."""

    async def endpoint(request: Request, writer: Writer) -> None:
        start = time.perf_counter()
        ctx = Context(request, writer, app)
        writer.headers.set("Cache-Control", "no-store")

        if request.is_form:
            await request.body()

        await run_service(app, handler, ctx)

        if app.config.debug:
            service_log(ctx, time.perf_counter() - start)

    endpoint.__name__ = getattr(handler, "__name__", "endpoint")
    endpoint.__qualname__ = getattr(handler, "__qualname__", endpoint.__name__)
    return endpoint
