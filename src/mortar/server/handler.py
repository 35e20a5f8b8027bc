"""ASGI handler: translates ASGI scope/messages to mortar types.

The only component that touches raw ASGI HTTP directly. Converts the
scope to a typed Request, matches it against the router, runs the
endpoint against a fresh ResponseWriter and sends the result back
through ASGI send().
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mortar._internal.asgi import Receive, Scope, Send
from mortar.context import Context
from mortar.errors import NotFound
from mortar.http.request import Request
from mortar.http.writer import ResponseWriter
from mortar.server.errors import dispatch_error
from mortar.server.sender import send_response

if TYPE_CHECKING:
    from mortar.app import App
    from mortar.routing.router import Router

logger = logging.getLogger("mortar.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    app: App,
    router: Router,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    writer = ResponseWriter()

    try:
        match = router.match(request.path)
    except NotFound as exc:
        await dispatch_error(app, Context(request, writer, app), exc)
    else:
        if match.redirect is not None:
            location = match.redirect
            if request.query.raw:
                location = f"{location}?{request.query.raw.decode('latin-1')}"
            writer.headers.set("Location", location)
            writer.write_header(301)
        else:
            try:
                await match.route.endpoint(request, writer)
            except Exception as exc:
                # Static pages and redirects have no recovery barrier of their own
                logger.exception("500 %s %s", request.method, request.path)
                await dispatch_error(app, Context(request, writer, app), exc)

    await send_response(writer.to_response(), send, head=request.method == "HEAD")
