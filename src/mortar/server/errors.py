"""Error handling pipeline for mortar requests.

Every failure a request can produce (an exception raised by a handler,
an error value returned by one, an error status written by the file
server, an unmatched path) reaches the app's single error handler
through ``dispatch_error``. The default handler answers with the error's
own status when it carries one, otherwise 500.
"""

from __future__ import annotations

import html
import logging
import traceback
from typing import TYPE_CHECKING

from mortar._internal.invoke import invoke
from mortar.errors import HTTPError

if TYPE_CHECKING:
    from mortar.app import App
    from mortar.context import Context
    from mortar.http.request import Request

logger = logging.getLogger("mortar.server")


def error_status(err: BaseException) -> int:
    """The status an error maps to: its own for ``HTTPError``, else 500."""
    if isinstance(err, HTTPError):
        return err.status
    return 500


def default_error_handler(ctx: Context, err: BaseException) -> None:
    """Write an escaped error page with the error's status and log it."""
    status = error_status(err)
    if isinstance(err, HTTPError):
        for name, value in err.headers:
            ctx.writer.headers.set(name, value)
    ctx.writer.write_header(status)
    ctx.writer.write(f"<p>Service Error</p><p>{html.escape(str(err))}</p>")
    ctx.app.logger.error("Error: %s", err)


async def dispatch_error(app: App, ctx: Context, err: BaseException) -> None:
    """Hand *err* to the app's error handler exactly once.

    A handler that itself fails is logged and replaced by a bare 500, so
    the request always ends with a response.
    """
    try:
        await invoke(app.error_handler, ctx, err)
    except Exception:
        logger.exception("error handler failed while handling %r", err)
        if not ctx.writer.written:
            ctx.writer.write_header(500)
            ctx.writer.write("Internal Server Error")


def format_elapsed(seconds: float) -> str:
    """Compact duration for the access log: ``850ns``, ``12.4µs``, ``3.2ms``, ``1.05s``."""
    if seconds < 1e-6:
        return f"{seconds * 1e9:.0f}ns"
    if seconds < 1e-3:
        return f"{seconds * 1e6:.1f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.1f}ms"
    return f"{seconds:.2f}s"


def last_slice(text: str, width: int) -> str:
    """The last *width* characters of *text*, left-padded with spaces."""
    if len(text) >= width:
        return text[len(text) - width :]
    return text.rjust(width)


def access_log(
    log: logging.Logger, request: Request, elapsed: float, label: str = ""
) -> None:
    """Write the debug access line: method, elapsed time, path and label."""
    log.debug(
        "%4s|%12s|%s %s",
        last_slice(request.method, 4),
        format_elapsed(elapsed),
        request.path,
        label,
    )


def service_log(ctx: Context, elapsed: float) -> None:
    """Write the debug access line for one service request."""
    access_log(ctx.app.logger, ctx.request, elapsed, ctx.label)


def format_traceback(err: BaseException) -> str:
    return "".join(traceback.format_exception(err))
