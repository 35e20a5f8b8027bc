"""Template-backed page handlers.

A template page pairs one template file with a data callback::

    def about(ctx):
        return {"title": "About"}

    app.service("/about", app.template_page("templates/about.html", about))

The callback's return value becomes ``data`` inside the template. A
callback may also raise, or return an exception, to send the request to
the app's error handler instead of rendering.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from mortar._internal.invoke import as_error, invoke
from mortar.http.writer import DEFAULT_CONTENT_TYPE
from mortar.templating.functions import PageScope, render_scope

if TYPE_CHECKING:
    from mortar._internal.types import ServiceHandler, TemplateHandler
    from mortar.app import App
    from mortar.context import Context


def template_page(app: App, template_file: str, handler: TemplateHandler) -> ServiceHandler:
    """Build the service handler that renders *template_file* with *handler*'s data.

    *template_file* is used as given, relative to the working directory.
    """
    if app.config.debug:
        app.logger.debug("Template %s", template_file)

    async def page(ctx: Context) -> Any:
        headers = ctx.writer.headers
        headers.set("Cache-Control", f"private, max-age={app.config.static_cache_seconds}")
        headers.set("Content-Type", DEFAULT_CONTENT_TYPE)

        cached = app.templates.resolve(template_file)

        data = await invoke(handler, ctx)
        err = as_error(data)
        if err is not None:
            return err

        if ctx.request.method == "HEAD":
            ctx.writer.write_header(204)
            return None

        scope = PageScope(
            data=data,
            dirname=os.path.dirname(cached.source_path),
            parent=cached.template,
            writer=ctx.writer,
        )
        ctx.writer.write(render_scope(cached.template, scope))
        return None

    page.__name__ = getattr(handler, "__name__", "page")
    page.__qualname__ = getattr(handler, "__qualname__", page.__name__)
    return page
