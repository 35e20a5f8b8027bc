"""Static page endpoint and the error interceptor in front of the file server.

A ``StaticPage`` is mounted under a URL prefix. Requests for a path the
bundled mapping knows are answered from memory with the pre-compressed
payload; everything else falls through to the ``FileServer``, whose
error output is routed to the app's error handler by ``InterceptErrors``.
"""

from __future__ import annotations

import mimetypes
import posixpath
import time
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from mortar.context import Context
from mortar.errors import HTTPError
from mortar.http.writer import ErrorInterceptingWriter
from mortar.server.errors import access_log, dispatch_error
from mortar.static.files import FileServer

if TYPE_CHECKING:
    from mortar.app import App
    from mortar.http.request import Request
    from mortar.http.writer import Writer


class InterceptErrors:
    """Route error statuses written by *handler* to the app's error handler.

    *handler* is called as ``handler(request, writer, *args)``. Output it
    writes under a status of 400 or more is held back; once it returns,
    that status and output become an ``HTTPError`` handed to the error
    handler together with a minimal ``Context`` on the real writer.
    """

    __slots__ = ("_app", "_handler")

    def __init__(self, handler: Any, app: App) -> None:
        self._handler = handler
        self._app = app

    async def __call__(self, request: Request, writer: Writer, *args: Any) -> None:
        intercepted = ErrorInterceptingWriter(writer)
        await self._handler(request, intercepted, *args)

        if intercepted.error_status:
            # Drop the plain-text headers meant for the discarded body
            writer.headers.delete("Content-Type")
            writer.headers.delete("X-Content-Type-Options")
            err = HTTPError(intercepted.error_status, intercepted.error_message)
            await dispatch_error(self._app, Context(request, writer, self._app), err)


class StaticPage:
    """Endpoint serving *base_url* from *mapping*, else from *directory*."""

    __slots__ = ("_app", "_cache_seconds", "_files", "_mapping", "base_url", "directory")

    def __init__(
        self,
        base_url: str,
        directory: str | Path,
        mapping: Mapping[str, bytes] | None,
        cache_seconds: int,
        app: App,
    ) -> None:
        if not base_url.endswith("/"):
            base_url += "/"
        self.base_url = base_url
        self.directory = Path(directory)
        self._mapping = mapping if mapping is not None else {}
        self._cache_seconds = cache_seconds
        self._app = app
        self._files = InterceptErrors(FileServer(directory), app)

    def __repr__(self) -> str:
        return f"StaticPage({self.base_url!r}, {str(self.directory)!r})"

    async def __call__(self, request: Request, writer: Writer) -> None:
        start = time.perf_counter()
        path = request.path
        if path.startswith(self.base_url):
            relative = path[len(self.base_url) :]
        else:
            # The router also hands us the prefix without its slash
            relative = ""

        payload = self._mapping.get(relative)
        if payload is not None:
            content_type, _ = mimetypes.guess_type(posixpath.basename(relative))
            headers = writer.headers
            headers.set("Cache-Control", f"public, max-age={self._cache_seconds}")
            headers.set("Content-Type", content_type or "application/octet-stream")
            headers.set("Content-Encoding", "gzip")
            writer.write_header(200)
            writer.write(payload)
            label = "[mapping]"
        else:
            writer.headers.set("Cache-Control", "no-cache")
            await self._files(request, writer, relative)
            label = "[fs]"

        if self._app.config.debug:
            access_log(self._app.logger, request, time.perf_counter() - start, label)
