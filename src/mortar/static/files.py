"""Generic filesystem handler.

Serves files below a directory straight onto a response sink. It knows
nothing about the app's error page: missing files get a plain
``404 page not found`` body, which ``InterceptErrors`` turns into a call
to the app's error handler.
"""

import mimetypes
from pathlib import Path

from mortar.http.request import Request
from mortar.http.writer import Writer


class FileServer:
    """Serve files from *directory* for a path relative to it.

    Security: resolves symlinks and verifies the final path is within
    the configured directory to prevent path traversal.
    """

    __slots__ = ("_directory", "_index")

    def __init__(self, directory: str | Path, *, index: str = "index.html") -> None:
        self._directory = Path(directory).resolve()
        self._index = index

    @property
    def directory(self) -> Path:
        return self._directory

    async def __call__(self, request: Request, writer: Writer, relative: str) -> None:
        """Write the file at *relative* (already stripped of any URL prefix)."""
        if request.method not in ("GET", "HEAD"):
            writer.headers.set("Allow", "GET, HEAD")
            _error(writer, 405, "405 method not allowed\n")
            return

        relative = relative.lstrip("/")
        file_path = (self._directory / relative).resolve() if relative else self._directory
        if not file_path.is_relative_to(self._directory):
            _error(writer, 403, "403 Forbidden\n")
            return

        if file_path.is_dir():
            index_path = file_path / self._index
            if not index_path.is_file():
                _error(writer, 404, "404 page not found\n")
                return
            # Relative links in the index page need the trailing slash
            if relative and not request.path.endswith("/"):
                writer.headers.set("Location", request.path + "/")
                writer.write_header(301)
                return
            file_path = index_path

        if not file_path.is_file():
            _error(writer, 404, "404 page not found\n")
            return

        content_type, _ = mimetypes.guess_type(file_path.name)
        writer.headers.set("Content-Type", content_type or "application/octet-stream")
        writer.headers.set("X-Content-Type-Options", "nosniff")
        # HEAD bodies are dropped by the sender after Content-Length is set
        writer.write_header(200)
        writer.write(file_path.read_bytes())


def _error(writer: Writer, status: int, message: str) -> None:
    writer.headers.set("Content-Type", "text/plain; charset=utf-8")
    writer.headers.set("X-Content-Type-Options", "nosniff")
    writer.write_header(status)
    writer.write(message)
