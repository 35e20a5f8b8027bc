"""Per-request context handed to service handlers.

A ``Context`` is created when a request is dispatched and dropped when
the handler returns. It belongs to the task serving that request and is
never shared, so its lazily computed fields (session, parsed parameters)
need no locking: each is computed on first access and kept.

Usage::

    @app.service("/hello")
    def hello(ctx: Context):
        name = ctx.get("name") or "world"
        ctx.write_str(f"<p>Hello, {html.escape(name)}</p>")
"""

from __future__ import annotations

import html
import json as json_module
import os
import re
import urllib.parse
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from mortar.errors import BadParameter, BindError, RequestAborted
from mortar.http.query import QueryParams

if TYPE_CHECKING:
    from mortar.app import App
    from mortar.http.request import Request
    from mortar.http.writer import Writer
    from mortar.sessions import Session
    from mortar.templating.cache import CachedTemplate

_MISSING: Any = object()

# Spellings accepted as true by get_bool()
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})

_INT_RE = re.compile(r"[+-]?[0-9]+")


class Closer(Protocol):
    """Anything with a ``close()`` method; the result may be awaitable."""

    def close(self) -> Any: ...


class Context:
    """Request, response sink and per-request helpers in one place."""

    __slots__ = ("_params", "_session", "app", "closers", "label", "request", "writer")

    def __init__(self, request: Request, writer: Writer, app: App) -> None:
        self.request = request
        self.writer = writer
        self.app = app
        self.closers: list[Closer] = []
        # Extra text appended to the access log line for this request
        self.label = ""
        self._session: Session | None = None
        self._params: QueryParams | None = None

    def __repr__(self) -> str:
        return f"<Context {self.request.method} {self.request.path}>"

    # -- Session --

    @property
    def session(self) -> Session:
        """The visitor's session, started on first access."""
        if self._session is None:
            self._session = self.app.sessions.start(self.request)
        return self._session

    @property
    def session_started(self) -> bool:
        return self._session is not None

    # -- Parameters --

    @property
    def params(self) -> QueryParams:
        """Form body parameters for URL-encoded posts, else the query string.

        Parsed once. The lifecycle wrapper reads URL-encoded bodies before
        the handler runs, so this never blocks.
        """
        if self._params is None:
            body = self.request.cached_body
            if self.request.is_form and body is not None:
                self._params = QueryParams(body)
            else:
                self._params = self.request.query
        return self._params

    def get(self, name: str, default: str = "") -> str:
        """First value of parameter *name*, or *default* (empty string)."""
        value = self.params.get(name)
        return default if value is None else value

    def get_list(self, name: str) -> list[str]:
        return self.params.get_list(name)

    def has(self, *names: str) -> bool:
        """True when every one of *names* is present."""
        return all(name in self.params for name in names)

    def get_int(self, name: str, default: int = _MISSING) -> int:
        """Parameter *name* as a base-10 int.

        Only an optional sign and ASCII digits are accepted; surrounding
        whitespace and ``_`` separators count as malformed. Raises
        ``BadParameter`` for a missing or malformed value unless a
        *default* is supplied.
        """
        raw = self.get(name)
        if _INT_RE.fullmatch(raw):
            return int(raw)
        if default is not _MISSING:
            return default
        raise BadParameter(name, raw, "integer")

    def get_float(self, name: str, default: float = _MISSING) -> float:
        """Parameter *name* as a float; see ``get_int`` for failure rules."""
        raw = self.get(name)
        if raw.isascii() and raw.strip() == raw and "_" not in raw:
            try:
                return float(raw)
            except ValueError:
                pass
        if default is not _MISSING:
            return default
        raise BadParameter(name, raw, "float")

    def get_bool(self, name: str) -> bool:
        """True for ``1``, ``t``, ``true`` (and capitalized forms), else False."""
        return self.get(name) in _TRUE_WORDS

    def url_param(self, fix_base: str, count: int) -> tuple[list[str], int]:
        """Bind the path segments that follow segment *fix_base*.

        For ``/files/img/2024/a.png`` with ``fix_base="img"`` and
        ``count=2`` the values are ``["2024", "a.png"]``. The second item
        is the number of segments left over (positive) or missing
        (negative); 0 means an exact fit. Missing slots are not included
        in the returned list.

        Raises ``BindError`` when *count* is not positive or nothing
        follows *fix_base* in the path.
        """
        if count <= 0:
            msg = "url_param needs at least one output slot"
            raise BindError(msg)

        parts = self.request.path.split("/")
        index = 0
        while index < len(parts):
            index += 1
            if parts[index - 1] == fix_base:
                break

        available = len(parts) - index
        if available == 0:
            msg = f"not found {fix_base!r} in URL {self.request.path!r}"
            raise BindError(msg)

        return parts[index : index + count], available - count

    def accept_language(self) -> str:
        """The first language listed in ``Accept-Language``."""
        header = self.request.headers.get("accept-language", "") or ""
        return header.split(",")[0].strip()

    # -- Output --

    def write(self, data: bytes | str) -> int:
        return self.writer.write(data)

    def write_str(self, text: str) -> None:
        self.writer.write(text)

    def write_err(self, exc: BaseException) -> None:
        """Log *exc* and write its message; does not change the status."""
        self.app.logger.error("ERR. %s", exc)
        self.writer.write(str(exc))

    def write_css(self, href: str) -> None:
        self.writer.write(
            f"<link type='text/css' href='{html.escape(href, quote=True)}' rel='stylesheet'/>"
        )

    def json(self, value: Any) -> None:
        """Serialize *value* as the JSON response body."""
        self.writer.headers.set("Content-Type", "application/json; charset=utf-8")
        try:
            body = json_module.dumps(value)
        except (TypeError, ValueError) as exc:
            self.writer.write_header(500)
            self.writer.write("server error 500")
            if self.app.config.debug:
                self.writer.write(str(exc))
            self.app.logger.error("http write json fail: %s", exc)
            return
        self.writer.write(body + "\n")

    def tag(self, name: str, body: Callable[[], Any], *attrs: str) -> None:
        """Write ``<name attr="value"...>``, call *body*, then close the tag.

        *attrs* alternate between attribute names and values.
        """
        if len(attrs) % 2:
            msg = "tag attributes must come in name/value pairs"
            raise ValueError(msg)
        parts = [f"<{name}"]
        for i in range(0, len(attrs), 2):
            parts.append(f' {attrs[i]}="{html.escape(attrs[i + 1], quote=True)}"')
        parts.append(">")
        self.writer.write("".join(parts))
        body()
        self.writer.write(f"</{name}>")

    def text_tag(self, name: str, text: str, *attrs: str) -> None:
        self.tag(name, lambda: self.writer.write(html.escape(text)), *attrs)

    # -- Headers --

    def cache_time(self, seconds: float) -> None:
        """Set ``Cache-Control``; zero or less means ``no-store``."""
        value = "no-store" if seconds <= 0 else f"max-age={int(seconds)}"
        self.writer.headers.set("Cache-Control", value)

    def set_download_filename(self, filename: str) -> None:
        escaped = urllib.parse.quote_plus(filename)
        self.writer.headers.add(
            "Content-Disposition",
            f"attachment; filename=\"{escaped}\";filename*=utf-8''{escaped}",
        )

    def get_template(self, filename: str) -> CachedTemplate:
        """Resolve *filename* below the template directory.

        Sets ``Last-Modified`` from the template file.
        """
        path = os.path.join(self.app.template_dir, filename)
        cached = self.app.templates.resolve(path)
        self.writer.headers.set(
            "Last-Modified", cached.modified_at.strftime("%a, %d %b %Y %H:%M:%S GMT")
        )
        return cached

    # -- Lifecycle --

    def close_on_end(self, closer: Closer) -> None:
        """Call ``closer.close()`` once the handler has finished."""
        self.closers.append(closer)

    def fatal(self, *args: Any) -> None:
        """Log *args* and abort the request through the error handler."""
        message = " ".join(str(a) for a in args)
        self.app.logger.error("%s", message)
        raise RequestAborted(message)
