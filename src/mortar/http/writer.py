"""Response sinks handed to endpoints.

``ResponseWriter`` buffers status, headers and body for one request and
turns them into a ``Response`` once the endpoint returns.
``ErrorInterceptingWriter`` wraps any sink and holds back error output so
it can be routed through the app's unified error handler instead.
"""

import logging
from typing import Protocol

from mortar.http.headers import HeaderMap
from mortar.http.response import Response

logger = logging.getLogger("mortar.http")

DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


class Writer(Protocol):
    """What an endpoint may do with its response sink."""

    @property
    def headers(self) -> HeaderMap: ...

    @property
    def written(self) -> bool: ...

    def write_header(self, status: int) -> None: ...

    def write(self, data: bytes | str) -> int: ...


class ResponseWriter:
    """Buffered response sink for a single request.

    The first ``write_header()`` call fixes the status; a ``write()``
    before any ``write_header()`` fixes it at 200. Later status changes
    are ignored and logged, so an error handler running after output has
    started cannot rewrite a response the client would already have seen.
    """

    __slots__ = ("_body", "_headers", "_status")

    def __init__(self) -> None:
        self._headers = HeaderMap()
        self._status: int | None = None
        self._body: list[bytes] = []

    @property
    def headers(self) -> HeaderMap:
        return self._headers

    @property
    def status(self) -> int:
        """Committed status, 200 if nothing was committed yet."""
        return self._status or 200

    @property
    def written(self) -> bool:
        """True once a status has been committed."""
        return self._status is not None

    @property
    def body(self) -> bytes:
        return b"".join(self._body)

    def write_header(self, status: int) -> None:
        if self._status is not None:
            logger.warning(
                "superfluous write_header(%d), status already %d", status, self._status
            )
            return
        self._status = status

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self._status is None:
            self.write_header(200)
        self._body.append(data)
        return len(data)

    def to_response(self) -> Response:
        """Freeze what was written into a ``Response``."""
        headers = self._headers.copy()
        body = self.body
        if body and "content-type" not in headers:
            headers.set("Content-Type", DEFAULT_CONTENT_TYPE)
        return Response(body=body, status=self.status, headers=headers.items())


class ErrorInterceptingWriter:
    """Wraps a sink and captures error output instead of forwarding it.

    A status below 400 passes straight through. A status of 400 or more
    is held back: the wrapper enters the error state and every byte
    written afterwards is buffered as the error message. Headers are
    shared with the wrapped sink.
    """

    __slots__ = ("_buffer", "_error_status", "_inner")

    def __init__(self, inner: Writer) -> None:
        self._inner = inner
        self._error_status = 0
        self._buffer = bytearray()

    @property
    def headers(self) -> HeaderMap:
        return self._inner.headers

    @property
    def written(self) -> bool:
        return bool(self._error_status) or self._inner.written

    @property
    def error_status(self) -> int:
        """The intercepted status code, 0 when no error was seen."""
        return self._error_status

    @property
    def error_message(self) -> str:
        return self._buffer.decode("utf-8", errors="replace")

    def write_header(self, status: int) -> None:
        if status >= 400:
            self._error_status = status
            return
        self._inner.write_header(status)

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self._error_status:
            self._buffer.extend(data)
            return len(data)
        return self._inner.write(data)
