"""Immutable HTTP request.

Frozen metadata with async body access. Handlers read it through
``Context``; the generic file server reads it directly.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field
from typing import Any

from mortar._internal.asgi import Receive, Scope
from mortar.http.cookies import parse_cookies
from mortar.http.headers import Headers
from mortar.http.query import QueryParams

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is read asynchronously via ``.body()``, ``.text()``, ``.json()``
    and cached after the first read.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    cookies: Mapping[str, str]
    scheme: str = "http"

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False, compare=False)

    # Private: mutable cache for the body bytes
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def is_form(self) -> bool:
        """True if the body is URL-encoded form data."""
        return FORM_CONTENT_TYPE in (self.content_type or "")

    @property
    def url(self) -> str:
        """Request path plus query string."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    @property
    def cached_body(self) -> bytes | None:
        """The body if it has already been read, else ``None``."""
        return self._cache.get("_body")

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        The ASGI receive channel is consumed once; later calls return the
        same bytes.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        if self._receive is None:
            return
        while True:
            message = await self._receive()
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as UTF-8 text."""
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(await self.body())

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive | None) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            scheme=scope.get("scheme", "http"),
            _receive=receive,
        )
