"""Finished HTTP response.

The frozen value the ASGI sender puts on the wire. Handlers never build
one directly; ``ResponseWriter.to_response()`` does at the end of the
request.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Response:
    """A complete response: status, ordered headers, body bytes."""

    body: bytes = b""
    status: int = 200
    headers: tuple[tuple[str, str], ...] = ()

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or ``None``."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def header_list(self, name: str) -> list[str]:
        """Every value of header *name* in order."""
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]

    @property
    def content_type(self) -> str | None:
        return self.header("content-type")

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")
